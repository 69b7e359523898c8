import logging
from typing import Iterable, Optional

from keyserver.core.exceptions import InvalidCredentialsError, MissingFieldError, UnauthenticatedError
from keyserver.core.security import verify_admin_password
from keyserver.services.session_manager import AdminSession, SessionManager

logger = logging.getLogger(__name__)

class AdminAuthGate:
    """
    Gate for privileged operations.

    Passwords come from configuration; a successful login opens a brand-new
    session in the SessionManager and every privileged request must present it.
    """

    def __init__(self, session_manager: SessionManager, passwords: Iterable[str]):
        self.session_manager = session_manager
        self.passwords = [p for p in passwords if p]

    async def authenticate(
        self,
        password: Optional[str],
        ip: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> AdminSession:
        if not password:
            raise MissingFieldError("password", "Password required")

        if not self.passwords or not verify_admin_password(password, self.passwords):
            logger.warning(f"Failed admin login attempt from {ip}")
            raise InvalidCredentialsError()

        session = await self.session_manager.create(ip=ip, user_agent=user_agent)
        logger.info(f"Admin login successful from {ip}")
        return session

    async def require_session(self, token: Optional[str], ip: Optional[str] = None) -> AdminSession:
        try:
            return await self.session_manager.lookup(token)
        except UnauthenticatedError as e:
            logger.warning(f"Rejected admin session from {ip}: {e.message}")
            raise

    async def logout(self, token: Optional[str]) -> bool:
        return await self.session_manager.revoke(token)
