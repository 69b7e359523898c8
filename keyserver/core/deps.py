from typing import Optional
from fastapi import Depends, Request, Header, Cookie

from keyserver.core import constants
from keyserver.core.config import settings
from keyserver.services.admin_auth_service import AdminAuthGate
from keyserver.services.session_manager import AdminSession, SessionManager

def get_client_ip(request: Request) -> str:
    if request.client and request.client.host:
        return request.client.host
    return "unknown"

def get_session_manager(request: Request) -> SessionManager:
    """The process-wide SessionManager built in keyserver.app.main."""
    return request.app.state.session_manager

def get_auth_gate(session_manager: SessionManager = Depends(get_session_manager)) -> AdminAuthGate:
    # Passwords are read per request so a settings reload takes effect immediately
    return AdminAuthGate(session_manager, settings.admin_passwords)

def get_session_token(
    admin_session: Optional[str] = Cookie(default=None, alias=constants.ADMIN_SESSION_COOKIE),
    x_admin_session: Optional[str] = Header(default=None, alias=constants.ADMIN_SESSION_HEADER),
) -> Optional[str]:
    return admin_session or x_admin_session

async def get_current_admin_session(
    request: Request,
    token: Optional[str] = Depends(get_session_token),
    gate: AdminAuthGate = Depends(get_auth_gate),
) -> AdminSession:
    """
    Privileged-route guard: 401 unless the request carries a live admin session.
    """
    return await gate.require_session(token, ip=get_client_ip(request))
