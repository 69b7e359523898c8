"""
Volatile store of admin sessions.

One SessionManager is built at process start and handed to request handlers;
its contents live only as long as the process. All access goes through an
asyncio.Lock so concurrent requests see a consistent mapping.
"""
import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from keyserver.core import security
from keyserver.core.clock import Clock, utcnow
from keyserver.core.exceptions import SessionExpiredError, UnauthenticatedError

logger = logging.getLogger(__name__)

DEFAULT_SESSION_TTL = timedelta(hours=24)

@dataclass(frozen=True)
class AdminSession:
    session_id: str
    created_at: datetime
    ip: Optional[str] = None
    user_agent: Optional[str] = None

    def is_expired(self, now: datetime, ttl: timedelta) -> bool:
        return now - self.created_at >= ttl

class SessionManager:
    def __init__(self, ttl: timedelta = DEFAULT_SESSION_TTL, clock: Clock = utcnow):
        self.ttl = ttl
        self.clock = clock
        self._sessions: Dict[str, AdminSession] = {}
        self._lock = asyncio.Lock()

    async def create(self, ip: Optional[str] = None, user_agent: Optional[str] = None) -> AdminSession:
        session = AdminSession(
            session_id=security.generate_session_token(),
            created_at=self.clock(),
            ip=ip,
            user_agent=user_agent,
        )
        async with self._lock:
            self._sessions[session.session_id] = session
        return session

    async def lookup(self, session_id: Optional[str]) -> AdminSession:
        """
        Resolve a live session.

        Raises UnauthenticatedError for unknown tokens and SessionExpiredError
        (evicting the entry) once the session is older than the TTL.
        """
        if not session_id:
            raise UnauthenticatedError()
        async with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                raise UnauthenticatedError("Invalid or expired session")
            if session.is_expired(self.clock(), self.ttl):
                del self._sessions[session_id]
                raise SessionExpiredError()
            return session

    async def list(self) -> List[AdminSession]:
        # Expired entries are evicted here too, so list() agrees with lookup()
        async with self._lock:
            now = self.clock()
            expired = [sid for sid, s in self._sessions.items() if s.is_expired(now, self.ttl)]
            for sid in expired:
                del self._sessions[sid]
            return sorted(self._sessions.values(), key=lambda s: s.created_at)

    async def revoke(self, session_id: Optional[str]) -> bool:
        if not session_id:
            return False
        async with self._lock:
            return self._sessions.pop(session_id, None) is not None

    async def clear_all(self) -> int:
        async with self._lock:
            count = len(self._sessions)
            self._sessions.clear()
        logger.info(f"Cleared {count} admin sessions")
        return count
