import logging
import time
from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from keyserver.core import constants
from keyserver.core.clock import Clock, get_clock
from keyserver.core.config import settings
from keyserver.core.database import get_db
from keyserver.core.deps import (
    get_auth_gate,
    get_client_ip,
    get_current_admin_session,
    get_session_manager,
    get_session_token,
)
from keyserver.core.rate_limit_config import get_rate_limiter
from keyserver.schemas.admin import (
    AdminLoginRequest,
    AdminMessageResponse,
    AdminStats,
    AdminStatsResponse,
    ClearSessionsResponse,
    SessionInfoResponse,
    SessionItem,
    SessionListResponse,
)
from keyserver.services import key_service
from keyserver.services.admin_auth_service import AdminAuthGate
from keyserver.services.session_manager import AdminSession, SessionManager

logger = logging.getLogger(__name__)

_STARTED_AT = time.monotonic()

def _session_item(session: AdminSession) -> SessionItem:
    return SessionItem(
        id=session.session_id,
        created_at=session.created_at,
        ip=session.ip,
        user_agent=session.user_agent,
    )

def set_session_cookie(response: Response, token: str, ttl_seconds: int) -> None:
    # HTTP-only, same-site strict, Secure in production, max-age = session TTL
    response.set_cookie(
        key=constants.ADMIN_SESSION_COOKIE,
        value=token,
        max_age=ttl_seconds,
        httponly=True,
        secure=settings.is_production,
        samesite="strict",
    )

def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(
        key=constants.ADMIN_SESSION_COOKIE,
        httponly=True,
        secure=settings.is_production,
        samesite="strict",
    )

# --- Public auth endpoints ---
auth_router = APIRouter(prefix="/admin/auth", tags=["admin-auth"])

@auth_router.post("/login", response_model=AdminMessageResponse, dependencies=[Depends(get_rate_limiter("/admin/auth/login"))])
async def admin_login(
    request: Request,
    response: Response,
    body: AdminLoginRequest,
    gate: AdminAuthGate = Depends(get_auth_gate),
):
    """
    Exchange an admin password for a session cookie.
    400 when the password is missing, 401 when it is wrong.
    """
    session = await gate.authenticate(
        body.password,
        ip=get_client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )
    ttl_seconds = int(gate.session_manager.ttl.total_seconds())
    set_session_cookie(response, session.session_id, ttl_seconds)
    return AdminMessageResponse(message="Authentication successful")

@auth_router.post("/logout", response_model=AdminMessageResponse, dependencies=[Depends(get_rate_limiter("/admin/auth/logout"))])
async def admin_logout(
    response: Response,
    token: str = Depends(get_session_token),
    gate: AdminAuthGate = Depends(get_auth_gate),
):
    if token:
        await gate.logout(token)
    clear_session_cookie(response)
    return AdminMessageResponse(message="Logged out successfully")

# --- Protected admin API ---
router = APIRouter(
    prefix="/admin/api",
    tags=["admin"],
    dependencies=[Depends(get_current_admin_session), Depends(get_rate_limiter("/admin/api"))]
)

@router.get("/session", response_model=SessionInfoResponse)
async def get_session_info(
    admin_session: AdminSession = Depends(get_current_admin_session),
):
    """The caller's own session."""
    return SessionInfoResponse(session=_session_item(admin_session))

@router.get("/sessions", response_model=SessionListResponse)
async def list_sessions(
    session_manager: SessionManager = Depends(get_session_manager),
):
    sessions = [_session_item(s) for s in await session_manager.list()]
    return SessionListResponse(sessions=sessions, count=len(sessions))

@router.delete("/sessions", response_model=ClearSessionsResponse)
async def clear_sessions(
    request: Request,
    response: Response,
    session_manager: SessionManager = Depends(get_session_manager),
):
    """
    Drop every admin session, the caller's included: the caller is logged out.
    """
    count = await session_manager.clear_all()
    logger.info(f"Admin sessions cleared by {get_client_ip(request)} ({count} removed)")
    clear_session_cookie(response)
    return ClearSessionsResponse(
        message=f"Cleared {count} sessions. You have been logged out.",
        count_cleared=count,
    )

@router.get("/stats", response_model=AdminStatsResponse)
async def get_admin_stats(
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    counts = await key_service.get_key_stats(db, now=clock())
    return AdminStatsResponse(
        stats=AdminStats(
            **counts,
            uptime=round(time.monotonic() - _STARTED_AT, 3),
            environment=settings.ENVIRONMENT,
        )
    )
