from typing import Optional
from pydantic import BaseModel
from keyserver.schemas.common import UtcDateTime

class AdminLoginRequest(BaseModel):
    # Optional so a missing password is answered with 400 rather than 422
    password: Optional[str] = None

class AdminMessageResponse(BaseModel):
    success: bool = True
    message: str

class SessionItem(BaseModel):
    id: str
    created_at: UtcDateTime
    ip: Optional[str] = None
    user_agent: Optional[str] = None

class SessionInfoResponse(BaseModel):
    success: bool = True
    session: SessionItem

class SessionListResponse(BaseModel):
    success: bool = True
    sessions: list[SessionItem]
    count: int

class ClearSessionsResponse(BaseModel):
    success: bool = True
    message: str
    count_cleared: int
    logged_out: bool = True  # the caller's own session is gone too

class AdminStats(BaseModel):
    total_keys: int
    active_keys: int
    expired_keys: int
    recent_keys: int
    uptime: float
    environment: str

class AdminStatsResponse(BaseModel):
    success: bool = True
    stats: AdminStats
