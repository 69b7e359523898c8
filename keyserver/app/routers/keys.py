from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from keyserver.core import constants
from keyserver.core.clock import Clock, get_clock
from keyserver.core.config import settings
from keyserver.core.database import get_db
from keyserver.core.deps import get_client_ip, get_current_admin_session
from keyserver.core.rate_limit_config import get_rate_limiter
from keyserver.schemas.access_key import (
    BlockUserResponse,
    KeyActiveUpdate,
    KeyCreateData,
    KeyCreateRequest,
    KeyCreateResponse,
    KeyDeleteResponse,
    KeyExpiryUpdate,
    KeyInfoResponse,
    KeyUpdateResponse,
    KeyValidateResponse,
    UserKeysResponse,
)
from keyserver.services import key_service

router = APIRouter(prefix="/api/keys", tags=["keys"])

# --- Public key API ---

@router.post("/create", response_model=KeyCreateResponse, dependencies=[Depends(get_rate_limiter("/api/keys/create"))])
async def create_key(
    request: Request,
    body: KeyCreateRequest,
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """
    Issue a new access key for a user. `hours` defaults to DEFAULT_KEY_HOURS.
    """
    hours = settings.DEFAULT_KEY_HOURS if body.hours is None else body.hours
    key = await key_service.create_key(
        db,
        body.user_id,
        hours,
        source_ip=get_client_ip(request),
        max_hours=settings.MAX_KEY_HOURS,
        now=clock(),
    )
    return KeyCreateResponse(
        data=KeyCreateData(
            key_id=key.key_id,
            user_id=key.user_id,
            expires_at=key.expires_at,
            valid_for_hours=hours,
        )
    )

@router.get("/validate/{key_id}", response_model=KeyValidateResponse, dependencies=[Depends(get_rate_limiter("/api/keys/validate"))])
async def validate_key(
    key_id: str,
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """
    Validate a key. Each valid call counts one use.
    Invalid keys still answer HTTP 200 with `valid=false` and `code=410`.
    """
    details = await key_service.validate_key(db, key_id, now=clock())
    return KeyValidateResponse(
        valid=details.valid,
        key_id=details.key_id,
        user_id=details.user_id,
        status=details.status,
        created_at=details.created_at,
        expires_at=details.expires_at,
        time_remaining=details.time_remaining,
        usage_count=details.usage_count,
        code=constants.CODE_OK if details.valid else constants.CODE_GONE,
    )

@router.get("/info/{key_id}", response_model=KeyInfoResponse, dependencies=[Depends(get_rate_limiter("/api/keys/info"))])
async def get_key_info(
    key_id: str,
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Key details without counting a use."""
    details = await key_service.get_key_info(db, key_id, now=clock())
    return KeyInfoResponse(
        msg="Key is active" if details.valid else "Key is expired or inactive",
        code=constants.CODE_OK if details.valid else constants.CODE_GONE,
        data=details,
    )

@router.get("/user/{user_id}", response_model=UserKeysResponse, dependencies=[Depends(get_rate_limiter("/api/keys/user"))])
async def list_user_keys(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """All keys of a user, most recent first."""
    keys = await key_service.list_user_keys(db, user_id, now=clock())
    return UserKeysResponse(msg=f"Found {len(keys)} keys for user", user_id=user_id, keys=keys)

# --- Admin key management (session required) ---

admin_dependencies = [Depends(get_current_admin_session), Depends(get_rate_limiter("/api/keys/admin"))]

@router.delete("/{key_id}", response_model=KeyDeleteResponse, dependencies=admin_dependencies)
async def delete_key(
    key_id: str,
    db: AsyncSession = Depends(get_db),
):
    """Permanently delete a key. 404 when it does not exist."""
    await key_service.delete_key(db, key_id)
    return KeyDeleteResponse(key_id=key_id)

@router.put("/{key_id}/active", response_model=KeyUpdateResponse, dependencies=admin_dependencies)
async def set_key_active(
    key_id: str,
    body: KeyActiveUpdate,
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    details = await key_service.set_key_active(db, key_id, body.active, now=clock())
    return KeyUpdateResponse(msg="Key status updated", data=details)

@router.put("/{key_id}/expiry", response_model=KeyUpdateResponse, dependencies=admin_dependencies)
async def edit_key_expiry(
    key_id: str,
    body: KeyExpiryUpdate,
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """
    Set a new expiry (ISO-8601, e.g. 2025-12-31T23:59:59Z). Past values are allowed.
    """
    details = await key_service.edit_key_expiry(db, key_id, body.expiry, now=clock())
    return KeyUpdateResponse(msg="Key expiry updated", data=details)

@router.post("/block/{user_id}", response_model=BlockUserResponse, dependencies=admin_dependencies)
async def block_user(
    user_id: str,
    db: AsyncSession = Depends(get_db),
):
    """Set every key of the user to `blocked`."""
    count = await key_service.block_user(db, user_id)
    return BlockUserResponse(msg=f"Blocked {count} keys for user", user_id=user_id, blocked_keys=count)
