import logging
import math
from datetime import datetime, timedelta
from typing import List, Optional
from sqlalchemy.ext.asyncio import AsyncSession

from keyserver.core import constants, security
from keyserver.core.clock import utcnow
from keyserver.core.enums import KeyStatus
from keyserver.core.exceptions import (
    AccessKeyNotFoundError,
    DuplicateKeyError,
    InvalidDurationError,
    InvalidTimestampError,
    MissingFieldError,
)
from keyserver.models import AccessKey
from keyserver.repository.access_key import access_key_repo
from keyserver.schemas.access_key import AccessKeyCreate, KeyDetails
from keyserver.services.common.sanitize import sanitize_input
from keyserver.services.common.timeinfo import get_remaining_time, parse_timestamp

logger = logging.getLogger(__name__)

def to_key_details(key: AccessKey, now: datetime, valid: Optional[bool] = None) -> KeyDetails:
    """Annotate a stored key with its computed validity and time left."""
    return KeyDetails(
        key_id=key.key_id,
        user_id=key.user_id,
        valid=key.is_valid(now) if valid is None else valid,
        status=key.status,
        created_at=key.created_at,
        expires_at=key.expires_at,
        time_remaining=get_remaining_time(key.expires_at, now),
        usage_count=key.usage_count,
        last_accessed=key.last_accessed_at,
    )

def _check_duration(hours, max_hours: Optional[float]) -> float:
    if isinstance(hours, bool) or not isinstance(hours, (int, float)):
        raise InvalidDurationError(hours)
    if not math.isfinite(hours) or hours <= 0:
        raise InvalidDurationError(hours)
    if max_hours is not None and hours > max_hours:
        raise InvalidDurationError(hours, f"Hours must not exceed {max_hours:g}")
    return hours

async def create_key(
    db: AsyncSession,
    user_id,
    hours,
    *,
    source_ip: Optional[str] = None,
    created_by: str = constants.KEY_CREATED_BY_API,
    max_hours: Optional[float] = None,
    now: Optional[datetime] = None,
) -> AccessKey:
    """
    Issue a new key for `user_id`, valid for `hours` from now.

    Raises MissingFieldError for an empty user id and InvalidDurationError
    for a non-positive (or over-policy) duration.
    """
    clean_user_id = sanitize_input(user_id)
    if not clean_user_id:
        raise MissingFieldError("user_id")
    hours = _check_duration(hours, max_hours)

    now = now or utcnow()
    try:
        expires_at = now + timedelta(hours=hours)
    except (OverflowError, ValueError) as e:
        # Past datetime.max
        raise InvalidDurationError(hours, "Hours is out of range") from e

    # A collision on a fresh uuid4 means something is wrong; retry a bounded number of times
    for attempt in range(1, constants.KEY_CREATE_MAX_ATTEMPTS + 1):
        obj_in = AccessKeyCreate(
            key_id=security.generate_key_id(),
            user_id=clean_user_id,
            created_at=now,
            expires_at=expires_at,
            ip_address=source_ip,
            created_by=created_by,
        )
        try:
            key = await access_key_repo.insert(db, obj_in=obj_in)
        except DuplicateKeyError:
            logger.warning(f"Key ID collision on create (attempt {attempt}) for user {clean_user_id}")
            if attempt == constants.KEY_CREATE_MAX_ATTEMPTS:
                raise
            continue
        logger.info(f"Created key {key.key_id} for user {clean_user_id} ({hours:g}h)")
        return key

async def validate_key(db: AsyncSession, key_id: str, *, now: Optional[datetime] = None) -> KeyDetails:
    """
    Validate a key and, when valid, count the use.

    Not idempotent: each successful call increments usage_count by one.
    """
    now = now or utcnow()
    recorded = await access_key_repo.record_usage(db, key_id=key_id, now=now)
    key = await access_key_repo.get_by_key_id(db, key_id=key_id)
    if not key:
        raise AccessKeyNotFoundError()
    return to_key_details(key, now, valid=recorded)

async def get_key_info(db: AsyncSession, key_id: str, *, now: Optional[datetime] = None) -> KeyDetails:
    # Pure read: usage is not recorded
    now = now or utcnow()
    key = await access_key_repo.get_by_key_id(db, key_id=key_id)
    if not key:
        raise AccessKeyNotFoundError()
    return to_key_details(key, now)

async def list_user_keys(db: AsyncSession, user_id: str, *, now: Optional[datetime] = None) -> List[KeyDetails]:
    now = now or utcnow()
    keys = await access_key_repo.get_multi_by_user_id(db, user_id=user_id)
    return [to_key_details(key, now) for key in keys]

async def set_key_active(
    db: AsyncSession, key_id: str, active: bool, *, now: Optional[datetime] = None
) -> KeyDetails:
    status = KeyStatus.ACTIVE if active else KeyStatus.INACTIVE
    key = await access_key_repo.update_status(db, key_id=key_id, status=status)
    logger.info(f"Key {key_id} status set to {status.value}")
    return to_key_details(key, now or utcnow())

async def edit_key_expiry(
    db: AsyncSession, key_id: str, expiry, *, now: Optional[datetime] = None
) -> KeyDetails:
    """Replace a key's expiry. Past values are accepted and leave the key expired."""
    if expiry is None or expiry == "":
        raise InvalidTimestampError(message="expiry is required")
    try:
        expires_at = parse_timestamp(expiry)
    except (TypeError, ValueError, OverflowError) as e:
        raise InvalidTimestampError(expiry) from e

    key = await access_key_repo.update_expiry(db, key_id=key_id, expires_at=expires_at)
    logger.info(f"Key {key_id} expiry set to {expires_at.isoformat()}")
    return to_key_details(key, now or utcnow())

async def delete_key(db: AsyncSession, key_id: str) -> None:
    # Permanent; an absent key is reported as AccessKeyNotFoundError
    await access_key_repo.delete_by_key_id(db, key_id=key_id)
    logger.info(f"Deleted key {key_id}")

async def block_user(db: AsyncSession, user_id: str) -> int:
    """
    Block every key the user owns (status -> blocked).

    Keys created afterwards are not affected. Returns the number of keys blocked.
    """
    count = await access_key_repo.block_user(db, user_id=user_id)
    logger.info(f"Blocked {count} keys for user {user_id}")
    return count

async def get_key_stats(db: AsyncSession, *, now: Optional[datetime] = None) -> dict:
    now = now or utcnow()
    since = now - timedelta(hours=constants.RECENT_KEYS_WINDOW_HOURS)
    return {
        "total_keys": await access_key_repo.count_all(db),
        "active_keys": await access_key_repo.count_valid(db, now=now),
        "expired_keys": await access_key_repo.count_expired(db, now=now),
        "recent_keys": await access_key_repo.count_created_since(db, since=since),
    }
