import pytest
from datetime import datetime, timedelta
from unittest.mock import AsyncMock, patch
from sqlalchemy.exc import OperationalError

from keyserver.core.enums import KeyStatus
from keyserver.core.exceptions import AccessKeyNotFoundError, DuplicateKeyError, StoreFailureError
from keyserver.repository.access_key import access_key_repo
from keyserver.schemas.access_key import AccessKeyCreate, AccessKeyUpdate

NOW = datetime(2026, 1, 1, 12, 0, 0)


def _payload(key_id="key-1", user_id="user-1", hours=1) -> AccessKeyCreate:
    return AccessKeyCreate(
        key_id=key_id,
        user_id=user_id,
        created_at=NOW,
        expires_at=NOW + timedelta(hours=hours),
        ip_address="127.0.0.1",
    )


@pytest.mark.asyncio
async def test_insert_and_get(db_session):
    key = await access_key_repo.insert(db_session, obj_in=_payload())

    assert key.id is not None
    assert key.status == KeyStatus.ACTIVE
    assert key.usage_count == 0
    assert key.created_by == "api"

    fetched = await access_key_repo.get_by_key_id(db_session, key_id="key-1")
    assert fetched.user_id == "user-1"
    assert await access_key_repo.get_by_key_id(db_session, key_id="missing") is None


@pytest.mark.asyncio
async def test_insert_duplicate_key_id(db_session):
    await access_key_repo.insert(db_session, obj_in=_payload())

    with pytest.raises(DuplicateKeyError):
        await access_key_repo.insert(db_session, obj_in=_payload(user_id="someone-else"))

    # The original row is intact and the session is usable again
    original = await access_key_repo.get_by_key_id(db_session, key_id="key-1")
    assert original.user_id == "user-1"
    assert await access_key_repo.count_all(db_session) == 1


@pytest.mark.asyncio
async def test_record_usage_only_counts_valid_keys(db_session):
    await access_key_repo.insert(db_session, obj_in=_payload("live"))
    await access_key_repo.insert(db_session, obj_in=_payload("off"))
    await access_key_repo.update_status(db_session, key_id="off", status=KeyStatus.INACTIVE)

    assert await access_key_repo.record_usage(db_session, key_id="live", now=NOW) is True
    assert await access_key_repo.record_usage(db_session, key_id="off", now=NOW) is False
    assert await access_key_repo.record_usage(db_session, key_id="missing", now=NOW) is False
    assert await access_key_repo.record_usage(db_session, key_id="live", now=NOW + timedelta(hours=1)) is False

    live = await access_key_repo.get_by_key_id(db_session, key_id="live")
    off = await access_key_repo.get_by_key_id(db_session, key_id="off")
    assert live.usage_count == 1
    assert live.last_accessed_at == NOW
    assert off.usage_count == 0
    assert off.last_accessed_at is None


@pytest.mark.asyncio
async def test_updates_on_missing_key(db_session):
    with pytest.raises(AccessKeyNotFoundError):
        await access_key_repo.update_status(db_session, key_id="missing", status=KeyStatus.BLOCKED)
    with pytest.raises(AccessKeyNotFoundError):
        await access_key_repo.update_expiry(db_session, key_id="missing", expires_at=NOW)
    with pytest.raises(AccessKeyNotFoundError):
        await access_key_repo.delete_by_key_id(db_session, key_id="missing")


@pytest.mark.asyncio
async def test_update_expiry_returns_fresh_row(db_session):
    key = await access_key_repo.insert(db_session, obj_in=_payload())
    new_expiry = NOW - timedelta(days=1)

    updated = await access_key_repo.update_expiry(db_session, key_id=key.key_id, expires_at=new_expiry)

    assert updated.expires_at == new_expiry
    assert updated.is_valid(NOW) is False


@pytest.mark.asyncio
async def test_block_user_and_counters(db_session):
    await access_key_repo.insert(db_session, obj_in=_payload("a", "u1", hours=2))
    await access_key_repo.insert(db_session, obj_in=_payload("b", "u1", hours=2))
    await access_key_repo.insert(db_session, obj_in=_payload("c", "u2", hours=2))

    assert await access_key_repo.count_valid(db_session, now=NOW) == 3
    assert await access_key_repo.block_user(db_session, user_id="u1") == 2
    assert await access_key_repo.count_valid(db_session, now=NOW) == 1
    assert await access_key_repo.count_expired(db_session, now=NOW) == 0
    assert await access_key_repo.count_expired(db_session, now=NOW + timedelta(hours=2)) == 3
    assert await access_key_repo.count_created_since(db_session, since=NOW) == 3
    assert await access_key_repo.count_created_since(db_session, since=NOW + timedelta(seconds=1)) == 0

    keys = await access_key_repo.get_multi_by_user_id(db_session, user_id="u1")
    assert {k.status for k in keys} == {KeyStatus.BLOCKED}


@pytest.mark.asyncio
async def test_commit_failure_becomes_store_failure(db_session):
    await access_key_repo.insert(db_session, obj_in=_payload())

    failing_commit = AsyncMock(side_effect=OperationalError("COMMIT", {}, Exception("disk I/O error")))
    with patch.object(db_session, "commit", failing_commit):
        with pytest.raises(StoreFailureError) as exc_info:
            await access_key_repo.record_usage(db_session, key_id="key-1", now=NOW)

    assert exc_info.value.operation == "record_usage"
    assert "disk I/O error" in exc_info.value.original_error


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "call",
    [
        lambda db: access_key_repo.get_by_key_id(db, key_id="key-1"),
        lambda db: access_key_repo.record_usage(db, key_id="key-1", now=NOW),
        lambda db: access_key_repo.delete_by_key_id(db, key_id="key-1"),
        lambda db: access_key_repo.update_status(db, key_id="key-1", status=KeyStatus.BLOCKED),
        lambda db: access_key_repo.count_all(db),
    ],
)
async def test_execute_failure_becomes_store_failure(db_session, call):
    await access_key_repo.insert(db_session, obj_in=_payload())

    failing_execute = AsyncMock(side_effect=OperationalError("SELECT", {}, Exception("database is locked")))
    with patch.object(db_session, "execute", failing_execute):
        with pytest.raises(StoreFailureError) as exc_info:
            await call(db_session)

    assert "database is locked" in exc_info.value.original_error
    # The row is untouched once the session is usable again
    key = await access_key_repo.get_by_key_id(db_session, key_id="key-1")
    assert key.status == KeyStatus.ACTIVE


@pytest.mark.asyncio
async def test_update_by_key_id_applies_only_set_fields(db_session):
    key = await access_key_repo.insert(db_session, obj_in=_payload())

    updated = await access_key_repo.update_by_key_id(
        db_session, key_id=key.key_id, obj_in=AccessKeyUpdate(status=KeyStatus.INACTIVE)
    )

    assert updated.status == KeyStatus.INACTIVE
    assert updated.expires_at == NOW + timedelta(hours=1)
