from datetime import datetime
from typing import List, Optional
from sqlalchemy import select, update, delete, desc, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from keyserver.core.enums import KeyStatus
from keyserver.core.exceptions import AccessKeyNotFoundError, DuplicateKeyError, StoreFailureError
from keyserver.models.access_key import AccessKey
from keyserver.repository.base import BaseRepository
from keyserver.schemas.access_key import AccessKeyCreate, AccessKeyUpdate

class AccessKeyRepository(BaseRepository[AccessKey, AccessKeyCreate, AccessKeyUpdate]):
    """Durable table of access keys, addressed by key_id."""

    async def insert(self, db: AsyncSession, *, obj_in: AccessKeyCreate) -> AccessKey:
        key = AccessKey(**obj_in.model_dump())
        db.add(key)
        try:
            await db.flush()
        except IntegrityError as e:
            await db.rollback()
            raise DuplicateKeyError(obj_in.key_id) from e
        except SQLAlchemyError as e:
            await db.rollback()
            raise StoreFailureError("insert", str(e)) from e
        await self._commit(db, "insert")
        return key

    async def get_by_key_id(self, db: AsyncSession, *, key_id: str) -> Optional[AccessKey]:
        # populate_existing: bulk UPDATEs below bypass the identity map
        result = await self._execute(
            db,
            select(AccessKey)
            .where(AccessKey.key_id == key_id)
            .execution_options(populate_existing=True),
            "get_by_key_id",
        )
        return result.scalars().first()

    async def get_multi_by_user_id(self, db: AsyncSession, *, user_id: str) -> List[AccessKey]:
        result = await self._execute(
            db,
            select(AccessKey)
            .where(AccessKey.user_id == user_id)
            .order_by(desc(AccessKey.created_at), desc(AccessKey.id))
            .execution_options(populate_existing=True),
            "get_multi_by_user_id",
        )
        return list(result.scalars().all())

    async def delete_by_key_id(self, db: AsyncSession, *, key_id: str) -> None:
        result = await self._execute(db, delete(AccessKey).where(AccessKey.key_id == key_id), "delete")
        if result.rowcount == 0:
            await db.rollback()
            raise AccessKeyNotFoundError()
        await self._commit(db, "delete")

    async def update_status(self, db: AsyncSession, *, key_id: str, status: KeyStatus) -> AccessKey:
        return await self.update_by_key_id(db, key_id=key_id, obj_in=AccessKeyUpdate(status=status))

    async def update_expiry(self, db: AsyncSession, *, key_id: str, expires_at: datetime) -> AccessKey:
        # No future check: an expired-but-active key is a legal state
        return await self.update_by_key_id(db, key_id=key_id, obj_in=AccessKeyUpdate(expires_at=expires_at))

    async def update_by_key_id(self, db: AsyncSession, *, key_id: str, obj_in: AccessKeyUpdate) -> AccessKey:
        """Apply the fields set on `obj_in`; AccessKeyNotFoundError when the key is absent."""
        values = obj_in.model_dump(exclude_unset=True)
        result = await self._execute(
            db,
            update(AccessKey)
            .where(AccessKey.key_id == key_id)
            .values(**values)
            .execution_options(synchronize_session=False),
            "update",
        )
        if result.rowcount == 0:
            await db.rollback()
            raise AccessKeyNotFoundError()
        await self._commit(db, "update")
        return await self.get_by_key_id(db, key_id=key_id)

    async def record_usage(self, db: AsyncSession, *, key_id: str, now: datetime) -> bool:
        """
        Count one successful validation.

        The validity test and the increment are a single UPDATE, so concurrent
        validations of the same key never lose an increment and never count a
        key that stopped being valid in between. Returns True when a row was
        updated, i.e. the key exists and was valid at `now`.
        """
        result = await self._execute(
            db,
            update(AccessKey)
            .where(
                AccessKey.key_id == key_id,
                AccessKey.status == KeyStatus.ACTIVE,
                AccessKey.expires_at > now,
            )
            .values(usage_count=AccessKey.usage_count + 1, last_accessed_at=now)
            .execution_options(synchronize_session=False),
            "record_usage",
        )
        await self._commit(db, "record_usage")
        return result.rowcount == 1

    async def block_user(self, db: AsyncSession, *, user_id: str) -> int:
        result = await self._execute(
            db,
            update(AccessKey)
            .where(AccessKey.user_id == user_id)
            .values(status=KeyStatus.BLOCKED)
            .execution_options(synchronize_session=False),
            "block_user",
        )
        await self._commit(db, "block_user")
        return result.rowcount

    # --- Counters for the admin stats view ---
    async def count_all(self, db: AsyncSession) -> int:
        return await self._count(db)

    async def count_valid(self, db: AsyncSession, *, now: datetime) -> int:
        return await self._count(db, AccessKey.status == KeyStatus.ACTIVE, AccessKey.expires_at > now)

    async def count_expired(self, db: AsyncSession, *, now: datetime) -> int:
        return await self._count(db, AccessKey.expires_at <= now)

    async def count_created_since(self, db: AsyncSession, *, since: datetime) -> int:
        return await self._count(db, AccessKey.created_at >= since)

    async def _count(self, db: AsyncSession, *criteria) -> int:
        stmt = select(func.count()).select_from(AccessKey)
        if criteria:
            stmt = stmt.where(*criteria)
        result = await self._execute(db, stmt, "count")
        return result.scalar_one()

access_key_repo = AccessKeyRepository(AccessKey)
