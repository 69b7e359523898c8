from typing import Generic, Type, TypeVar
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from keyserver.core.database import Base
from keyserver.core.exceptions import StoreFailureError

ModelType = TypeVar("ModelType", bound=Base)
CreateSchemaType = TypeVar("CreateSchemaType", bound=BaseModel)
UpdateSchemaType = TypeVar("UpdateSchemaType", bound=BaseModel)

class BaseRepository(Generic[ModelType, CreateSchemaType, UpdateSchemaType]):
    def __init__(self, model: Type[ModelType]):
        self.model = model

    async def _execute(self, db: AsyncSession, statement, operation: str):
        """Execute, turning driver errors into StoreFailureError after a rollback."""
        try:
            return await db.execute(statement)
        except SQLAlchemyError as e:
            await db.rollback()
            raise StoreFailureError(operation, str(e)) from e

    async def _commit(self, db: AsyncSession, operation: str) -> None:
        """Commit, turning driver errors into StoreFailureError after a rollback."""
        try:
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            raise StoreFailureError(operation, str(e)) from e
