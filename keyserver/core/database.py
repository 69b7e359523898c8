# keyserver/core/database.py
import asyncio
import logging
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from sqlalchemy import text
from keyserver.core.config import settings

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# 1. Async engine
engine_kwargs = {"echo": False, "future": True, "pool_pre_ping": True}
if settings.ASYNC_DATABASE_URL.startswith("sqlite"):
    # Concurrent writers wait on the SQLite file lock instead of failing immediately.
    engine_kwargs["connect_args"] = {"timeout": 30}

engine = create_async_engine(settings.ASYNC_DATABASE_URL, **engine_kwargs)

# 2. Session factory
# expire_on_commit=False keeps attributes readable after commit.
AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    autocommit=False,
    autoflush=False,
    expire_on_commit=False
)

# 3. Declarative base for all models
Base = declarative_base()

# 4. FastAPI dependency
async def get_db():
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()

# 5. Startup helpers
async def wait_for_db(retries: int = 30, delay: int = 2):
    """Block until the database answers a trivial query."""
    logger.info(f"Waiting for database... (Max retries: {retries})")

    for i in range(retries):
        try:
            async with engine.begin() as conn:
                await conn.execute(text("SELECT 1"))
            logger.info("Database is ready")
            return
        except Exception as e:
            if i == retries - 1:
                logger.error(f"Database connection failed after {retries} attempts: {e}")
                raise e

            logger.warning(f"Database not ready yet. Retrying in {delay}s... ({i+1}/{retries})")
            await asyncio.sleep(delay)

async def init_db():
    # Import models so their tables are registered on Base.metadata
    from keyserver import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables initialized")
