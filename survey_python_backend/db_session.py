"""
SQLAlchemy async session setup for the survey backend.
"""

from fastapi import Request
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from survey_python_backend.config import DATABASE_URL
from survey_python_backend.models import Base


def normalize_database_url(url: str) -> str:
    """Map plain driver URLs onto their async drivers."""
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if url.startswith("sqlite:///"):
        return url.replace("sqlite:///", "sqlite+aiosqlite:///", 1)
    return url


def redacted_url(url: str) -> str:
    return make_url(url).render_as_string(hide_password=True)


def build_engine(url: str = DATABASE_URL, **kwargs) -> AsyncEngine:
    return create_async_engine(
        normalize_database_url(url),
        echo=False,  # Set to True for SQL query logging
        **kwargs,
    )


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def init_models(engine: AsyncEngine) -> None:
    """Create any missing tables. Existing tables are left untouched."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_async_session(request: Request):
    """
    Dependency function to get database session.

    The session factory lives on ``app.state`` so tests and alternative
    deployments can point the app at a different database.

    Usage in FastAPI endpoints:
        @router.post("/endpoint")
        async def my_endpoint(db: AsyncSession = Depends(get_async_session)):
            ...
    """
    session_factory = request.app.state.session_factory
    async with session_factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
