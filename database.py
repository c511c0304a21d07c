import logging
from collections.abc import AsyncGenerator

from fastapi import Request
from sqlalchemy import text
from sqlalchemy.engine import URL, make_url
from sqlalchemy.exc import ArgumentError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from config import Settings
from errors import StartupError

logger = logging.getLogger(__name__)

POSTGRES_SCHEMES = {"postgres", "postgresql"}


class Base(DeclarativeBase):
    pass


def normalize_db_url(db_url: str) -> URL:
    """Point plain PostgreSQL URLs at the asyncpg driver.

    libpq-style ``sslmode`` becomes asyncpg's ``ssl`` so hosted Postgres
    connection strings work unchanged.
    """
    try:
        url = make_url(db_url)
    except ArgumentError as e:
        raise StartupError(f"DB_URL is not a valid database URL: {e}") from e

    if url.drivername in POSTGRES_SCHEMES:
        url = url.set(drivername="postgresql+asyncpg")
        sslmode = url.query.get("sslmode")
        if sslmode is not None:
            url = url.difference_update_query(["sslmode"]).update_query_dict({"ssl": sslmode})
    return url


def create_engine(settings: Settings) -> AsyncEngine:
    url = normalize_db_url(settings.db_url)
    try:
        return create_async_engine(url, echo=settings.db_echo)
    except (ArgumentError, ImportError) as e:
        raise StartupError(f"Unsupported database URL {url.drivername!r}: {e}") from e


def create_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


async def check_connection(engine: AsyncEngine) -> None:
    """Fail startup when the database cannot be reached."""
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        raise StartupError(f"Cannot reach the database: {e}") from e
    logger.info("Database %s is reachable", engine.url.render_as_string(hide_password=True))


async def create_tables(engine: AsyncEngine) -> None:
    import models  # noqa: F401  registers the posts table on Base.metadata

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    async with request.app.state.context.sessionmaker() as db:
        yield db
