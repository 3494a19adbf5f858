import logging

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from webinar.settings.config import settings

logger = logging.getLogger(__name__)


def _async_url(raw_url: str) -> str:
    # sync postgres URLs (alembic style) are accepted and moved onto asyncpg
    scheme, sep, rest = raw_url.partition("://")
    if scheme in ("postgresql", "postgresql+psycopg", "postgresql+psycopg2"):
        return f"postgresql+asyncpg{sep}{rest}"
    return raw_url


DATABASE_URL = _async_url(settings.DATABASE_URL)

engine = create_async_engine(DATABASE_URL, pool_pre_ping=DATABASE_URL.startswith("postgresql"))
async_session_maker = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)
Base = declarative_base()


async def get_db():
    """FastAPI dependency: one session per request, closed when the response is sent."""
    async with async_session_maker() as session:
        yield session


async def init_db():
    if not settings.RUN_DB_CREATE_ALL:
        logger.debug("RUN_DB_CREATE_ALL off; schema is managed by alembic")
        return
    logger.info("RUN_DB_CREATE_ALL set; creating tables on %s", engine.url.render_as_string(hide_password=True))
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
