import logging
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from app.core.config import settings
from app.db.base import Base
import app.db.models.sheet_row  # noqa: F401  registers the table on Base.metadata

logger = logging.getLogger(__name__)

engine = create_async_engine(
    url=settings.DATABASE_URL,
    echo=settings.LOG_LEVEL.upper() == "DEBUG",
    pool_pre_ping=True,
)

async_session_factory = async_sessionmaker(
    bind=engine,
    autoflush=False,
    expire_on_commit=False
)


async def init_db() -> None:
    """Create the sheetrow table if it does not exist yet."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info(f"Database ready, tables: {', '.join(Base.metadata.tables)}")
