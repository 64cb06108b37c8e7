from logging import getLogger

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base

from config import ASYNC_DATABASE_URL


def engine_options(url: str) -> dict:
    # sqlite pools reject the sizing options below
    if make_url(url).get_backend_name() == "sqlite":
        return {"echo": False}
    return dict(
        echo=False,
        pool_size=10,
        max_overflow=20,
        pool_timeout=60,       # seconds to wait before raising TimeoutError
        pool_recycle=1800,     # recycle every 30 mins to avoid stale sockets
        pool_pre_ping=True,
    )


engine = create_async_engine(ASYNC_DATABASE_URL, **engine_options(ASYNC_DATABASE_URL))

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    expire_on_commit=False,
    class_=AsyncSession,
)


Base = declarative_base()

async def init_db(recreate: bool = False, bind=None):
    logger = getLogger(__name__)
    async with (bind or engine).begin() as conn:
        if recreate:
            logger.warning("Recreating entire database schema...")
            await conn.run_sync(Base.metadata.drop_all)
            await conn.run_sync(Base.metadata.create_all)
            logger.info("All tables dropped and recreated successfully.")
        else:
            await conn.run_sync(Base.metadata.create_all)
            logger.info("All tables checked/created successfully.")

    logger.info("DB initialization complete.")

# ---------------- GET ASYNC SESSION ----------------
async def get_db() -> AsyncSession:
    """Provide a single async session per request, with rollback on exception."""
    session = AsyncSessionLocal()
    try:
        yield session
    except Exception:
        await session.rollback()
        raise
    finally:
        await session.close()
