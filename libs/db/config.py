from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from libs.common.config import get_settings

settings = get_settings()

_engine_options = {}
if not settings.DATABASE_URL.startswith("sqlite"):
    # SQLite (local runs, tests) uses its own pool without sizing knobs
    _engine_options = {
        "pool_pre_ping": True,  # Test connections before using
        "pool_size": settings.DB_POOL_SIZE,
        "max_overflow": settings.DB_MAX_OVERFLOW,
        "pool_timeout": settings.DB_POOL_TIMEOUT,
        "pool_recycle": settings.DB_POOL_RECYCLE,
    }

# echo=True for local dev to see SQL queries
engine = create_async_engine(
    settings.DATABASE_URL,
    echo=(settings.ENVIRONMENT == "local" and settings.LOG_LEVEL.upper() == "DEBUG"),
    future=True,
    **_engine_options,
)

# Create async session factory
AsyncSessionLocal = async_sessionmaker(
    bind=engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
)
