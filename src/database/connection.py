from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from src.config.settings import settings
from src.shared.utils import LOG_LEVEL

DATABASE_URL = settings.DATABASE_URL

if not DATABASE_URL:
    raise ValueError("DATABASE_URL is not set in environment variables.")


def engine_options(database_url: str) -> dict:
    """Engine keyword arguments for the configured driver."""
    if database_url.startswith("sqlite"):
        # In-memory SQLite must share a single connection across sessions
        return {
            "poolclass": StaticPool,
            "connect_args": {"check_same_thread": False},
        }

    return {
        # Connection pool settings
        "pool_size": settings.DB_POOL_SIZE,  # Number of permanent connections
        "max_overflow": settings.DB_MAX_OVERFLOW,  # Additional connections that can be created
        "pool_timeout": settings.DB_POOL_TIMEOUT,  # Seconds to wait for connection from pool
        "pool_recycle": settings.DB_POOL_RECYCLE,  # Recycle connections after N seconds
        "pool_pre_ping": True,  # Validate connections before using them
        # asyncpg-specific settings
        "connect_args": {
            "command_timeout": settings.DB_COMMAND_TIMEOUT,  # Query timeout in seconds
            "server_settings": {
                "jit": "off",  # Disable JIT for better performance on short queries
                "application_name": "recommendations_api",  # For monitoring
            },
        },
    }


engine = create_async_engine(
    DATABASE_URL,
    echo=LOG_LEVEL == "DEBUG",
    **engine_options(DATABASE_URL),
)

AsyncSessionLocal = async_sessionmaker(
    engine, expire_on_commit=False, class_=AsyncSession
)
