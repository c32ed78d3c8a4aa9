import logging
from typing import Any, Awaitable, Callable, TypeVar

from sqlalchemy import BigInteger, Integer, text
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from core.config import settings
from core.exceptions import TransientDatabaseError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# SQLSTATEs raised when a transaction lost a serialization race or a deadlock
RETRYABLE_SQLSTATES = frozenset({"40001", "40P01"})

# BIGSERIAL on PostgreSQL; SQLite only autoincrements INTEGER PRIMARY KEY
BigIntPK = BigInteger().with_variant(Integer, "sqlite")


def _engine_options(url: str) -> dict[str, Any]:
    options: dict[str, Any] = {"echo": settings.database_echo}
    if url.startswith("postgresql"):
        options.update(
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_max_overflow,
            pool_pre_ping=True,
        )
    return options


db_engine = create_async_engine(settings.database_url, **_engine_options(settings.database_url))


# Create async session maker to be used throughout the application
AsyncSessionLocal = async_sessionmaker(
    db_engine, class_=AsyncSession, expire_on_commit=False
)


# Base class for declarative models
class Base(DeclarativeBase):
    pass


# Dependency to get DB session
async def get_db():
    async with AsyncSessionLocal() as session:
        yield session


async def init_db():
    """Create all tables."""
    import database.models  # noqa: F401  registers every table on Base.metadata

    async with db_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def check_db() -> bool:
    """Round-trip a trivial query for readiness probes."""
    async with db_engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    return True


# Function to close database connections
async def close_db():
    """Close database engine and connections."""
    await db_engine.dispose()


def is_retryable(exc: BaseException) -> bool:
    """Tell whether a DBAPI error is a serialization failure or deadlock."""
    if not isinstance(exc, DBAPIError):
        return False
    orig = exc.orig
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    return sqlstate in RETRYABLE_SQLSTATES


async def run_in_transaction(
    db: AsyncSession,
    work: Callable[[AsyncSession], Awaitable[T]],
    attempts: int | None = None,
) -> T:
    """
    Run ``work`` and commit it as one unit.

    Any exception rolls the whole unit back. Serialization failures and
    deadlocks are retried up to ``attempts`` times; ``work`` must therefore
    re-read everything it depends on through ``db`` on each call.

    Args:
        db: Session bound to the current request
        work: Coroutine function performing the guarded writes
        attempts: Retry budget, defaults to INVARIANT_RETRY_ATTEMPTS

    Returns:
        Whatever ``work`` returns

    Raises:
        TransientDatabaseError: If every attempt lost a serialization race
    """
    attempts = attempts or settings.invariant_retry_attempts
    for attempt in range(1, attempts + 1):
        try:
            result = await work(db)
            await db.commit()
            return result
        except DBAPIError as exc:
            await db.rollback()
            if not is_retryable(exc):
                raise
            logger.warning(
                f"Serialization conflict, attempt {attempt}/{attempts}: {type(exc.orig).__name__}"
            )
        except Exception:
            await db.rollback()
            raise
    raise TransientDatabaseError()
