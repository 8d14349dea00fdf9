"""
Bus Pass Backend — Database Session Management
==============================================

What:  Async SQLAlchemy engine, session factory, FastAPI session dependency,
       and the `atomic()` unit-of-work scope used by every mutating service call.
How:   The engine owns the connection pool; each request gets its own session;
       services wrap multi-row writes in `async with atomic(db):` which commits
       on success and rolls back on every error path.
Who:   Routes receive sessions via Depends(get_db_session); services receive
       them as their first argument.

Transaction Model:
    One request = one unit of work. Check-then-act sequences (duplicate
    pending application, already-decided application, payment already made,
    daily scan limit) are evaluated INSIDE the atomic block, after the
    aggregate row has been locked with SELECT ... FOR UPDATE. Unique indexes
    back every "exactly one" invariant; when one of them fires, the resulting
    IntegrityError is rolled back and surfaced as ConflictError.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, AsyncIterator, Dict

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from buspass.config import settings
from buspass.exceptions import BusPassError, ConflictError, DatabaseError

logger = logging.getLogger(__name__)


def _engine_options() -> Dict[str, Any]:
    options: Dict[str, Any] = {"echo": settings.log_level == "DEBUG"}
    # SQLite (tests, local demos) manages its own pool; sizing args are rejected
    if not settings.is_sqlite:
        options.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_pre_ping=settings.db_pool_pre_ping,
            pool_recycle=3600,
        )
    return options


# ── Engine Configuration ──────────────────────────────────────────────────
engine = create_async_engine(settings.database_url, **_engine_options())

# ── Session Factory ───────────────────────────────────────────────────────
# expire_on_commit=False: objects stay readable after atomic() commits, so
# services can build their response models without another round trip
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    Shares a single metadata object, which Alembic reads for autogenerate and
    the test suite uses for create_all().
    """
    pass


# ── Session Dependency ────────────────────────────────────────────────────
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    How it works:
        1. Creates a new session from the factory
        2. Yields it to the route handler
        3. On success: commits whatever is still open (reads autobegin)
        4. On error: rolls back
        5. Always: closes the session (returns connection to pool)

    Writes are already committed by the service's atomic() block; the commit
    here only closes out read transactions.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


@asynccontextmanager
async def atomic(
    session: AsyncSession,
    conflict_message: str = "The request conflicts with the current state of the resource",
) -> AsyncIterator[AsyncSession]:
    """
    Scoped unit of work: commit on normal exit, roll back on any exception.

    Usage:
        async with atomic(db, conflict_message="Payment already processed"):
            application = await _lock_application(db, application_id)
            ...

    Error translation:
        BusPassError     → rolled back, re-raised unchanged
        IntegrityError   → rolled back, raised as ConflictError(conflict_message)
        SQLAlchemyError  → rolled back, raised as DatabaseError (generic message)
        anything else    → rolled back, re-raised unchanged

    The block joins whatever transaction the session has already autobegun
    (for example the reads a route did before calling the service), so the
    whole check-then-act sequence commits or rolls back together.
    """
    try:
        yield session
        await session.commit()
    except BusPassError:
        await session.rollback()
        raise
    except IntegrityError as e:
        await session.rollback()
        logger.warning("Integrity violation rolled back: %s", e.orig)
        raise ConflictError(
            message=conflict_message,
            context={"constraint_error": type(e.orig).__name__ if e.orig else None},
        ) from e
    except SQLAlchemyError as e:
        await session.rollback()
        logger.error("Database error rolled back: %s", str(e), exc_info=True)
        raise DatabaseError(context={"error_type": type(e).__name__}) from e
    except BaseException:
        await session.rollback()
        raise


# ── Lifecycle Helpers ─────────────────────────────────────────────────────
async def dispose_engine() -> None:
    """Closes all pooled connections; called from the app lifespan on shutdown."""
    await engine.dispose()
