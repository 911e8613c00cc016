from typing import Generator, Callable
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import QueuePool, StaticPool
import sqlalchemy.exc as sa_exc

from projectx_backend.settings import settings


def _engine_options(url: str) -> dict:
    if url.startswith("sqlite"):
        # In-memory SQLite must share one connection across threads
        return {
            "connect_args": {"check_same_thread": False},
            "poolclass": StaticPool,
        }
    return {
        "poolclass": QueuePool,
        "pool_size": 10,
        "max_overflow": 20,
        "pool_timeout": 30,
        "pool_recycle": 1800,     # 30 min - protects against idle disconnects
        "pool_pre_ping": True,    # avoids stale connections
        "pool_use_lifo": True,
    }


def build_engine(url: str) -> Engine:
    return create_engine(url, future=True, **_engine_options(url))


def build_session_factory(engine: Engine) -> Callable[[], Session]:
    return sessionmaker(
        bind=engine,
        autocommit=False,
        expire_on_commit=False,  # more convenient with Pydantic
        autoflush=False,         # prevents "accidental" DB touching
        class_=Session
    )


_engine = build_engine(settings.database_url)

SessionLocal: Callable[[], Session] = build_session_factory(_engine)


def get_engine() -> Engine:
    return _engine


def _get_db() -> Generator[Session, None, None]:
    """
    Internal database session generator with transaction management.

    Handles:
    - Session creation and cleanup
    - Automatic commit on success
    - Rollback on exceptions

    Yields:
        Database session
    """
    db = SessionLocal()
    try:
        yield db

        # Only commit if we have an open transaction
        if db.in_transaction():
            db.commit()
    except Exception:
        if db.in_transaction():
            db.rollback()
        raise
    finally:
        db.close()


def get_db() -> Generator[Session, None, None]:
    """
    FastAPI dependency: provides a database session.

    Usage:
        @router.get("/rooms/{room_id}/members")
        async def room_members(room_id: int, db: Session = Depends(get_db)):
            ...

    Yields:
        Database session
    """
    try:
        yield from _get_db()
    except sa_exc.TimeoutError as e:  # QueuePool acquisition timed out
        # Import here to avoid circular dependency
        from projectx_backend.exceptions import ServiceUnavailableException
        raise ServiceUnavailableException(
            detail="Database is busy. Please retry shortly.",
            headers={"Retry-After": "2"}
        ) from e
