from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from content_platform.config import DatabaseConfig


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


# Global engine and session factory (lazy initialization)
_db_config: DatabaseConfig = DatabaseConfig()
_engine: Optional[Engine] = None
_SessionLocal: Optional[sessionmaker] = None


def configure_database(config: DatabaseConfig) -> None:
    """Point the engine at a new database; drops any existing engine."""
    global _db_config
    reset_engine()
    _db_config = config


def reset_engine() -> None:
    global _engine, _SessionLocal
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionLocal = None


def get_engine() -> Engine:
    """Get or create SQLAlchemy engine with connection pooling."""
    global _engine
    if _engine is None:
        url = _db_config.url
        if url.startswith("sqlite"):
            _engine = create_engine(
                url,
                connect_args={"check_same_thread": False, "timeout": 30},
                echo=False,
            )
        else:
            _engine = create_engine(
                url,
                pool_size=_db_config.pool_size,
                max_overflow=_db_config.max_overflow,
                pool_pre_ping=True,  # Verify connections before using
                pool_recycle=_db_config.pool_recycle_seconds,
                echo=False,
            )
    return _engine


def get_session_factory() -> sessionmaker:
    """Get or create session factory."""
    global _SessionLocal
    if _SessionLocal is None:
        _SessionLocal = sessionmaker(
            bind=get_engine(),
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
        )
    return _SessionLocal


@contextmanager
def get_db_session() -> Iterator[Session]:
    """
    Context manager for database sessions.

    Automatically commits on success, rolls back on exception.
    """
    SessionLocal = get_session_factory()
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
