"""
Database session and base configuration.
"""
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import NullPool, StaticPool

from honeybadger.core.config import settings


def _engine_options(url: str) -> dict:
    """Pick pooling options for the configured database."""
    if url.startswith("sqlite"):
        options = {"connect_args": {"check_same_thread": False}}
        if url in ("sqlite://", "sqlite:///:memory:"):
            # In-memory databases live on a single shared connection
            options["poolclass"] = StaticPool
        return options
    if settings.ENV == "production":
        # Production: no pooling behind the managed pooler
        return {
            "poolclass": NullPool,
            "pool_pre_ping": True,
            "connect_args": {"options": "-c statement_timeout=30000"},
        }
    # Development: Use small pool
    return {
        "pool_size": 5,
        "max_overflow": 0,
        "pool_pre_ping": True,
        "pool_recycle": 3600,
    }


engine = create_engine(settings.DATABASE_URL, **_engine_options(settings.DATABASE_URL))

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """Get database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def session_scope(factory: sessionmaker = SessionLocal) -> Iterator[Session]:
    """Session for work done outside a request, e.g. socket events and deferred replies."""
    db = factory()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
