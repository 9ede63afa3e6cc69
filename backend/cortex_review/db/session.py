"""Database engine and session management."""
from pathlib import Path
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import DeclarativeBase, sessionmaker
from sqlalchemy.pool import StaticPool


class Base(DeclarativeBase):
    """Base ORM model."""
    pass


def build_engine(database_url: str, echo: bool = False) -> Engine:
    """
    Create a synchronous engine for the key-value table.

    SQLite file databases get their parent directory created. In-memory
    SQLite uses a single shared connection so every session sees the same
    data.
    """
    url = make_url(database_url)
    if url.get_backend_name() != "sqlite":
        return create_engine(database_url, echo=echo, pool_pre_ping=True)

    connect_args = {"check_same_thread": False}
    if not url.database or url.database == ":memory:":
        return create_engine(
            database_url,
            echo=echo,
            connect_args=connect_args,
            poolclass=StaticPool,
        )

    Path(url.database).parent.mkdir(parents=True, exist_ok=True)
    return create_engine(database_url, echo=echo, connect_args=connect_args)


def build_sessionmaker(engine: Engine) -> sessionmaker:
    """Create a session factory bound to ``engine``."""
    return sessionmaker(
        bind=engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )


def init_db(engine: Engine) -> None:
    """Initialize database tables."""
    # Register ORM models with Base.metadata
    from cortex_review.db.models import KeyValueORM  # noqa: F401

    Base.metadata.create_all(engine)


def close_db(engine: Optional[Engine]) -> None:
    """Close database connections."""
    if engine is not None:
        engine.dispose()
