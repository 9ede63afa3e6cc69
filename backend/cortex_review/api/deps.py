"""API dependencies."""
from functools import lru_cache
from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.engine import Engine

from cortex_review.core.config import Settings, get_settings
from cortex_review.core.logging import get_logger
from cortex_review.core.middleware import get_request_id
from cortex_review.db.kv import InMemoryKeyValueStore, KeyValueStore, SqlKeyValueStore
from cortex_review.db.repositories.session import SessionStore
from cortex_review.db.repositories.validation import ValidationRepository
from cortex_review.db.session import build_engine, build_sessionmaker, close_db, init_db
from cortex_review.services.findings.extractor import FindingExtractor
from cortex_review.services.session.manager import SessionManager

logger = get_logger(__name__)

_engine: Optional[Engine] = None


def build_key_value_store(settings: Settings) -> KeyValueStore:
    """Create the key-value medium selected by ``storage_backend``."""
    global _engine
    if settings.storage_backend == "memory":
        logger.info("storage_initialized", backend="memory")
        return InMemoryKeyValueStore()

    _engine = build_engine(settings.database_url, echo=settings.debug)
    init_db(_engine)
    logger.info("storage_initialized", backend="sql", url=_engine.url.render_as_string(hide_password=True))
    return SqlKeyValueStore(build_sessionmaker(_engine))


def dispose_storage() -> None:
    """Release database connections and forget the cached store."""
    global _engine
    close_db(_engine)
    _engine = None
    get_session_store.cache_clear()


@lru_cache
def get_session_store() -> SessionStore:
    """Get the process-wide session store."""
    settings = get_settings()
    return SessionStore(build_key_value_store(settings), storage_key=settings.storage_key)


def get_session_manager(
    store: SessionStore = Depends(get_session_store),
) -> SessionManager:
    return SessionManager(store, orphan_policy=get_settings().orphan_validation_policy)


def get_validation_repository(
    store: SessionStore = Depends(get_session_store),
) -> ValidationRepository:
    return ValidationRepository(store)


def get_finding_extractor() -> FindingExtractor:
    return FindingExtractor()


def get_current_request_id(request: Request) -> str:
    """Request ID assigned by RequestContextMiddleware."""
    return get_request_id(request)
