"""Session store: the persisted session collection."""
import json
import secrets
import string
import time
from datetime import datetime
from typing import Callable, List, Optional

from pydantic import TypeAdapter, ValidationError

from cortex_review.core.errors import CorruptStorageError, InvalidImportError
from cortex_review.core.logging import get_logger, log_error
from cortex_review.db.kv import KeyValueStore
from cortex_review.models.base import utc_now
from cortex_review.models.session import Session

logger = get_logger(__name__)

DEFAULT_STORAGE_KEY = "cortex_security_sessions"

_SESSION_LIST = TypeAdapter(List[Session])
_ID_ALPHABET = string.ascii_lowercase + string.digits


def new_session_id() -> str:
    """Mint a session id: epoch milliseconds plus a random suffix."""
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
    return f"session_{int(time.time() * 1000)}_{suffix}"


class SessionStore:
    """
    Repository for the session collection.

    The whole collection lives as one JSON array under a single key of the
    key-value medium. Every write is a full read-modify-write of that array;
    the last write wins.
    """

    def __init__(
        self,
        kv: KeyValueStore,
        storage_key: str = DEFAULT_STORAGE_KEY,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize store with a key-value medium."""
        self._kv = kv
        self._key = storage_key
        self._clock = clock

    @property
    def clock(self) -> Callable[[], datetime]:
        return self._clock

    def list_all(self) -> List[Session]:
        """List sessions, most recently updated first."""
        sessions = self._read_all()
        sessions.sort(key=lambda s: s.updated_at, reverse=True)
        return sessions

    def get(self, session_id: str) -> Optional[Session]:
        """Get session by ID."""
        for session in self._read_all():
            if session.id == session_id:
                return session
        return None

    def save(self, session: Session, now: Optional[datetime] = None) -> Session:
        """
        Insert or replace a session by ID.

        ``updated_at`` is stamped with ``now`` (the store clock by default).
        Validations are re-normalized on the way in.

        Returns:
            The stored copy
        """
        stamp = now or self._clock()
        if stamp < session.created_at:
            stamp = session.created_at

        data = session.model_dump()
        data["updated_at"] = stamp
        stored = Session.model_validate(data)

        sessions = self._read_all()
        for index, existing in enumerate(sessions):
            if existing.id == stored.id:
                sessions[index] = stored
                break
        else:
            sessions.append(stored)

        self._write_all(sessions)
        logger.debug("session_saved", session_id=stored.id, total=len(sessions))
        return stored

    def delete(self, session_id: str) -> bool:
        """
        Delete session.

        Returns:
            True if a session was removed, False if it did not exist
        """
        sessions = self._read_all()
        remaining = [s for s in sessions if s.id != session_id]
        if len(remaining) == len(sessions):
            return False

        self._write_all(remaining)
        logger.info("session_deleted", session_id=session_id)
        return True

    def export(self, session_id: str) -> Optional[str]:
        """Serialize one session as pretty-printed JSON."""
        session = self.get(session_id)
        if session is None:
            return None
        return session.model_dump_json(by_alias=True, indent=2)

    def import_session(self, serialized: str) -> Optional[Session]:
        """
        Import a serialized session under a newly minted ID.

        Unknown fields are ignored and progress is recomputed from the
        imported findings and validations.

        Returns:
            The stored session, or None if the payload is not a session
        """
        try:
            data = json.loads(serialized)
            if not isinstance(data, dict):
                raise ValueError("session payload must be a JSON object")
            original_id = data.get("id")
            data["id"] = new_session_id()
            imported = Session.model_validate(data)
        except ValueError as e:
            log_error(
                logger,
                InvalidImportError(
                    message=f"Failed to import session: {e}",
                    original_error=e,
                ),
            )
            return None

        imported = imported.model_copy(update={"progress": imported.derived_progress()})
        stored = self.save(imported)
        logger.info("session_imported", session_id=stored.id, original_id=original_id)
        return stored

    def clear(self) -> None:
        """Remove the whole collection."""
        self._kv.remove_item(self._key)
        logger.info("session_store_cleared", storage_key=self._key)

    def _read_all(self) -> List[Session]:
        raw = self._kv.get_item(self._key)
        if not raw:
            return []
        try:
            return _SESSION_LIST.validate_json(raw)
        except ValidationError as e:
            log_error(
                logger,
                CorruptStorageError(
                    message="Stored sessions could not be parsed; reading as empty",
                    operation="read_all",
                    storage_key=self._key,
                    original_error=e,
                ),
            )
            return []

    def _write_all(self, sessions: List[Session]) -> None:
        payload = _SESSION_LIST.dump_json(sessions, by_alias=True)
        self._kv.set_item(self._key, payload.decode("utf-8"))
