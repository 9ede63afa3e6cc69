"""Session lifecycle: creation, updates, findings ingestion, progress."""
from typing import Iterable, List, Literal, Optional

from cortex_review.core.logging import get_logger
from cortex_review.db.repositories.session import SessionStore, new_session_id
from cortex_review.models.finding import Finding
from cortex_review.models.session import Progress, Session, SessionUpdate
from cortex_review.models.template import PromptTemplate

logger = get_logger(__name__)

OrphanPolicy = Literal["retain", "prune"]


class SessionManager:
    """
    Keeps session invariants across store writes.

    Every write returns the stored session. Operations on a session id that
    does not exist return None without raising; the session may have been
    deleted by another caller.
    """

    def __init__(self, store: SessionStore, orphan_policy: OrphanPolicy = "retain"):
        """
        Initialize session manager.

        Args:
            store: Session store
            orphan_policy: What happens to validations whose finding vanished
                after a findings replacement ("retain" keeps them, "prune"
                drops them)
        """
        self._store = store
        self._orphan_policy = orphan_policy

    @property
    def store(self) -> SessionStore:
        return self._store

    def list_sessions(self) -> List[Session]:
        return self._store.list_all()

    def get_session(self, session_id: str) -> Optional[Session]:
        return self._store.get(session_id)

    def create_session(self, name: str) -> Session:
        """Create and persist an empty session."""
        now = self._store.clock()
        session = Session(
            id=new_session_id(),
            name=name,
            created_at=now,
            updated_at=now,
        )
        stored = self._store.save(session, now=now)
        logger.info("session_created", session_id=stored.id, name=name)
        return stored

    def update_session(
        self, session_id: str, updates: SessionUpdate
    ) -> Optional[Session]:
        """Merge the fields set on ``updates`` into the session."""
        session = self._store.get(session_id)
        if session is None:
            return None

        changes = updates.model_dump(exclude_unset=True)
        merged = Session.model_validate({**session.model_dump(), **changes})
        stored = self._store.save(merged)
        logger.info("session_updated", session_id=session_id, fields=sorted(changes))
        return stored

    def update_template(
        self, session_id: str, template: Optional[PromptTemplate]
    ) -> Optional[Session]:
        """Store a snapshot of ``template`` on the session."""
        return self.update_session(session_id, SessionUpdate(prompt_template=template))

    def update_models(
        self, session_id: str, model_a_id: str, model_b_id: str
    ) -> Optional[Session]:
        return self.update_session(
            session_id, SessionUpdate(model_a_id=model_a_id, model_b_id=model_b_id)
        )

    def update_findings(
        self,
        session_id: str,
        results_a: Iterable[Finding],
        results_b: Iterable[Finding],
    ) -> Optional[Session]:
        """
        Replace both result lists and recompute progress.

        This is a full replacement, not an append. Validations for findings
        that are no longer present are kept or dropped according to the
        orphan policy.
        """
        session = self._store.get(session_id)
        if session is None:
            return None

        results_a = list(results_a)
        results_b = list(results_b)
        validations = session.validations
        if self._orphan_policy == "prune":
            current_ids = {f.id for f in results_a} | {f.id for f in results_b}
            validations = [v for v in validations if v.finding_id in current_ids]
            pruned = len(session.validations) - len(validations)
            if pruned:
                logger.info("orphan_validations_pruned", session_id=session_id, count=pruned)

        updated = session.model_copy(
            update={
                "model_a_results": results_a,
                "model_b_results": results_b,
                "validations": validations,
            }
        )
        updated = updated.model_copy(update={"progress": self.compute_progress(updated)})
        stored = self._store.save(updated)
        logger.info(
            "session_findings_updated",
            session_id=session_id,
            model_a=len(results_a),
            model_b=len(results_b),
        )
        return stored

    def update_session_progress(self, session_id: str) -> Optional[Session]:
        """
        Recompute all progress counters from findings and validations.

        Writes only when the counters changed, so repeated calls leave the
        stored session untouched.
        """
        session = self._store.get(session_id)
        if session is None:
            return None

        progress = self.compute_progress(session)
        if progress == session.progress:
            return session
        return self._store.save(session.model_copy(update={"progress": progress}))

    def delete_session(self, session_id: str) -> bool:
        return self._store.delete(session_id)

    @staticmethod
    def compute_progress(session: Session) -> Progress:
        return session.derived_progress()
