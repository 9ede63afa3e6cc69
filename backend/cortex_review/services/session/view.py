"""
Session/validation view binding.

Holds the current session, the validation collection keyed by finding id,
and the finding selected for editing. Progress is derived on every read, so
a write is reflected by the very next access. Listeners are called after
each state change.
"""
from typing import Callable, Dict, Iterable, List, Optional

from cortex_review.core.logging import get_logger
from cortex_review.db.repositories.validation import ValidationRepository, build_stats
from cortex_review.models.finding import Finding
from cortex_review.models.session import Session, SessionUpdate, ValidationProgress
from cortex_review.models.template import PromptTemplate
from cortex_review.models.validation import (
    Validation,
    ValidationStats,
    ValidationStatus,
    normalize_validations,
)
from cortex_review.services.session.manager import SessionManager

logger = get_logger(__name__)

Listener = Callable[["SessionView"], None]


class SessionView:
    """Read-through state for one session, consumed by the UI."""

    def __init__(
        self,
        manager: SessionManager,
        validations: ValidationRepository,
        session_id: Optional[str] = None,
    ) -> None:
        self._manager = manager
        self._repo = validations
        self._listeners: List[Listener] = []

        self.session: Optional[Session] = None
        self.loading = False
        self.error: Optional[str] = None
        self.selected_finding_id: Optional[str] = None
        self._validations: Dict[str, Validation] = {}

        if session_id:
            self.load(session_id)

    # ------------------------------------------------------------------
    # Change notification
    # ------------------------------------------------------------------
    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener; returns a callable that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    # ------------------------------------------------------------------
    # Derived state
    # ------------------------------------------------------------------
    @property
    def validations(self) -> Dict[str, Validation]:
        return dict(self._validations)

    @property
    def current_validation(self) -> Optional[Validation]:
        """Validation of the selected finding, if it has one."""
        if self.selected_finding_id is None:
            return None
        return self._validations.get(self.selected_finding_id)

    @property
    def progress(self) -> ValidationProgress:
        values = list(self._validations.values())
        if self.session is not None:
            total = self.session.total_findings
        else:
            total = len(values)

        validated = sum(1 for v in values if not v.is_pending)
        return ValidationProgress(
            total_findings=total,
            validated_findings=validated,
            confirmed_findings=sum(1 for v in values if v.status == ValidationStatus.CONFIRMED),
            false_positives=sum(1 for v in values if v.status == ValidationStatus.FALSE_POSITIVE),
            needs_review=sum(1 for v in values if v.status == ValidationStatus.NEEDS_REVIEW),
            percent_complete=(validated / total) * 100 if total > 0 else 0.0,
        )

    # ------------------------------------------------------------------
    # Session operations
    # ------------------------------------------------------------------
    def load(self, session_id: str) -> Optional[Session]:
        """Load a session by id; sets ``error`` when it does not resolve."""
        self.loading = True
        self.error = None
        try:
            session = self._manager.get_session(session_id)
            if session is None:
                self.session = None
                self._validations = {}
                self.error = "Session not found"
            else:
                self._adopt(session)
        except Exception as e:
            logger.error("session_load_failed", session_id=session_id, error=str(e))
            self.error = "Failed to load session"
            self.session = None
            self._validations = {}
            session = None
        finally:
            self.loading = False

        self._notify()
        return session

    def create_session(self, name: str) -> Optional[Session]:
        try:
            session = self._manager.create_session(name)
        except Exception as e:
            logger.error("session_create_failed", name=name, error=str(e))
            self.error = "Failed to create session"
            self._notify()
            return None

        self.error = None
        self.selected_finding_id = None
        self._adopt(session)
        self._notify()
        return session

    def update_session(self, updates: SessionUpdate) -> Optional[Session]:
        if self.session is None:
            return None
        return self._apply(self._manager.update_session(self.session.id, updates))

    def update_template(self, template: Optional[PromptTemplate]) -> Optional[Session]:
        if self.session is None:
            return None
        return self._apply(self._manager.update_template(self.session.id, template))

    def update_models(self, model_a_id: str, model_b_id: str) -> Optional[Session]:
        if self.session is None:
            return None
        return self._apply(
            self._manager.update_models(self.session.id, model_a_id, model_b_id)
        )

    def update_findings(
        self, results_a: Iterable[Finding], results_b: Iterable[Finding]
    ) -> Optional[Session]:
        """Ingest a new round of findings (replaces both result lists)."""
        if self.session is None:
            return None
        return self._apply(
            self._manager.update_findings(self.session.id, results_a, results_b)
        )

    # ------------------------------------------------------------------
    # Validation operations
    # ------------------------------------------------------------------
    def save_validation(self, validation: Validation) -> Optional[Session]:
        """
        Commit a validation.

        Without a loaded session only the in-memory collection changes.
        """
        if self.session is None:
            self._validations = _keyed([*self._validations.values(), validation])
            self._notify()
            return None
        return self._apply(self._repo.save_validation(self.session.id, validation))

    def select_validation(self, finding_id: str) -> Optional[Validation]:
        """Select a finding for editing, replacing any previous selection."""
        self.selected_finding_id = finding_id
        self._notify()
        return self.current_validation

    def clear_selection(self) -> None:
        self.selected_finding_id = None
        self._notify()

    def get_validation(self, finding_id: str) -> Optional[Validation]:
        return self._validations.get(finding_id)

    def get_status(self, finding_id: str) -> ValidationStatus:
        validation = self._validations.get(finding_id)
        return validation.status if validation else ValidationStatus.PENDING

    def get_all_validations(self) -> List[Validation]:
        return list(self._validations.values())

    def clear_validations(self) -> Optional[Session]:
        """Drop every validation and the current selection."""
        self.selected_finding_id = None
        return self.set_all_validations([])

    def set_all_validations(self, validations: Iterable[Validation]) -> Optional[Session]:
        """Replace the whole validation collection."""
        if self.session is None:
            self._validations = _keyed(validations)
            self._notify()
            return None
        return self._apply(self._repo.replace_validations(self.session.id, validations))

    def get_validation_stats(self) -> Optional[ValidationStats]:
        if self.session is None:
            return None
        return build_stats(self._validations.values())

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------
    def _adopt(self, session: Session) -> None:
        self.session = session
        self._validations = _keyed(session.validations)

    def _apply(self, session: Optional[Session]) -> Optional[Session]:
        if session is None:
            logger.debug(
                "session_write_skipped",
                session_id=self.session.id if self.session else None,
            )
            return None
        self._adopt(session)
        self._notify()
        return session


def _keyed(validations: Iterable[Validation]) -> Dict[str, Validation]:
    return {v.finding_id: v for v in normalize_validations(validations)}
