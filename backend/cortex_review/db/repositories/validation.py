"""Validation repository: validations embedded in a session."""
from typing import Dict, Iterable, List, Optional

from cortex_review.core.logging import get_logger
from cortex_review.db.repositories.session import SessionStore
from cortex_review.models.finding import Finding
from cortex_review.models.session import Session
from cortex_review.models.validation import (
    ModelPerformance,
    Validation,
    ValidationStats,
    ValidationStatus,
    average_scores,
    normalize_validations,
)

logger = get_logger(__name__)


class ValidationRepository:
    """Repository for the validations of one session at a time.

    Missing sessions are a silent no-op: writes return None and reads
    return empty results.
    """

    def __init__(self, store: SessionStore) -> None:
        """Initialize repository with the session store."""
        self._store = store

    def save_validation(
        self, session_id: str, validation: Validation
    ) -> Optional[Session]:
        """
        Upsert a validation for its finding.

        A pending validation removes the finding's record instead of
        storing it. Progress is recomputed before the single write.

        Returns:
            Updated session, or None if the session does not exist
        """
        session = self._store.get(session_id)
        if session is None:
            logger.debug(
                "validation_save_skipped",
                session_id=session_id,
                finding_id=validation.finding_id,
            )
            return None

        updated = self._write(session, [*session.validations, validation])
        logger.info(
            "validation_saved",
            session_id=session_id,
            finding_id=validation.finding_id,
            status=validation.status.value,
        )
        return updated

    def get_validation(
        self, session_id: str, finding_id: str
    ) -> Optional[Validation]:
        """Get validation for a finding."""
        for validation in self.get_all_validations(session_id):
            if validation.finding_id == finding_id:
                return validation
        return None

    def get_all_validations(self, session_id: str) -> List[Validation]:
        """Get all validations of a session in insertion order."""
        session = self._store.get(session_id)
        if session is None:
            return []
        return list(session.validations)

    def delete_validation(
        self, session_id: str, finding_id: str
    ) -> Optional[Session]:
        """Remove a finding's validation if present."""
        session = self._store.get(session_id)
        if session is None:
            return None

        remaining = [v for v in session.validations if v.finding_id != finding_id]
        if len(remaining) == len(session.validations):
            logger.debug(
                "validation_delete_skipped", session_id=session_id, finding_id=finding_id
            )
            return session

        updated = self._write(session, remaining)
        logger.info("validation_deleted", session_id=session_id, finding_id=finding_id)
        return updated

    def replace_validations(
        self, session_id: str, validations: Iterable[Validation]
    ) -> Optional[Session]:
        """Replace the whole validation collection of a session."""
        session = self._store.get(session_id)
        if session is None:
            return None
        return self._write(session, validations)

    def get_validation_stats(self, session_id: str) -> ValidationStats:
        """Counts per status and mean scores over non-pending validations."""
        validations = self.get_all_validations(session_id)
        return build_stats(validations)

    def get_model_performance(self, session_id: str) -> List[ModelPerformance]:
        """Per-model counts and mean scores for model A and model B."""
        session = self._store.get(session_id)
        if session is None:
            return []

        by_finding = {v.finding_id: v for v in session.validations}
        return [
            _model_performance(session.model_a_id or "model-a", session.model_a_results, by_finding),
            _model_performance(session.model_b_id or "model-b", session.model_b_results, by_finding),
        ]

    def _write(self, session: Session, validations: Iterable[Validation]) -> Session:
        session = session.model_copy(
            update={"validations": normalize_validations(validations)}
        )
        session = session.model_copy(update={"progress": session.derived_progress()})
        return self._store.save(session)


def build_stats(validations: Iterable[Validation]) -> ValidationStats:
    """Aggregate a validation collection into ValidationStats."""
    validations = list(validations)
    statuses = [v.status for v in validations]
    return ValidationStats(
        total=len(validations),
        confirmed=statuses.count(ValidationStatus.CONFIRMED),
        false_positives=statuses.count(ValidationStatus.FALSE_POSITIVE),
        needs_review=statuses.count(ValidationStatus.NEEDS_REVIEW),
        pending=statuses.count(ValidationStatus.PENDING),
        average_scores=average_scores(validations),
    )


def _model_performance(
    model_id: str,
    findings: List[Finding],
    by_finding: Dict[str, Validation],
) -> ModelPerformance:
    validations = [by_finding[f.id] for f in findings if f.id in by_finding]
    stats = build_stats(validations)
    return ModelPerformance(
        model_id=model_id,
        total_findings=len(findings),
        confirmed_findings=stats.confirmed,
        false_positives=stats.false_positives,
        **stats.average_scores.model_dump(),
    )
