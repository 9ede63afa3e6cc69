"""Validation models."""
from pydantic import Field
from typing import Iterable, List
from datetime import datetime
from enum import Enum

from cortex_review.models.base import CamelModel, utc_now


class ValidationStatus(str, Enum):
    """Analyst verdict for a finding.

    ``PENDING`` means "not yet judged" and is never stored: a pending
    validation is the same thing as no validation record at all.
    """
    PENDING = "pending"
    CONFIRMED = "confirmed"
    FALSE_POSITIVE = "false-positive"
    NEEDS_REVIEW = "needs-review"


SCORE_FIELDS = ("accuracy", "completeness", "relevance", "actionability")


class Validation(CamelModel):
    """분석가의 finding 품질 판정.

    Scores are 1-5; bounds are enforced by the request models at the API
    edge, not here.
    """
    finding_id: str
    status: ValidationStatus = ValidationStatus.PENDING
    accuracy: int = 3
    completeness: int = 3
    relevance: int = 3
    actionability: int = 3
    notes: str = ""
    validated_by: str = ""
    validated_at: datetime = Field(default_factory=utc_now)

    @property
    def is_pending(self) -> bool:
        return self.status == ValidationStatus.PENDING


def normalize_validations(validations: Iterable[Validation]) -> List[Validation]:
    """
    Collapse a validation sequence to at most one record per finding.

    Later entries win. A pending entry removes any earlier record for its
    finding. Surviving records keep the position of their first appearance.
    """
    by_finding: dict[str, Validation] = {}
    for validation in validations:
        if validation.is_pending:
            by_finding.pop(validation.finding_id, None)
        else:
            by_finding[validation.finding_id] = validation
    return list(by_finding.values())


class AverageScores(CamelModel):
    """평균 품질 점수."""
    accuracy: float = 0.0
    completeness: float = 0.0
    relevance: float = 0.0
    actionability: float = 0.0


class ValidationStats(CamelModel):
    """세션 검증 통계."""
    total: int = 0
    confirmed: int = 0
    false_positives: int = 0
    needs_review: int = 0
    pending: int = 0
    average_scores: AverageScores = Field(default_factory=AverageScores)


class ModelPerformance(CamelModel):
    """모델별 검증 성과."""
    model_id: str
    total_findings: int = 0
    confirmed_findings: int = 0
    false_positives: int = 0
    accuracy: float = 0.0
    completeness: float = 0.0
    relevance: float = 0.0
    actionability: float = 0.0


def average_scores(validations: Iterable[Validation]) -> AverageScores:
    """Mean of each score over non-pending validations (0 when none)."""
    scored = [v for v in validations if not v.is_pending]
    if not scored:
        return AverageScores()
    count = len(scored)
    return AverageScores(
        **{
            name: sum(getattr(v, name) for v in scored) / count
            for name in SCORE_FIELDS
        }
    )
