"""Analysis session models."""
from pydantic import Field, field_validator
from typing import List, Optional, Set
from datetime import datetime

from cortex_review.models.base import CamelModel, ensure_aware, utc_now
from cortex_review.models.finding import Finding
from cortex_review.models.template import PromptTemplate
from cortex_review.models.validation import (
    Validation,
    ValidationStatus,
    normalize_validations,
)


class Progress(CamelModel):
    """세션 진행 카운터 (항상 재계산, 직접 수정 금지)."""
    total_findings: int = 0
    validated_findings: int = 0
    confirmed_findings: int = 0
    false_positives: int = 0


class ValidationProgress(Progress):
    """화면용 확장 진행 정보."""
    needs_review: int = 0
    percent_complete: float = 0.0


class Session(CamelModel):
    """분석 세션: 템플릿, 두 모델의 findings, 그리고 검증 결과."""
    id: str
    name: str
    prompt_template: Optional[PromptTemplate] = None
    architecture_diagram: Optional[str] = None
    model_a_id: str = ""
    model_b_id: str = ""
    model_a_results: List[Finding] = Field(default_factory=list)
    model_b_results: List[Finding] = Field(default_factory=list)
    validations: List[Validation] = Field(default_factory=list)
    progress: Progress = Field(default_factory=Progress)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @field_validator("validations")
    @classmethod
    def collapse_validations(cls, v: List[Validation]) -> List[Validation]:
        """Keep one record per finding and drop pending entries."""
        return normalize_validations(v)

    @field_validator("created_at", "updated_at")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        return ensure_aware(v)

    @property
    def total_findings(self) -> int:
        return len(self.model_a_results) + len(self.model_b_results)

    def finding_ids(self) -> Set[str]:
        """IDs of all findings currently held by either model."""
        return {f.id for f in self.model_a_results} | {f.id for f in self.model_b_results}

    def derived_progress(self) -> Progress:
        """Recompute the four progress counters from findings and validations."""
        return Progress(
            total_findings=self.total_findings,
            validated_findings=sum(1 for v in self.validations if not v.is_pending),
            confirmed_findings=self._count(ValidationStatus.CONFIRMED),
            false_positives=self._count(ValidationStatus.FALSE_POSITIVE),
        )

    def _count(self, status: ValidationStatus) -> int:
        return sum(1 for v in self.validations if v.status == status)


class SessionUpdate(CamelModel):
    """세션 업데이트 요청.

    Findings, validations and progress have their own write paths and
    cannot be set here.
    """
    name: Optional[str] = None
    prompt_template: Optional[PromptTemplate] = None
    architecture_diagram: Optional[str] = None
    model_a_id: Optional[str] = None
    model_b_id: Optional[str] = None

    @field_validator("name", "model_a_id", "model_b_id")
    @classmethod
    def not_null(cls, v: Optional[str]) -> str:
        """These fields can be changed but not cleared."""
        if v is None:
            raise ValueError("must not be null")
        return v


class SessionSummary(CamelModel):
    """세션 목록 항목."""
    id: str
    name: str
    model_a_id: str
    model_b_id: str
    progress: Progress
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_session(cls, session: Session) -> "SessionSummary":
        return cls(
            id=session.id,
            name=session.name,
            model_a_id=session.model_a_id,
            model_b_id=session.model_b_id,
            progress=session.progress,
            created_at=session.created_at,
            updated_at=session.updated_at,
        )
