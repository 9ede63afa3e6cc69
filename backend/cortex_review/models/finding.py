"""Security finding models."""
from pydantic import ConfigDict, Field
from typing import List, Optional
from datetime import datetime
from enum import Enum

from cortex_review.models.base import CamelModel, utc_now


class Severity(str, Enum):
    """Finding severity levels."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class Finding(CamelModel):
    """모델이 보고한 단일 보안 이슈 (저장 후 변경 불가)."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    description: str
    severity: Severity = Severity.MEDIUM
    category: str = "General"
    model_source: str = ""
    confidence: Optional[float] = None
    cwe_id: Optional[str] = None
    mitigations: Optional[List[str]] = None
    created_at: datetime = Field(default_factory=utc_now)
