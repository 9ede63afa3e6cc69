"""Prompt template snapshot model."""
from pydantic import Field
from typing import List
from datetime import datetime
from enum import Enum

from cortex_review.models.base import CamelModel, utc_now


class AnalysisType(str, Enum):
    """Threat-modelling methodology."""
    STRIDE = "stride"
    STPA_SEC = "stpa-sec"
    CUSTOM = "custom"


class OutputFormat(str, Enum):
    """Expected model output format."""
    STRUCTURED = "structured"
    FREEFORM = "freeform"


class PromptTemplate(CamelModel):
    """방법론 템플릿 (세션에는 값 복사본으로 저장)."""
    id: str
    name: str
    description: str = ""
    template: str = ""
    variables: List[str] = Field(default_factory=list)
    analysis_type: AnalysisType = AnalysisType.CUSTOM
    expected_output_format: OutputFormat = OutputFormat.STRUCTURED
    version: str = "1.0"
    is_active: bool = True
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
