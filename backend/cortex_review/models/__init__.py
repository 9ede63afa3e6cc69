"""Domain models."""
from cortex_review.models.finding import Finding, Severity
from cortex_review.models.session import (
    Progress,
    Session,
    SessionSummary,
    SessionUpdate,
    ValidationProgress,
)
from cortex_review.models.template import AnalysisType, OutputFormat, PromptTemplate
from cortex_review.models.validation import (
    AverageScores,
    ModelPerformance,
    Validation,
    ValidationStats,
    ValidationStatus,
)

__all__ = [
    "AnalysisType",
    "AverageScores",
    "Finding",
    "ModelPerformance",
    "OutputFormat",
    "Progress",
    "PromptTemplate",
    "Session",
    "SessionSummary",
    "SessionUpdate",
    "Severity",
    "Validation",
    "ValidationProgress",
    "ValidationStats",
    "ValidationStatus",
]
