"""Session and validation API endpoints."""
import json
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, Response, status
from pydantic import Field, field_validator

from cortex_review.api.deps import (
    get_current_request_id,
    get_finding_extractor,
    get_session_manager,
    get_validation_repository,
)
from cortex_review.core.api import ApiResponse
from cortex_review.core.config import get_settings
from cortex_review.core.errors import ErrorCode
from cortex_review.core.logging import get_logger
from cortex_review.db.repositories.validation import ValidationRepository
from cortex_review.models.base import CamelModel, utc_now
from cortex_review.models.finding import Finding
from cortex_review.models.session import SessionSummary, SessionUpdate
from cortex_review.models.template import AnalysisType
from cortex_review.models.validation import Validation, ValidationStatus
from cortex_review.services.findings.extractor import FindingExtractor
from cortex_review.services.session.manager import SessionManager

logger = get_logger(__name__)
router = APIRouter()


# =============================================================================
# Request models (input constraints live here, not in the core models)
# =============================================================================
class SessionCreateRequest(CamelModel):
    """세션 생성 요청."""
    name: str = Field(..., min_length=1, max_length=200)


class FindingsUpdateRequest(CamelModel):
    """Findings 교체 요청."""
    model_a_results: List[Finding] = Field(default_factory=list)
    model_b_results: List[Finding] = Field(default_factory=list)

    @field_validator("model_a_results", "model_b_results")
    @classmethod
    def check_findings(cls, v: List[Finding]) -> List[Finding]:
        seen = set()
        for finding in v:
            if finding.confidence is not None and not 0 <= finding.confidence <= 100:
                raise ValueError(f"confidence of {finding.id} must be within 0-100")
            if finding.id in seen:
                raise ValueError(f"duplicate finding id {finding.id}")
            seen.add(finding.id)
        return v


class FindingsExtractRequest(CamelModel):
    """모델 응답 텍스트에서 findings 추출 요청."""
    model_a_response: str = ""
    model_b_response: str = ""
    analysis_type: AnalysisType = AnalysisType.CUSTOM


class ValidationUpsertRequest(CamelModel):
    """검증 저장 요청."""
    status: ValidationStatus
    accuracy: int = Field(3, ge=1, le=5)
    completeness: int = Field(3, ge=1, le=5)
    relevance: int = Field(3, ge=1, le=5)
    actionability: int = Field(3, ge=1, le=5)
    notes: str = ""
    validated_by: Optional[str] = None

    def to_validation(self, finding_id: str) -> Validation:
        return Validation(
            finding_id=finding_id,
            status=self.status,
            accuracy=self.accuracy,
            completeness=self.completeness,
            relevance=self.relevance,
            actionability=self.actionability,
            notes=self.notes,
            validated_by=self.validated_by or get_settings().default_validator,
            validated_at=utc_now(),
        )


def _not_found(
    response: Response,
    request_id: str,
    session_id: str,
    finding_id: Optional[str] = None,
) -> ApiResponse:
    response.status_code = status.HTTP_404_NOT_FOUND
    return ApiResponse.not_found(session_id, finding_id, request_id=request_id)


# =============================================================================
# Sessions
# =============================================================================
@router.get("/", response_model=ApiResponse)
async def list_sessions(
    manager: SessionManager = Depends(get_session_manager),
    request_id: str = Depends(get_current_request_id),
):
    """List sessions, most recently updated first."""
    sessions = manager.list_sessions()
    return ApiResponse.success_response(
        data=[SessionSummary.from_session(s).to_dict() for s in sessions],
        request_id=request_id,
    )


@router.post("/", response_model=ApiResponse, status_code=status.HTTP_201_CREATED)
async def create_session(
    payload: SessionCreateRequest,
    manager: SessionManager = Depends(get_session_manager),
    request_id: str = Depends(get_current_request_id),
):
    """Create an empty session."""
    session = manager.create_session(payload.name)
    return ApiResponse.success_response(data=session.to_dict(), request_id=request_id)


@router.post("/import", response_model=ApiResponse, status_code=status.HTTP_201_CREATED)
async def import_session(
    response: Response,
    payload: Dict[str, Any] = Body(...),
    manager: SessionManager = Depends(get_session_manager),
    request_id: str = Depends(get_current_request_id),
):
    """Import an exported session under a new id."""
    session = manager.store.import_session(json.dumps(payload))
    if session is None:
        response.status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
        return ApiResponse.error_response(
            code=ErrorCode.INVALID_INPUT,
            message="Payload is not a valid session",
            request_id=request_id,
        )
    return ApiResponse.success_response(data=session.to_dict(), request_id=request_id)


@router.get("/{session_id}", response_model=ApiResponse)
async def get_session(
    session_id: str,
    response: Response,
    manager: SessionManager = Depends(get_session_manager),
    request_id: str = Depends(get_current_request_id),
):
    """Get a session."""
    session = manager.get_session(session_id)
    if session is None:
        return _not_found(response, request_id, session_id)
    return ApiResponse.success_response(data=session.to_dict(), request_id=request_id)


@router.patch("/{session_id}", response_model=ApiResponse)
async def update_session(
    session_id: str,
    updates: SessionUpdate,
    response: Response,
    manager: SessionManager = Depends(get_session_manager),
    request_id: str = Depends(get_current_request_id),
):
    """Update name, template snapshot, diagram or model ids."""
    session = manager.update_session(session_id, updates)
    if session is None:
        return _not_found(response, request_id, session_id)
    return ApiResponse.success_response(data=session.to_dict(), request_id=request_id)


@router.delete("/{session_id}", response_model=ApiResponse)
async def delete_session(
    session_id: str,
    manager: SessionManager = Depends(get_session_manager),
    request_id: str = Depends(get_current_request_id),
):
    """Delete a session. Deleting an unknown id succeeds."""
    deleted = manager.delete_session(session_id)
    return ApiResponse.success_response(
        data={"session_id": session_id, "deleted": deleted},
        request_id=request_id,
    )


@router.get("/{session_id}/export")
async def export_session(
    session_id: str,
    response: Response,
    manager: SessionManager = Depends(get_session_manager),
    request_id: str = Depends(get_current_request_id),
):
    """Download a session as pretty-printed JSON."""
    exported = manager.store.export(session_id)
    if exported is None:
        return _not_found(response, request_id, session_id)
    return Response(
        content=exported,
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{session_id}.json"'},
    )


@router.post("/{session_id}/progress", response_model=ApiResponse)
async def recompute_progress(
    session_id: str,
    response: Response,
    manager: SessionManager = Depends(get_session_manager),
    request_id: str = Depends(get_current_request_id),
):
    """Recompute progress counters."""
    session = manager.update_session_progress(session_id)
    if session is None:
        return _not_found(response, request_id, session_id)
    return ApiResponse.success_response(data=session.progress.to_dict(), request_id=request_id)


# =============================================================================
# Findings
# =============================================================================
@router.put("/{session_id}/findings", response_model=ApiResponse)
async def replace_findings(
    session_id: str,
    payload: FindingsUpdateRequest,
    response: Response,
    manager: SessionManager = Depends(get_session_manager),
    request_id: str = Depends(get_current_request_id),
):
    """Replace both models' findings."""
    session = manager.update_findings(
        session_id, payload.model_a_results, payload.model_b_results
    )
    if session is None:
        return _not_found(response, request_id, session_id)
    return ApiResponse.success_response(data=session.to_dict(), request_id=request_id)


@router.post("/{session_id}/findings/extract", response_model=ApiResponse)
async def extract_findings(
    session_id: str,
    payload: FindingsExtractRequest,
    response: Response,
    manager: SessionManager = Depends(get_session_manager),
    extractor: FindingExtractor = Depends(get_finding_extractor),
    request_id: str = Depends(get_current_request_id),
):
    """Parse both models' raw responses and ingest the findings."""
    session = manager.get_session(session_id)
    if session is None:
        return _not_found(response, request_id, session_id)

    results_a = extractor.extract_findings(
        payload.model_a_response, payload.analysis_type, session.model_a_id or "model-a"
    )
    results_b = extractor.extract_findings(
        payload.model_b_response, payload.analysis_type, session.model_b_id or "model-b"
    )
    session = manager.update_findings(session_id, results_a, results_b)
    if session is None:
        return _not_found(response, request_id, session_id)
    return ApiResponse.success_response(data=session.to_dict(), request_id=request_id)


# =============================================================================
# Validations
# =============================================================================
@router.get("/{session_id}/validations", response_model=ApiResponse)
async def list_validations(
    session_id: str,
    response: Response,
    manager: SessionManager = Depends(get_session_manager),
    repo: ValidationRepository = Depends(get_validation_repository),
    request_id: str = Depends(get_current_request_id),
):
    """List a session's validations."""
    if manager.get_session(session_id) is None:
        return _not_found(response, request_id, session_id)
    validations = repo.get_all_validations(session_id)
    return ApiResponse.success_response(
        data=[v.to_dict() for v in validations],
        request_id=request_id,
    )


@router.get("/{session_id}/validations/stats", response_model=ApiResponse)
async def validation_stats(
    session_id: str,
    response: Response,
    manager: SessionManager = Depends(get_session_manager),
    repo: ValidationRepository = Depends(get_validation_repository),
    request_id: str = Depends(get_current_request_id),
):
    """Counts per status and mean scores."""
    if manager.get_session(session_id) is None:
        return _not_found(response, request_id, session_id)
    stats = repo.get_validation_stats(session_id)
    return ApiResponse.success_response(data=stats.to_dict(), request_id=request_id)


@router.get("/{session_id}/validations/{finding_id}", response_model=ApiResponse)
async def get_validation(
    session_id: str,
    finding_id: str,
    response: Response,
    repo: ValidationRepository = Depends(get_validation_repository),
    request_id: str = Depends(get_current_request_id),
):
    """Get the validation of one finding."""
    validation = repo.get_validation(session_id, finding_id)
    if validation is None:
        return _not_found(response, request_id, session_id, finding_id)
    return ApiResponse.success_response(data=validation.to_dict(), request_id=request_id)


@router.put("/{session_id}/validations/{finding_id}", response_model=ApiResponse)
async def save_validation(
    session_id: str,
    finding_id: str,
    payload: ValidationUpsertRequest,
    response: Response,
    repo: ValidationRepository = Depends(get_validation_repository),
    request_id: str = Depends(get_current_request_id),
):
    """Save a validation; status "pending" removes the record."""
    session = repo.save_validation(session_id, payload.to_validation(finding_id))
    if session is None:
        return _not_found(response, request_id, session_id)
    return ApiResponse.success_response(data=session.to_dict(), request_id=request_id)


@router.delete("/{session_id}/validations/{finding_id}", response_model=ApiResponse)
async def delete_validation(
    session_id: str,
    finding_id: str,
    response: Response,
    repo: ValidationRepository = Depends(get_validation_repository),
    request_id: str = Depends(get_current_request_id),
):
    """Remove a finding's validation."""
    session = repo.delete_validation(session_id, finding_id)
    if session is None:
        return _not_found(response, request_id, session_id)
    return ApiResponse.success_response(data=session.to_dict(), request_id=request_id)


@router.get("/{session_id}/performance", response_model=ApiResponse)
async def model_performance(
    session_id: str,
    response: Response,
    manager: SessionManager = Depends(get_session_manager),
    repo: ValidationRepository = Depends(get_validation_repository),
    request_id: str = Depends(get_current_request_id),
):
    """Per-model validation results."""
    if manager.get_session(session_id) is None:
        return _not_found(response, request_id, session_id)
    performance = repo.get_model_performance(session_id)
    return ApiResponse.success_response(
        data=[p.to_dict() for p in performance],
        request_id=request_id,
    )
