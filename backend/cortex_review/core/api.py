"""API 응답 envelope."""
from typing import Any, Generic, Optional, TypeVar
from pydantic import BaseModel, Field
from datetime import datetime, timezone
from uuid import uuid4

from cortex_review.core.errors import ErrorCode, ErrorResponse


T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """
    Envelope returned by every /api/v1 endpoint.

    ``data`` carries camelCase session payloads; the envelope's own fields
    stay snake_case.
    """

    success: bool
    data: Optional[T] = None
    error: Optional[ErrorResponse] = None
    request_id: str = Field(default_factory=lambda: str(uuid4()))
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def success_response(cls, data: T, request_id: Optional[str] = None) -> "ApiResponse[T]":
        return cls(success=True, data=data, request_id=request_id or str(uuid4()))

    @classmethod
    def error_response(
        cls,
        code: ErrorCode,
        message: str,
        details: Optional[dict[str, Any]] = None,
        request_id: Optional[str] = None,
    ) -> "ApiResponse[None]":
        return cls(
            success=False,
            error=ErrorResponse(code=code, message=message, details=details or {}),
            request_id=request_id or str(uuid4()),
        )

    @classmethod
    def not_found(
        cls,
        session_id: str,
        finding_id: Optional[str] = None,
        request_id: Optional[str] = None,
    ) -> "ApiResponse[None]":
        """
        세션 또는 검증 결과 없음.

        Args:
            session_id: 요청한 세션 ID
            finding_id: 검증 조회일 때 finding ID
            request_id: 요청 ID
        """
        details: dict[str, Any] = {"session_id": session_id}
        if finding_id is None:
            message = f"Session '{session_id}' not found"
        else:
            details["finding_id"] = finding_id
            message = f"Validation for finding '{finding_id}' not found"
        return cls.error_response(
            code=ErrorCode.NOT_FOUND,
            message=message,
            details=details,
            request_id=request_id,
        )
