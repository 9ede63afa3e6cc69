"""Error codes for the HTTP envelope and the storage error hierarchy."""
from typing import Any, Optional
from enum import Enum
from pydantic import BaseModel, Field


class ErrorCode(str, Enum):
    """API 에러 코드."""

    VALIDATION_ERROR = "VALIDATION_001"
    INVALID_INPUT = "VALIDATION_002"
    NOT_FOUND = "NOT_FOUND_002"
    INTERNAL_ERROR = "INTERNAL_005"
    STORAGE_ERROR = "INTERNAL_006"


class ErrorResponse(BaseModel):
    """Error part of an ApiResponse."""

    code: ErrorCode
    message: str
    details: dict[str, Any] = Field(default_factory=dict)


class ErrorCategory(Enum):
    """How the caller should treat a failure (decides the log level)."""

    TRANSIENT = "transient"  # 재시도하면 성공할 수 있음
    PERMANENT = "permanent"  # 입력 자체가 잘못됨
    DEGRADED = "degraded"    # 대체 값으로 계속 진행


class BaseServiceError(Exception):
    """
    Base exception for the session core.

    The store never raises these for bad data; it builds one, hands it to
    ``log_error`` and falls back (empty collection, ``None``). The HTTP layer
    turns a raised one into a STORAGE_ERROR envelope.
    """

    category = ErrorCategory.PERMANENT

    def __init__(
        self,
        message: str,
        operation: str,
        service: str = "session_store",
        session_id: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
        original_error: Optional[Exception] = None,
    ):
        self.message = message
        self.operation = operation
        self.service = service
        self.session_id = session_id
        self.details = details or {}
        self.original_error = original_error
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Log context for structlog."""
        return {
            "error_type": type(self).__name__,
            "message": self.message,
            "category": self.category.value,
            "service": self.service,
            "operation": self.operation,
            "session_id": self.session_id,
            "details": self.details,
        }


class CorruptStorageError(BaseServiceError):
    """저장된 세션 컬렉션을 해석할 수 없음 (빈 컬렉션으로 읽음)."""

    category = ErrorCategory.DEGRADED

    def __init__(
        self,
        message: str,
        operation: str,
        storage_key: str,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(
            message,
            operation=operation,
            details={"storage_key": storage_key},
            original_error=original_error,
        )


class InvalidImportError(BaseServiceError):
    """가져오기 데이터가 세션 형식이 아님."""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        super().__init__(
            message,
            operation="import_session",
            original_error=original_error,
        )


class StorageUnavailableError(BaseServiceError):
    """The key-value medium could not be reached."""

    category = ErrorCategory.TRANSIENT
