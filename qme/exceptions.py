"""Engine exceptions and error codes.

All errors raised by the engine inherit from DomainException so callers can
handle them in one place. None of them is retried by the engine itself.
"""

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Stable error codes for programmatic handling."""

    ENTITY_NOT_FOUND = "ENTITY_NOT_FOUND"
    MEASURE_NOT_FOUND = "MEASURE_NOT_FOUND"
    CLASSIFICATION_FAILED = "CLASSIFICATION_FAILED"
    AGGREGATION_FAILED = "AGGREGATION_FAILED"
    STORAGE_ERROR = "STORAGE_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class DomainException(Exception):  # NOQA: N818
    """Base exception for all engine errors.

    Attributes
    ----------
    message
        Human-readable error message
    code
        Stable error code for programmatic handling
    details
        Optional additional context
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"code={self.code.value!r}, "
            f"details={self.details!r})"
        )


class EntityNotFoundError(DomainException):
    """Raised when a requested entity cannot be found."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.ENTITY_NOT_FOUND,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code, details)


class MeasureNotFoundError(EntityNotFoundError):
    """Raised when no measure definition exists for a measure/sub-measure."""

    def __init__(self, measure_id: str, sub_id: str | None) -> None:
        super().__init__(
            message=f"No measure definition found for {measure_id}{sub_id or ''}",
            code=ErrorCode.MEASURE_NOT_FOUND,
            details={"measure_id": measure_id, "sub_id": sub_id},
        )


class ClassificationError(DomainException):
    """Raised when the classifier reports a failure.

    The classifier's error payload is kept unchanged in ``error``.
    """

    def __init__(
        self,
        error: Any,
        measure_id: str | None = None,
        sub_id: str | None = None,
    ) -> None:
        self.error = error
        super().__init__(
            message=str(error),
            code=ErrorCode.CLASSIFICATION_FAILED,
            details={"measure_id": measure_id, "sub_id": sub_id},
        )


class AggregationError(DomainException):
    """Raised when the grouped sum does not yield zero or one group."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message, ErrorCode.AGGREGATION_FAILED, details)


class StorageError(DomainException):
    """Raised when a read or write against the cache, registry or results fails."""

    def __init__(self, operation: str, details: dict[str, Any] | None = None) -> None:
        self.operation = operation
        super().__init__(
            message=f"Storage operation failed: {operation}",
            code=ErrorCode.STORAGE_ERROR,
            details=details,
        )
