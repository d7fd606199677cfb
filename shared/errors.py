"""
Shared error handling for the Content Protection layer.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Standard error response format."""

    request_id: Optional[str] = None
    code: str
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)


class AccessLayerException(Exception):
    """Base exception for Content Protection services."""

    status_code = 400

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self, request_id: Optional[str] = None) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            request_id=request_id,
            code=self.code,
            message=self.message,
            details=self.details
        )


class DocumentNotFoundError(AccessLayerException):
    """The referenced document does not exist."""

    status_code = 404

    def __init__(self, document_id: Any, details: Optional[Dict[str, Any]] = None):
        self.document_id = document_id
        super().__init__(
            "DOCUMENT_NOT_FOUND",
            f"Document {document_id} does not exist",
            {"document_id": document_id, **(details or {})}
        )


class ValidationError(AccessLayerException):
    """Validation-related errors."""

    status_code = 422

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("VALIDATION_ERROR", message, details)


class InvalidSettingError(AccessLayerException):
    """A protection setting was refused before reaching the settings store."""

    status_code = 422

    def __init__(self, attribute: str, value: Any, message: str = "Refused to save invalid value"):
        self.attribute = attribute
        self.value = value
        super().__init__(
            "INVALID_SETTING",
            f"{message} for {attribute}",
            {"attribute": attribute, "value": str(value)}
        )


class ExternalServiceError(AccessLayerException):
    """External service errors."""

    status_code = 502

    def __init__(self, service: str, message: str = "External service error", details: Optional[Dict[str, Any]] = None):
        super().__init__("EXTERNAL_SERVICE_ERROR", f"{service}: {message}", details)
