"""
Custom exception classes for the application.

Workflow errors are raised by the gateway and mapping engine, caught inside
the wizard session and reduced to the session's single error message.
"""

from typing import Optional, Any
from datetime import datetime, timezone


class AppError(Exception):
    """
    Base exception for all application errors.

    All custom exceptions inherit from this.

    Attributes:
        code: Error code (e.g., "DISCOVERY_ERROR")
        message: Human-readable message
        status_code: HTTP status code
        details: Additional context
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: Optional[dict[str, Any]] = None
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc).isoformat()
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to API response format."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
                "timestamp": self.timestamp
            }
        }


class NotFoundError(AppError):
    """Resource not found (404)."""

    def __init__(
        self,
        resource: str,
        identifier: str,
        code: Optional[str] = None
    ):
        super().__init__(
            code=code or f"{resource.upper()}_NOT_FOUND",
            message=f"{resource} not found",
            status_code=404,
            details={"id": identifier}
        )


class ValidationError(AppError):
    """Validation failed (422)."""

    def __init__(
        self,
        message: str,
        code: str = "VALIDATION_ERROR",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=422,
            details=details
        )


class ExternalServiceError(AppError):
    """External service failure (503)."""

    def __init__(
        self,
        service: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code=f"{service.upper()}_ERROR",
            message=message,
            status_code=503,
            details={"service": service, **(details or {})}
        )


# ===================
# SPECIFIC ERRORS
# ===================

# Import service (transport)

class ImportServiceError(ExternalServiceError):
    """Import service request failed or returned an error response."""

    def __init__(
        self,
        message: str,
        operation: str,
        http_status: Optional[int] = None
    ):
        super().__init__(
            service="import_service",
            message=message,
            details={"operation": operation, "http_status": http_status}
        )
        self.operation = operation
        self.http_status = http_status


# Wizard workflow

class FileProcessingError(ValidationError):
    """Uploaded file could not be loaded or parsed."""

    def __init__(self, message: str, file_name: Optional[str] = None):
        super().__init__(
            message=message,
            code="FILE_PROCESSING_ERROR",
            details={"file_name": file_name}
        )


class DiscoveryError(ExternalServiceError):
    """Importable types or field list could not be fetched."""

    def __init__(self, message: str, target_type: Optional[str] = None):
        super().__init__(
            service="discovery",
            message=message,
            details={"target_type": target_type}
        )


class MappingValidationError(ValidationError):
    """Local precondition for mapping or import not met."""

    def __init__(
        self,
        message: str,
        code: str = "MAPPING_VALIDATION_ERROR",
        details: Optional[dict] = None
    ):
        super().__init__(message=message, code=code, details=details)


class DuplicateColumnMappingError(MappingValidationError):
    """Column is already mapped to another field."""

    def __init__(self, column: str, mapped_field: str, field_api_name: str):
        super().__init__(
            message=f"Column '{column}' is already mapped to {mapped_field}",
            code="DUPLICATE_COLUMN_MAPPING",
            details={
                "column": column,
                "mapped_field": mapped_field,
                "field": field_api_name
            }
        )


class ImportExecutionError(ExternalServiceError):
    """Backend rejected or failed the import."""

    def __init__(self, message: str, target_type: Optional[str] = None):
        super().__init__(
            service="import_execution",
            message=message,
            details={"target_type": target_type}
        )


class WizardSessionNotFoundError(NotFoundError):
    """Wizard session does not exist or has expired."""

    def __init__(self, session_id: str):
        super().__init__(
            resource="Wizard session",
            identifier=session_id,
            code="WIZARD_SESSION_NOT_FOUND"
        )
