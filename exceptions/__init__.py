"""
Custom exceptions module.
"""

from exceptions.errors import (
    # Base exceptions
    AppError,
    NotFoundError,
    ValidationError,
    ExternalServiceError,

    # Import service
    ImportServiceError,

    # Wizard workflow
    FileProcessingError,
    DiscoveryError,
    MappingValidationError,
    DuplicateColumnMappingError,
    ImportExecutionError,
    WizardSessionNotFoundError,
)

__all__ = [
    # Base
    "AppError",
    "NotFoundError",
    "ValidationError",
    "ExternalServiceError",

    # Import service
    "ImportServiceError",

    # Wizard workflow
    "FileProcessingError",
    "DiscoveryError",
    "MappingValidationError",
    "DuplicateColumnMappingError",
    "ImportExecutionError",
    "WizardSessionNotFoundError",
]
