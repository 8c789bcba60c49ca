"""
Pydantic models for validation and serialization.
"""

from models.base import BaseSchema, FrozenSchema
from models.import_wizard import (
    WizardStep,
    FileReference,
    ParsedFile,
    TargetType,
    FieldDescriptor,
    ImportPayload,
    HeaderOption,
    TypeOption,
    FieldMappingRow,
    Notification,
    WizardSnapshot,
    SelectTargetTypeRequest,
    SetMappingRequest,
)

__all__ = [
    # Base
    "BaseSchema",
    "FrozenSchema",

    # Import wizard
    "WizardStep",
    "FileReference",
    "ParsedFile",
    "TargetType",
    "FieldDescriptor",
    "ImportPayload",
    "HeaderOption",
    "TypeOption",
    "FieldMappingRow",
    "Notification",
    "WizardSnapshot",
    "SelectTargetTypeRequest",
    "SetMappingRequest",
]
