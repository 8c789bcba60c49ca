"""
Import wizard models.

Data structures for the CSV import wizard: the parsed file summary, the
target record types and their fields, and the read-only views handed to
the presentation layer.
"""

from typing import Optional, Literal
from enum import Enum
from pydantic import ConfigDict, Field, model_validator

from models.base import BaseSchema, FrozenSchema


class WizardStep(str, Enum):
    """Wizard steps, in the order a user walks through them."""
    UPLOAD = "UPLOAD"
    MAPPING = "MAPPING"
    IMPORT = "IMPORT"


# ===================
# DATA MODEL
# ===================

class FileReference(FrozenSchema):
    """
    Opaque handle to an uploaded file.

    Either the id of a document the import service already stores,
    or the raw file content to send along.
    """
    name: str = Field(min_length=1, description="Original file name")
    document_id: Optional[str] = Field(None, description="Document id held by the import service")
    content: Optional[bytes] = Field(None, repr=False, description="Raw file bytes")

    @model_validator(mode="after")
    def check_source(self) -> "FileReference":
        if self.document_id is None and self.content is None:
            raise ValueError("FileReference needs a document_id or content")
        return self

    @property
    def extension(self) -> str:
        """Lowercased extension including the dot ('' when absent)."""
        dot = self.name.rfind(".")
        return self.name[dot:].lower() if dot > 0 else ""


class ParsedFile(FrozenSchema):
    """
    Parsed CSV summary returned by the import service.

    Headers keep CSV order; a repeated header name is a separate position.
    """
    headers: tuple[str, ...] = Field(default_factory=tuple)
    lines: tuple[tuple[str, ...], ...] = Field(default_factory=tuple)

    @property
    def row_count(self) -> int:
        return len(self.lines)


class TargetType(FrozenSchema):
    """Kind of record the imported rows become."""
    api_name: str = Field(min_length=1)
    label: str = ""


class FieldDescriptor(FrozenSchema):
    """Field of a target type a column can be mapped to."""
    api_name: str = Field(min_length=1)
    label: str = ""


class ImportPayload(FrozenSchema):
    """File content sent with an import request."""
    headers: tuple[str, ...]
    lines: tuple[tuple[str, ...], ...]


# ===================
# VIEWS
# ===================

class HeaderOption(FrozenSchema):
    """A CSV column the user can pick in a mapping row."""
    label: str
    value: str
    position: int = Field(ge=0)


class TypeOption(FrozenSchema):
    """A target type the user can pick."""
    label: str
    value: str


class FieldMappingRow(FrozenSchema):
    """One field with its current mapping state."""
    api_name: str
    label: str
    is_mapped: bool
    mapped_column: str = ""


class Notification(FrozenSchema):
    """Toast-style message for the presentation layer."""
    title: str
    message: str
    variant: Literal["success", "error", "info"] = "info"


class WizardSnapshot(FrozenSchema):
    """
    Read-only view of a wizard session.

    Derived values (mapped_count, can_import, field rows) are computed
    when the snapshot is taken, never cached on the session.
    """
    session_id: str
    step: WizardStep
    is_loading: bool
    error: Optional[str] = None
    file_row_count: int = 0
    header_options: list[HeaderOption] = Field(default_factory=list)
    type_options: list[TypeOption] = Field(default_factory=list)
    selected_type: Optional[TargetType] = None
    fields: list[FieldMappingRow] = Field(default_factory=list)
    mapping: dict[str, str] = Field(default_factory=dict)
    mapped_count: int = 0
    can_import: bool = False
    notifications: list[Notification] = Field(default_factory=list)


# ===================
# API REQUESTS
# ===================

class SelectTargetTypeRequest(BaseSchema):
    """Select the target type for the session."""
    api_name: str = Field(min_length=1)


class SetMappingRequest(BaseSchema):
    """Map one field to a column, or clear it with an empty column."""
    model_config = ConfigDict(str_strip_whitespace=False)

    field_api_name: str = Field(min_length=1)
    column: str = ""
