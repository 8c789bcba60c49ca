"""
Shared test fixtures.
"""

import sys
from pathlib import Path

# Add project directory to Python path
project_dir = Path(__file__).parent.parent
sys.path.insert(0, str(project_dir))

import pytest
from typing import Callable, Optional

from exceptions import ImportServiceError
from models.import_wizard import (
    FileReference,
    ParsedFile,
    TargetType,
    FieldDescriptor,
)

# ===================
# FAKE IMPORT SERVICE
# ===================

class FakeImportGateway:
    """
    In-memory ImportGateway that records every call.

    Configure responses through the attributes; set a *_error attribute to
    make that operation fail with ImportServiceError. Hooks run inside the
    call, which lets a test act while a request is outstanding.
    """

    def __init__(self):
        self.parsed_file = ParsedFile(
            headers=["Name", "Email"],
            lines=[["Ada Lovelace", "ada@example.com"], ["Alan Turing", "alan@example.com"]]
        )
        self.types = [
            TargetType(api_name="Contact", label="Contact"),
            TargetType(api_name="Account", label="Account"),
        ]
        self.fields: dict[str, list[FieldDescriptor]] = {
            "Contact": [
                FieldDescriptor(api_name="LastName", label="Last Name"),
                FieldDescriptor(api_name="Email", label="Email"),
            ],
            "Account": [
                FieldDescriptor(api_name="Name", label="Account Name"),
            ],
        }
        self.import_message = "2 records imported"

        self.load_file_error: Optional[str] = None
        self.list_types_error: Optional[str] = None
        self.list_fields_error: Optional[str] = None
        self.import_error: Optional[str] = None

        self.on_load_file: Optional[Callable[[FileReference], None]] = None
        self.on_list_types: Optional[Callable[[], None]] = None
        self.on_list_fields: Optional[Callable[[str], None]] = None
        self.on_execute_import: Optional[Callable[[], None]] = None

        self.calls: list[tuple] = []

    def calls_to(self, operation: str) -> list[tuple]:
        return [call for call in self.calls if call[0] == operation]

    def load_file(self, file: FileReference) -> ParsedFile:
        self.calls.append(("load_file", file))
        if self.on_load_file is not None:
            hook, self.on_load_file = self.on_load_file, None
            hook(file)
        if self.load_file_error:
            raise ImportServiceError(self.load_file_error, operation="load_file")
        return self.parsed_file

    def list_importable_types(self) -> list[TargetType]:
        self.calls.append(("list_importable_types",))
        if self.on_list_types is not None:
            hook, self.on_list_types = self.on_list_types, None
            hook()
        if self.list_types_error:
            raise ImportServiceError(self.list_types_error, operation="list_importable_types")
        return list(self.types)

    def list_fields(self, target_type_api_name: str) -> list[FieldDescriptor]:
        self.calls.append(("list_fields", target_type_api_name))
        if self.on_list_fields is not None:
            hook, self.on_list_fields = self.on_list_fields, None
            hook(target_type_api_name)
        if self.list_fields_error:
            raise ImportServiceError(self.list_fields_error, operation="list_fields")
        return list(self.fields.get(target_type_api_name, []))

    def execute_import(self, payload: str, target_type_api_name: str, mapping: dict[str, str]) -> str:
        self.calls.append(("execute_import", payload, target_type_api_name, dict(mapping)))
        if self.on_execute_import is not None:
            hook, self.on_execute_import = self.on_execute_import, None
            hook()
        if self.import_error:
            raise ImportServiceError(self.import_error, operation="execute_import")
        return self.import_message


# ===================
# FIXTURES
# ===================

@pytest.fixture
def fake_gateway() -> FakeImportGateway:
    """
    Create a fake import service.

    Usage:
        def test_something(fake_gateway):
            fake_gateway.list_fields_error = "boom"
    """
    return FakeImportGateway()


@pytest.fixture
def csv_file() -> FileReference:
    """A small CSV upload."""
    return FileReference(
        name="contacts.csv",
        content=b"Name,Email\nAda Lovelace,ada@example.com\nAlan Turing,alan@example.com\n"
    )


@pytest.fixture
def wizard(fake_gateway):
    """A wizard session wired to the fake import service."""
    from services.import_wizard_service import ImportWizardSession

    return ImportWizardSession(gateway=fake_gateway, session_id="test-session")


@pytest.fixture
def mapping_ready_wizard(wizard, csv_file):
    """Session with a file loaded and Contact selected, nothing mapped yet."""
    wizard.start_upload(csv_file)
    wizard.on_type_selected("Contact")
    return wizard


# ===================
# API TEST CLIENT
# ===================

@pytest.fixture
def test_client_with_fake_gateway(fake_gateway):
    """
    Create FastAPI test client whose sessions use the fake import service.

    Usage:
        def test_endpoint(test_client_with_fake_gateway, fake_gateway):
            response = test_client_with_fake_gateway.post("/api/import-wizard/sessions")
    """
    from unittest.mock import patch
    from fastapi.testclient import TestClient
    from main import app
    from services import wizard_session_store

    wizard_session_store._sessions.clear()
    with patch("services.wizard_session_store.get_import_gateway", return_value=fake_gateway):
        yield TestClient(app)
    wizard_session_store._sessions.clear()
