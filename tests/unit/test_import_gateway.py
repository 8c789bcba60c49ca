"""
Unit tests for HttpImportGateway.

Run: pytest tests/unit/test_import_gateway.py -v
"""

import pytest
import requests
from unittest.mock import MagicMock

from integrations.import_gateway import HttpImportGateway
from exceptions import ImportServiceError
from models.import_wizard import FileReference


def make_response(status_code: int = 200, body=None, reason: str = "OK", invalid_json: bool = False):
    """Build a mock requests.Response."""
    response = MagicMock()
    response.status_code = status_code
    response.ok = status_code < 400
    response.reason = reason
    if invalid_json:
        response.json.side_effect = ValueError("No JSON")
    else:
        response.json.return_value = body
    return response


@pytest.fixture
def http_session():
    session = MagicMock()
    session.headers = {}
    return session


@pytest.fixture
def gateway(http_session):
    return HttpImportGateway(
        base_url="https://imports.example.com/api/",
        api_key="secret-token",
        timeout=5,
        session=http_session
    )


class TestHttpImportGatewaySetup:
    """Tests for HttpImportGateway.__init__()"""

    def test_sets_bearer_token(self, gateway, http_session):
        assert http_session.headers["Authorization"] == "Bearer secret-token"

    def test_no_token_without_api_key(self, http_session):
        HttpImportGateway(base_url="https://imports.example.com", session=http_session)

        assert "Authorization" not in http_session.headers

    def test_strips_trailing_slash(self, gateway):
        assert gateway.base_url == "https://imports.example.com/api"


class TestHttpImportGatewayLoadFile:
    """Tests for HttpImportGateway.load_file()"""

    def test_uploads_content_as_multipart(self, gateway, http_session):
        http_session.request.return_value = make_response(body={
            "headers": ["Name", "Email"],
            "lines": [["Ada", "ada@example.com"]]
        })
        reference = FileReference(name="contacts.csv", content=b"Name,Email\nAda,ada@example.com\n")

        parsed = gateway.load_file(reference)

        args, kwargs = http_session.request.call_args
        assert args == ("POST", "https://imports.example.com/api/files")
        assert kwargs["files"]["file"][0] == "contacts.csv"
        assert kwargs["timeout"] == 5
        assert parsed.headers == ("Name", "Email")
        assert parsed.lines == (("Ada", "ada@example.com"),)

    def test_parses_stored_document_by_id(self, gateway, http_session):
        http_session.request.return_value = make_response(body={"headers": ["Name"], "lines": []})
        reference = FileReference(name="contacts.csv", document_id="069ABC")

        parsed = gateway.load_file(reference)

        args, _ = http_session.request.call_args
        assert args == ("POST", "https://imports.example.com/api/files/069ABC/parse")
        assert parsed.row_count == 0

    def test_document_id_is_escaped_in_path(self, gateway, http_session):
        """Slashes and query characters in the id stay inside one path segment."""
        http_session.request.return_value = make_response(body={"headers": ["Name"], "lines": []})
        reference = FileReference(name="contacts.csv", document_id="../imports?run=1")

        gateway.load_file(reference)

        args, _ = http_session.request.call_args
        assert args == ("POST", "https://imports.example.com/api/files/..%2Fimports%3Frun%3D1/parse")

    def test_malformed_body_raises(self, gateway, http_session):
        http_session.request.return_value = make_response(body=["not", "an", "object"])
        reference = FileReference(name="contacts.csv", document_id="069ABC")

        with pytest.raises(ImportServiceError) as exc_info:
            gateway.load_file(reference)

        assert exc_info.value.operation == "load_file"


class TestHttpImportGatewayDiscovery:
    """Tests for list_importable_types() and list_fields()"""

    def test_list_importable_types(self, gateway, http_session):
        http_session.request.return_value = make_response(body=[
            {"apiName": "Contact", "label": "Contact"},
            {"apiName": "Custom__c"},
        ])

        types = gateway.list_importable_types()

        args, _ = http_session.request.call_args
        assert args == ("GET", "https://imports.example.com/api/object-types")
        assert [(t.api_name, t.label) for t in types] == [
            ("Contact", "Contact"),
            ("Custom__c", "Custom__c"),
        ]

    def test_list_fields_accepts_data_envelope(self, gateway, http_session):
        http_session.request.return_value = make_response(body={"data": [
            {"apiName": "LastName", "label": "Last Name"},
        ]})

        fields = gateway.list_fields("Contact")

        args, _ = http_session.request.call_args
        assert args == ("GET", "https://imports.example.com/api/object-types/Contact/fields")
        assert fields[0].api_name == "LastName"
        assert fields[0].label == "Last Name"

    def test_type_name_is_escaped_in_path(self, gateway, http_session):
        """A type name cannot redirect the request to another endpoint."""
        http_session.request.return_value = make_response(body=[])

        gateway.list_fields("../files/123/parse?x=")

        args, _ = http_session.request.call_args
        assert args == (
            "GET",
            "https://imports.example.com/api/object-types/..%2Ffiles%2F123%2Fparse%3Fx%3D/fields"
        )

    def test_item_without_api_name_raises(self, gateway, http_session):
        http_session.request.return_value = make_response(body=[{"label": "Nameless"}])

        with pytest.raises(ImportServiceError):
            gateway.list_fields("Contact")

    def test_non_list_response_raises(self, gateway, http_session):
        http_session.request.return_value = make_response(body={"count": 3})

        with pytest.raises(ImportServiceError):
            gateway.list_importable_types()


class TestHttpImportGatewayExecuteImport:
    """Tests for HttpImportGateway.execute_import()"""

    def test_posts_payload_type_and_mapping(self, gateway, http_session):
        http_session.request.return_value = make_response(body={"message": "2 records imported"})

        message = gateway.execute_import(
            '{"headers":["Name"],"lines":[["Ada"]]}',
            "Contact",
            {"Name": "LastName"}
        )

        args, kwargs = http_session.request.call_args
        assert args == ("POST", "https://imports.example.com/api/imports")
        assert kwargs["json"] == {
            "payload": '{"headers":["Name"],"lines":[["Ada"]]}',
            "targetTypeApiName": "Contact",
            "mapping": {"Name": "LastName"},
        }
        assert message == "2 records imported"

    def test_default_message_when_backend_sends_none(self, gateway, http_session):
        http_session.request.return_value = make_response(body={})

        assert gateway.execute_import("{}", "Contact", {"Name": "LastName"}) == "Import completed"

    def test_plain_string_body(self, gateway, http_session):
        http_session.request.return_value = make_response(body="Done")

        assert gateway.execute_import("{}", "Contact", {}) == "Done"


class TestHttpImportGatewayErrors:
    """Tests for error translation"""

    def test_uses_nested_error_message(self, gateway, http_session):
        http_session.request.return_value = make_response(
            status_code=400,
            reason="Bad Request",
            body={"error": {"code": "REQUIRED_FIELD_MISSING", "message": "LastName is required"}}
        )

        with pytest.raises(ImportServiceError) as exc_info:
            gateway.execute_import("{}", "Contact", {})

        assert exc_info.value.message == "LastName is required"
        assert exc_info.value.http_status == 400
        assert exc_info.value.operation == "execute_import"
        assert exc_info.value.code == "IMPORT_SERVICE_ERROR"

    def test_uses_detail_field(self, gateway, http_session):
        http_session.request.return_value = make_response(
            status_code=404,
            reason="Not Found",
            body={"detail": "Unknown object type Foo"}
        )

        with pytest.raises(ImportServiceError) as exc_info:
            gateway.list_fields("Foo")

        assert exc_info.value.message == "Unknown object type Foo"

    def test_falls_back_to_reason(self, gateway, http_session):
        http_session.request.return_value = make_response(
            status_code=502,
            reason="Bad Gateway",
            invalid_json=True
        )

        with pytest.raises(ImportServiceError) as exc_info:
            gateway.list_importable_types()

        assert exc_info.value.message == "Bad Gateway"

    def test_transport_error(self, gateway, http_session):
        http_session.request.side_effect = requests.exceptions.ConnectionError("refused")

        with pytest.raises(ImportServiceError) as exc_info:
            gateway.list_importable_types()

        assert "Import service unavailable" in exc_info.value.message
        assert exc_info.value.http_status is None

    def test_invalid_json_on_success(self, gateway, http_session):
        http_session.request.return_value = make_response(invalid_json=True)

        with pytest.raises(ImportServiceError) as exc_info:
            gateway.list_importable_types()

        assert exc_info.value.message == "Import service returned invalid JSON"
