"""
Import service integration.

The wizard talks to the backend import service through four operations:
load a file, list importable types, list the fields of a type and execute
an import. ImportGateway describes them; HttpImportGateway implements them
over HTTP.
"""

from typing import Any, Optional, Protocol
from urllib.parse import quote
import requests
import structlog

from config import settings
from exceptions import ImportServiceError
from models.import_wizard import (
    FileReference,
    ParsedFile,
    TargetType,
    FieldDescriptor,
)

logger = structlog.get_logger(__name__)


class ImportGateway(Protocol):
    """Operations the wizard needs from the import service."""

    def load_file(self, file: FileReference) -> ParsedFile: ...

    def list_importable_types(self) -> list[TargetType]: ...

    def list_fields(self, target_type_api_name: str) -> list[FieldDescriptor]: ...

    def execute_import(
        self,
        payload: str,
        target_type_api_name: str,
        mapping: dict[str, str]
    ) -> str: ...


class HttpImportGateway:
    """
    ImportGateway backed by the import service REST API.

    Every failure (transport error, non-2xx response, malformed body) is
    raised as ImportServiceError with the backend's message when it sent one.
    """

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.http = session or requests.Session()
        if api_key:
            self.http.headers["Authorization"] = f"Bearer {api_key}"

    # ===================
    # OPERATIONS
    # ===================

    def load_file(self, file: FileReference) -> ParsedFile:
        """
        Have the import service parse a CSV file.

        Sends the bytes when the reference carries content, otherwise asks
        the service to parse a document it already stores.
        """
        if file.content is not None:
            body = self._request(
                "load_file",
                "POST",
                "/files",
                files={"file": (file.name, file.content, "text/csv")}
            )
        else:
            body = self._request(
                "load_file",
                "POST",
                f"/files/{quote(file.document_id, safe='')}/parse"
            )

        try:
            return ParsedFile(
                headers=body.get("headers") or [],
                lines=body.get("lines") or []
            )
        except (AttributeError, ValueError) as e:
            raise ImportServiceError(
                f"Malformed file response: {e}",
                operation="load_file"
            )

    def list_importable_types(self) -> list[TargetType]:
        body = self._request("list_importable_types", "GET", "/object-types")
        return [
            TargetType(**self._describe(item, "list_importable_types"))
            for item in self._as_list(body, "list_importable_types")
        ]

    def list_fields(self, target_type_api_name: str) -> list[FieldDescriptor]:
        body = self._request(
            "list_fields",
            "GET",
            f"/object-types/{quote(target_type_api_name, safe='')}/fields"
        )
        return [
            FieldDescriptor(**self._describe(item, "list_fields"))
            for item in self._as_list(body, "list_fields")
        ]

    def execute_import(
        self,
        payload: str,
        target_type_api_name: str,
        mapping: dict[str, str]
    ) -> str:
        """
        Run the import on the service.

        Args:
            payload: JSON string of {"headers": [...], "lines": [...]}
            target_type_api_name: Record type to create
            mapping: Column header -> field api name

        Returns:
            Result message reported by the service
        """
        body = self._request(
            "execute_import",
            "POST",
            "/imports",
            json={
                "payload": payload,
                "targetTypeApiName": target_type_api_name,
                "mapping": mapping,
            }
        )
        if isinstance(body, dict):
            return str(body.get("message") or "Import completed")
        return str(body)

    # ===================
    # HELPERS
    # ===================

    def _request(self, operation: str, method: str, path: str, **kwargs) -> Any:
        url = f"{self.base_url}{path}"
        logger.debug("import_service_request", operation=operation, method=method, url=url)

        try:
            response = self.http.request(method, url, timeout=self.timeout, **kwargs)
        except requests.exceptions.RequestException as e:
            logger.error("import_service_unreachable", operation=operation, error=str(e))
            raise ImportServiceError(
                f"Import service unavailable: {e}",
                operation=operation
            )

        if not response.ok:
            message = self._error_message(response)
            logger.error(
                "import_service_error_response",
                operation=operation,
                status=response.status_code,
                error=message
            )
            raise ImportServiceError(
                message,
                operation=operation,
                http_status=response.status_code
            )

        try:
            return response.json()
        except ValueError:
            raise ImportServiceError(
                "Import service returned invalid JSON",
                operation=operation,
                http_status=response.status_code
            )

    @staticmethod
    def _error_message(response: requests.Response) -> str:
        """Pull the backend's message out of an error response."""
        try:
            body = response.json()
        except ValueError:
            body = None

        if isinstance(body, dict):
            error = body.get("error")
            if isinstance(error, dict) and error.get("message"):
                return str(error["message"])
            if isinstance(error, str) and error:
                return error
            for key in ("message", "detail"):
                if body.get(key):
                    return str(body[key])

        return response.reason or f"HTTP {response.status_code}"

    @staticmethod
    def _as_list(body: Any, operation: str) -> list:
        if isinstance(body, dict):
            body = body.get("data")
        if not isinstance(body, list):
            raise ImportServiceError(
                "Import service returned an unexpected response",
                operation=operation
            )
        return body

    @staticmethod
    def _describe(item: Any, operation: str) -> dict:
        """Convert a wire {apiName, label} item to model kwargs."""
        if not isinstance(item, dict) or not item.get("apiName"):
            raise ImportServiceError(
                "Import service returned an item without apiName",
                operation=operation
            )
        return {
            "api_name": item["apiName"],
            "label": item.get("label") or item["apiName"],
        }


# Singleton instance
_import_gateway: Optional[HttpImportGateway] = None


def get_import_gateway() -> HttpImportGateway:
    """Get or create the HttpImportGateway for the configured service."""
    global _import_gateway
    if _import_gateway is None:
        _import_gateway = HttpImportGateway(
            base_url=settings.import_service_url,
            api_key=settings.import_service_api_key,
            timeout=settings.import_service_timeout_seconds
        )
    return _import_gateway
