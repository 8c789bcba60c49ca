"""
Import wizard service.

Drives one CSV import wizard session: upload -> mapping -> import.

The session holds the parsed file, the selected target type, its fields and
the column mapping, and talks to the import service through an
ImportGateway. Commands never raise; a failure ends up in the session's
error message and the caller reads it from the snapshot.

Every gateway call is tagged with a request id on its channel. A newer
request on the same channel, a new upload or a reset makes older ids stale,
and stale responses are dropped instead of overwriting newer state.
"""

import threading
import uuid
from typing import Any, Callable, Optional
import structlog

from config import settings
from exceptions import (
    AppError,
    FileProcessingError,
    DiscoveryError,
    MappingValidationError,
    ImportExecutionError,
)
from integrations.import_gateway import ImportGateway
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
)
from services.mapping_engine import MappingEngine

logger = structlog.get_logger(__name__)

IMPORT_VALIDATION_MESSAGE = "Please complete the field mapping before importing."
IMPORT_FAILED_MESSAGE = "An unexpected error occurred during import."
FILE_FAILED_MESSAGE = "The file could not be processed."
DISCOVERY_FAILED_MESSAGE = "Could not load record information from the import service."

# Request channels
FILE = "file"
TYPES = "types"
FIELDS = "fields"
IMPORT = "import"
CHANNELS = (FILE, TYPES, FIELDS, IMPORT)


class ImportWizardSession:
    """
    One import wizard session.

    Safe to call from several threads: state changes happen under a lock
    that is never held while waiting on the import service.
    """

    def __init__(
        self,
        gateway: ImportGateway,
        session_id: Optional[str] = None,
        reject_duplicates: Optional[bool] = None,
        accepted_formats: Optional[list[str]] = None,
        notifier: Optional[Callable[[Notification], None]] = None
    ):
        self.session_id = session_id or str(uuid.uuid4())
        self.gateway = gateway
        if reject_duplicates is None:
            reject_duplicates = settings.reject_duplicate_columns
        self.mapping = MappingEngine(reject_duplicates=reject_duplicates)
        self.accepted_formats = [
            fmt.lower() for fmt in (accepted_formats or settings.accepted_formats)
        ]
        self.notifier = notifier

        self._lock = threading.RLock()
        self._step = WizardStep.UPLOAD
        self._parsed_file: Optional[ParsedFile] = None
        self._target_types: list[TargetType] = []
        self._selected_type: Optional[TargetType] = None
        self._fields: list[FieldDescriptor] = []
        self._error: Optional[str] = None
        self._notifications: list[Notification] = []

        self._request_ids = {channel: 0 for channel in CHANNELS}
        self._in_flight: dict[str, int] = {}

        self._log = logger.bind(session_id=self.session_id)

    # ===================
    # STATE
    # ===================

    @property
    def step(self) -> WizardStep:
        return self._step

    @property
    def error(self) -> Optional[str]:
        return self._error

    @property
    def is_loading(self) -> bool:
        return bool(self._in_flight)

    @property
    def parsed_file(self) -> Optional[ParsedFile]:
        return self._parsed_file

    @property
    def selected_type(self) -> Optional[TargetType]:
        return self._selected_type

    @property
    def fields(self) -> list[FieldDescriptor]:
        return list(self._fields)

    def can_import(self) -> bool:
        """True when a type and a file are set, something is mapped and nothing is in flight."""
        with self._lock:
            return self._can_import()

    def snapshot(self, drain_notifications: bool = False) -> WizardSnapshot:
        """
        Read-only view of the session with derived values computed now.

        Args:
            drain_notifications: Hand out pending notifications once and
                clear them
        """
        with self._lock:
            notifications = list(self._notifications)
            if drain_notifications:
                self._notifications.clear()

            return WizardSnapshot(
                session_id=self.session_id,
                step=self._step,
                is_loading=self.is_loading,
                error=self._error,
                file_row_count=self._parsed_file.row_count if self._parsed_file else 0,
                header_options=self._header_options(),
                type_options=[
                    TypeOption(label=t.label or t.api_name, value=t.api_name)
                    for t in self._target_types
                ],
                selected_type=self._selected_type,
                fields=self._field_rows(),
                mapping=self.mapping.snapshot(),
                mapped_count=self.mapping.mapped_count(),
                can_import=self._can_import(),
                notifications=notifications,
            )

    # ===================
    # COMMANDS
    # ===================

    def start_upload(self, file: FileReference) -> WizardSnapshot:
        """
        Start over with a new file.

        Clears everything gathered so far, has the import service parse the
        file, then continues as on_file_loaded.
        """
        with self._lock:
            self._supersede(*CHANNELS)
            self._clear()
            self._step = WizardStep.UPLOAD

            if self.accepted_formats and file.extension not in self.accepted_formats:
                self._fail(FileProcessingError(
                    f"Unsupported file type '{file.extension or file.name}'. "
                    f"Accepted formats: {', '.join(self.accepted_formats)}",
                    file_name=file.name
                ))
                return self.snapshot()

            request_id = self._begin(FILE)
            self._log.info("wizard_upload_started", file_name=file.name, request_id=request_id)

        ok, result = self._call_gateway(FILE, request_id, self.gateway.load_file, file)

        with self._lock:
            if not self._complete(FILE, request_id):
                return self.snapshot()
            if not ok:
                self._fail(FileProcessingError(result or FILE_FAILED_MESSAGE, file_name=file.name))
                return self.snapshot()
            types_request_id = self._apply_file(result)

        self._load_types(types_request_id)
        return self.snapshot()

    def on_file_loaded(self, parsed: ParsedFile) -> WizardSnapshot:
        """Store a parsed file, move to the mapping step and fetch importable types."""
        with self._lock:
            self._supersede(*CHANNELS)
            self._error = None
            types_request_id = self._apply_file(parsed)

        self._load_types(types_request_id)
        return self.snapshot()

    def on_type_selected(self, api_name: str) -> WizardSnapshot:
        """
        Select the target type and fetch its fields.

        The mapping and the previous field list are cleared right away,
        whether or not the field fetch succeeds.
        """
        with self._lock:
            self._error = None

            known = {t.api_name: t for t in self._target_types}
            if known and api_name not in known:
                self._fail(MappingValidationError(
                    f"Unknown record type '{api_name}'",
                    details={"target_type": api_name}
                ))
                return self.snapshot()

            self.mapping.reset()
            self._fields = []
            self._selected_type = known.get(api_name) or TargetType(api_name=api_name, label=api_name)
            request_id = self._begin(FIELDS)
            self._log.info("wizard_type_selected", target_type=api_name, request_id=request_id)

        ok, result = self._call_gateway(FIELDS, request_id, self.gateway.list_fields, api_name)

        with self._lock:
            if not self._complete(FIELDS, request_id):
                return self.snapshot()
            if not ok:
                self._fields = []
                self._fail(DiscoveryError(result or DISCOVERY_FAILED_MESSAGE, target_type=api_name))
            else:
                self._fields = list(result)
                self._log.info("wizard_fields_loaded", target_type=api_name, count=len(self._fields))
            return self.snapshot()

    def set_mapping(self, field_api_name: str, column: str) -> WizardSnapshot:
        """
        Map a field to a CSV column, or clear the field with an empty column.

        Unknown fields or columns and (by default) a column already used by
        another field are rejected and reported through error.
        """
        with self._lock:
            self._error = None

            if column:
                if self._parsed_file is None or column not in self._parsed_file.headers:
                    self._fail(MappingValidationError(
                        f"Unknown column '{column}'",
                        details={"column": column}
                    ))
                    return self.snapshot()
                if field_api_name not in {f.api_name for f in self._fields}:
                    self._fail(MappingValidationError(
                        f"Unknown field '{field_api_name}'",
                        details={"field": field_api_name}
                    ))
                    return self.snapshot()

            try:
                self.mapping.set_mapping(field_api_name, column)
            except MappingValidationError as e:
                self._fail(e)

            return self.snapshot()

    def submit_import(self, drain_notifications: bool = False) -> WizardSnapshot:
        """
        Send the file and inverted mapping to the import service.

        Success emits a notification and resets the form. Failure keeps the
        file, type and mapping so the user can retry.

        Args:
            drain_notifications: Hand out pending notifications in the
                returned snapshot and clear them
        """
        with self._lock:
            self._error = None

            if not self._can_import():
                self._fail(MappingValidationError(IMPORT_VALIDATION_MESSAGE))
                return self.snapshot(drain_notifications)

            target_type = self._selected_type.api_name
            inverted = self.mapping.invert()
            payload = ImportPayload(
                headers=self._parsed_file.headers,
                lines=self._parsed_file.lines
            ).model_dump_json()

            self._step = WizardStep.IMPORT
            request_id = self._begin(IMPORT)
            self._log.info(
                "wizard_import_submitted",
                target_type=target_type,
                request_id=request_id,
                mapped_count=len(inverted),
                rows=self._parsed_file.row_count
            )

        ok, result = self._call_gateway(
            IMPORT, request_id, self.gateway.execute_import, payload, target_type, inverted
        )

        with self._lock:
            if not self._complete(IMPORT, request_id):
                return self.snapshot(drain_notifications)
            if not ok:
                self._step = WizardStep.MAPPING
                self._fail(ImportExecutionError(result or IMPORT_FAILED_MESSAGE, target_type=target_type))
                return self.snapshot(drain_notifications)

            self._log.info("wizard_import_completed", target_type=target_type, result=result)
            self._notify(Notification(title="Import complete", message=str(result), variant="success"))
            self._reset_form()
            return self.snapshot(drain_notifications)

    def reset_form(self) -> WizardSnapshot:
        """Clear everything and go back to the upload step."""
        with self._lock:
            self._reset_form()
            return self.snapshot()

    # ===================
    # HELPERS
    # ===================

    def _can_import(self) -> bool:
        return (
            self._selected_type is not None
            and self._parsed_file is not None
            and self.mapping.mapped_count() > 0
            and not self.is_loading
        )

    def _header_options(self) -> list[HeaderOption]:
        if self._parsed_file is None:
            return []
        return [
            HeaderOption(label=header, value=header, position=position)
            for position, header in enumerate(self._parsed_file.headers)
        ]

    def _field_rows(self) -> list[FieldMappingRow]:
        rows = []
        for field in self._fields:
            is_mapped, column = self.mapping.field_status(field.api_name)
            rows.append(FieldMappingRow(
                api_name=field.api_name,
                label=field.label or field.api_name,
                is_mapped=is_mapped,
                mapped_column=column
            ))
        return rows

    def _apply_file(self, parsed: ParsedFile) -> int:
        """Store the file, move to mapping and open a type-list request."""
        self._parsed_file = parsed
        self._target_types = []
        self._selected_type = None
        self._fields = []
        self.mapping.reset()
        self._step = WizardStep.MAPPING
        self._log.info(
            "wizard_file_loaded",
            headers=len(parsed.headers),
            rows=parsed.row_count
        )
        return self._begin(TYPES)

    def _load_types(self, request_id: int) -> None:
        ok, result = self._call_gateway(TYPES, request_id, self.gateway.list_importable_types)

        with self._lock:
            if not self._complete(TYPES, request_id):
                return
            if not ok:
                self._target_types = []
                self._fail(DiscoveryError(result or DISCOVERY_FAILED_MESSAGE))
                return
            self._target_types = list(result)
            self._log.info("wizard_types_loaded", count=len(self._target_types))

    def _clear(self) -> None:
        self._parsed_file = None
        self._target_types = []
        self._selected_type = None
        self._fields = []
        self._error = None
        self.mapping.reset()

    def _reset_form(self) -> None:
        self._supersede(*CHANNELS)
        self._clear()
        self._step = WizardStep.UPLOAD
        self._log.info("wizard_reset")

    def _begin(self, channel: str) -> int:
        self._request_ids[channel] += 1
        request_id = self._request_ids[channel]
        self._in_flight[channel] = request_id
        return request_id

    def _supersede(self, *channels: str) -> None:
        """Make every outstanding request on channels stale."""
        for channel in channels:
            if channel in self._in_flight:
                self._request_ids[channel] += 1
                del self._in_flight[channel]

    def _complete(self, channel: str, request_id: int) -> bool:
        """Close a request; False if a newer one has replaced it."""
        if self._request_ids[channel] != request_id:
            self._log.info(
                "wizard_stale_response_discarded",
                channel=channel,
                request_id=request_id,
                current_request_id=self._request_ids[channel]
            )
            return False
        self._in_flight.pop(channel, None)
        return True

    def _call_gateway(
        self,
        channel: str,
        request_id: int,
        call: Callable[..., Any],
        *args: Any
    ) -> tuple[bool, Any]:
        """
        Run a gateway call outside the lock.

        Returns:
            (True, result) on success, (False, message or None) on failure
        """
        try:
            return True, call(*args)
        except AppError as e:
            self._log.warning(
                "wizard_gateway_call_failed",
                channel=channel,
                request_id=request_id,
                code=e.code,
                error=e.message
            )
            return False, e.message
        except Exception as e:
            self._log.error(
                "wizard_gateway_call_crashed",
                channel=channel,
                request_id=request_id,
                error=str(e),
                error_type=type(e).__name__
            )
            return False, None

    def _fail(self, error: AppError) -> None:
        self._error = error.message
        self._log.warning(
            "wizard_error",
            code=error.code,
            error=error.message,
            step=self._step.value
        )

    def _notify(self, notification: Notification) -> None:
        self._notifications.append(notification)
        if self.notifier is not None:
            try:
                self.notifier(notification)
            except Exception as e:
                self._log.error("wizard_notifier_failed", error=str(e))
