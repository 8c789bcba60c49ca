"""
Mapping engine for the import wizard.

Keeps the field -> column association the user builds, and produces the
column -> field form the import service expects.
"""

import structlog

from exceptions import DuplicateColumnMappingError

logger = structlog.get_logger(__name__)


class MappingEngine:
    """
    Field to column mapping.

    Entries are kept in the order they were last set, so the most recent
    assignment is always last. With reject_duplicates=False two fields may
    share a column and invert() resolves that by last-set-wins.
    """

    def __init__(self, reject_duplicates: bool = True):
        self.reject_duplicates = reject_duplicates
        self._entries: dict[str, str] = {}
        # column -> fields holding it, oldest first
        self._columns: dict[str, dict[str, None]] = {}

    def set_mapping(self, field_api_name: str, column: str) -> None:
        """
        Map a field to a column, or clear the field with an empty column.

        Args:
            field_api_name: Field to map
            column: CSV header, or "" to remove the entry

        Raises:
            DuplicateColumnMappingError: Column already mapped to another
                field and duplicates are rejected
        """
        if not column:
            self._unlink(field_api_name)
            return

        owner = self.column_owner(column)
        if owner is not None and owner != field_api_name:
            if self.reject_duplicates:
                raise DuplicateColumnMappingError(
                    column=column,
                    mapped_field=owner,
                    field_api_name=field_api_name
                )
            logger.warning(
                "duplicate_column_mapping",
                column=column,
                previous_field=owner,
                field=field_api_name
            )

        # Re-insert so the entry moves to the end
        self._unlink(field_api_name)
        self._entries[field_api_name] = column
        self._columns.setdefault(column, {})[field_api_name] = None

    def mapped_count(self) -> int:
        return len(self._entries)

    def field_status(self, field_api_name: str) -> tuple[bool, str]:
        """Return (is_mapped, column), column is "" when unmapped."""
        column = self._entries.get(field_api_name, "")
        return bool(column), column

    def column_owner(self, column: str) -> str | None:
        """Most recently set field mapped to column, if any."""
        holders = self._columns.get(column)
        if not holders:
            return None
        return next(reversed(holders))

    def invert(self) -> dict[str, str]:
        """
        Column -> field mapping for the import request.

        Later entries overwrite earlier ones sharing a column.
        """
        inverted: dict[str, str] = {}
        for field_api_name, column in self._entries.items():
            inverted[column] = field_api_name
        return inverted

    def snapshot(self) -> dict[str, str]:
        return dict(self._entries)

    def reset(self) -> None:
        self._entries.clear()
        self._columns.clear()

    def _unlink(self, field_api_name: str) -> None:
        column = self._entries.pop(field_api_name, None)
        if column is None:
            return
        holders = self._columns[column]
        del holders[field_api_name]
        if not holders:
            del self._columns[column]
