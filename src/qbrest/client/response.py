"""Read-only views over QuickBase query and upsert responses.

Both wrappers keep the raw JSON payload untouched (so it can be cached and
re-wrapped later) and compute everything else on access.

See Also:
    :mod:`qbrest.codec` -- the flattening rules used by
    :class:`QueryResponse`.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

from qbrest.codec import RECORD_ID_FIELD, derive_field_map, flatten
from qbrest.exceptions import MalformedRecordError


class QueryResponse:
    """Wrapper around a ``POST /records/query`` response.

    Args:
        raw: The decoded JSON body: ``{"data": [...], "fields": [...], "metadata": {...}}``.
        table_id: The table the query ran against.

    Example::

        response = QueryResponse(payload, "bqxyz123")
        response.count                 # 2
        response.field_map             # {"3": "Record ID#", "6": "Name"}
        response.formatted_records     # [{"Record ID#": 1, "Name": "Bob", "rid": 1}, ...]
    """

    def __init__(self, raw: dict[str, Any], table_id: str) -> None:
        self.raw = raw
        self.data: list[dict[str, Any]] = raw.get("data") or []
        self.fields: list[dict[str, Any]] = raw.get("fields") or []
        self.metadata: dict[str, Any] = raw.get("metadata") or {}
        self.table_id = table_id

    @property
    def records(self) -> list[dict[str, Any]]:
        """The wire records, as returned by QuickBase."""
        return self.data

    @property
    def count(self) -> int:
        return len(self.data)

    @property
    def field_map(self) -> dict[str, str]:
        """Field id -> label, derived from the response's ``fields`` array."""
        return derive_field_map(self.fields)

    @property
    def formatted_records(self) -> list[dict[str, Any]]:
        """Every record flattened with labels as keys."""
        field_map = self.field_map
        return [flatten(record, use_labels=True, field_map=field_map) for record in self.data]

    def unpack_record(
        self,
        record: Mapping[str, Any],
        rekey: bool = False,
        field_map: Optional[Mapping[str, str]] = None,
    ) -> dict[str, Any]:
        """Flatten one record, keyed by id or (with *rekey*) by label.

        *field_map* overrides the map derived from this response.
        """
        return flatten(
            record,
            use_labels=rekey,
            field_map=field_map if field_map is not None else self.field_map,
        )

    def urls(self, app_url: str) -> dict[Any, dict[str, str]]:
        """Build view/edit links for every record.

        Args:
            app_url: The app's base URL, as returned by
                :func:`~qbrest.codec.app_base_url`.

        Returns:
            ``{record_id: {"view": url, "edit": url}}``.

        Raises:
            MalformedRecordError: If the query did not select the Record ID# field.
        """
        if RECORD_ID_FIELD not in self.field_map:
            raise MalformedRecordError(
                "Cannot build URLs: Record ID field not found", field_id=RECORD_ID_FIELD
            )
        table_url = f"{app_url.rstrip('/')}/table/{self.table_id}/action/"
        links: dict[Any, dict[str, str]] = {}
        for record in self.data:
            rid = flatten(record)["rid"]
            links[rid] = {
                "view": f"{table_url}dr/?rid={rid}",
                "edit": f"{table_url}er/?rid={rid}",
            }
        return links


class UpsertResponse:
    """Wrapper around a ``POST /records`` response.

    Args:
        raw: The decoded JSON body: ``{"data": [...], "metadata": {...}}``.
    """

    def __init__(self, raw: dict[str, Any]) -> None:
        self.raw = raw
        self.data: list[dict[str, Any]] = raw.get("data") or []
        self.metadata: dict[str, Any] = raw.get("metadata") or {}

    @property
    def errors(self) -> dict[str, list[str]]:
        """Per-line errors, keyed by 1-based line number."""
        return self.metadata.get("lineErrors") or {}

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    @property
    def created_records(self) -> list[int]:
        return self.metadata.get("createdRecordIds") or []

    @property
    def updated_records(self) -> list[int]:
        return self.metadata.get("updatedRecordIds") or []

    @property
    def total_processed(self) -> int:
        return self.metadata.get("totalNumberOfRecordsProcessed") or 0

    @property
    def created_count(self) -> int:
        return len(self.created_records)

    @property
    def updated_count(self) -> int:
        return len(self.updated_records)

    @property
    def was_successful(self) -> bool:
        """True when no line failed and at least one record was processed."""
        return not self.has_errors and self.total_processed > 0

    @property
    def affected_record_ids(self) -> list[int]:
        """Created ids followed by updated ids."""
        return [*self.created_records, *self.updated_records]
