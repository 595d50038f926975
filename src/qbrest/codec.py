"""Conversion between QuickBase wire records and flat records.

QuickBase returns (and accepts) each row as a mapping from field id to a
value wrapper::

    {"3": {"value": 42}, "6": {"value": "Bob"}}

The helpers here translate that shape into flat dictionaries keyed by field
id or field label, and back. Field ``"3"`` is QuickBase's built-in Record ID#;
whenever it is present, flattening also exposes its value under ``"rid"``.

All functions are pure: they never mutate their inputs.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from typing import Any, Optional
from urllib.parse import urlparse

from qbrest.exceptions import InvalidUsageError, MalformedRecordError

RECORD_ID_FIELD = "3"
"""Field id QuickBase reserves for the Record ID# column."""

RID_KEY = "rid"
"""Flat-record key that always carries the Record ID# value."""

_LEGACY_APP_PATH = re.compile(r"/db/([a-z0-9]+)")
_APP_PATH = re.compile(r"/nav/app/([a-z0-9]+)")


def derive_field_map(fields: Iterable[Mapping[str, Any]]) -> dict[str, str]:
    """Build a field-id -> label map from a response's ``fields`` array.

    Ids are coerced to strings so they line up with wire-record keys. When
    the same id appears twice the later descriptor wins. Descriptors
    without a label are skipped.
    """
    field_map: dict[str, str] = {}
    for descriptor in fields:
        label = descriptor.get("label")
        if label:
            field_map[str(descriptor["id"])] = label
    return field_map


def flatten(
    record: Mapping[str, Any],
    use_labels: bool = False,
    field_map: Optional[Mapping[str, str]] = None,
) -> dict[str, Any]:
    """Unwrap a wire record into a flat ``{key: value}`` dictionary.

    Args:
        record: The wire record, ``{field_id: {"value": ...}}``.
        use_labels: Key fields by their label instead of their id.
        field_map: Field-id -> label map used when *use_labels* is set.

    Returns:
        The flat record. Unlabelled fields keep their id as key, except the
        Record ID# field, which in label mode is only carried by ``"rid"``.
        ``"rid"`` is written last and so wins over a field labelled ``rid``.
        Because of that extra key, ``normalize(flatten(record))`` returns
        *record* only when it has no field 3; otherwise it also holds a
        ``{"rid": {"value": ...}}`` entry.

    Raises:
        MalformedRecordError: If an entry is not a ``{"value": ...}`` mapping.
    """
    labels = field_map or {}
    flat: dict[str, Any] = {}
    for field_id, wrapper in record.items():
        value = _unwrap(field_id, wrapper)
        key = str(field_id)
        if use_labels:
            label = labels.get(key)
            if label:
                key = label
            elif key == RECORD_ID_FIELD:
                continue
        flat[key] = value

    if RECORD_ID_FIELD in record:
        flat[RID_KEY] = _unwrap(RECORD_ID_FIELD, record[RECORD_ID_FIELD])
    return flat


def normalize(record: Mapping[Any, Any]) -> dict[str, Any]:
    """Wrap a flat record's values in QuickBase's ``{"value": ...}`` format.

    Values that already look like wrappers (a mapping with a ``"value"``
    key) pass through unchanged, so callers may mix raw and pre-wrapped
    values. Keys are coerced to strings.
    """
    normalized: dict[str, Any] = {}
    for field_id, value in record.items():
        if isinstance(value, Mapping) and "value" in value:
            normalized[str(field_id)] = value
        else:
            normalized[str(field_id)] = {"value": value}
    return normalized


def app_base_url(url: str) -> str:
    """Derive an app's base URL from any QuickBase page URL.

    Understands both the legacy ``/db/<appId>`` and the current
    ``/nav/app/<appId>`` paths.

    Example::

        >>> app_base_url("https://acme.quickbase.com/db/bq8kmvxyz?a=td")
        'https://acme.quickbase.com/nav/app/bq8kmvxyz/'

    Raises:
        InvalidUsageError: If the URL carries no app id.
    """
    parsed = urlparse(url)
    realm = (parsed.hostname or "").split(".")[0]
    match = _LEGACY_APP_PATH.search(parsed.path) or _APP_PATH.search(parsed.path)
    if not realm or match is None:
        raise InvalidUsageError(f"App ID not found in URL: {url}")
    return f"https://{realm}.quickbase.com/nav/app/{match.group(1)}/"


def _unwrap(field_id: Any, wrapper: Any) -> Any:
    if not isinstance(wrapper, Mapping) or "value" not in wrapper:
        raise MalformedRecordError(
            f"Field {field_id} is not a value wrapper: {wrapper!r}",
            field_id=str(field_id),
        )
    return wrapper["value"]
