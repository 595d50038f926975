"""Exception hierarchy for qbrest.

All exceptions inherit from :class:`QbRestError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`qbrest.exit_codes`.
Library callers catch the specific subclasses and read their structured
attributes (status code, upstream message, line-error map); the CLI entry
point in :func:`qbrest.app.main` catches ``QbRestError`` and exits with the
matching code.

Subclass hierarchy::

    QbRestError (exit 1)
    +-- InvalidUsageError          (exit 2)
    +-- AuthenticationError        (exit 3)
    +-- RecordNotFoundError        (exit 4)
    +-- ApiRequestError            (exit 5)
    +-- TransportError             (exit 6)
    +-- MalformedRecordError       (exit 7)
    +-- ResponseParseError         (exit 7)
    +-- UpsertPartialFailureError  (exit 8)
    +-- AmbiguousMatchError        (exit 9)
    +-- ConfigError                (exit 1)
"""

from __future__ import annotations

import json
from typing import Any, Optional

from qbrest.exit_codes import (
    EXIT_AMBIGUOUS_MATCH,
    EXIT_API_ERROR,
    EXIT_AUTH_FAILURE,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_MALFORMED_RESPONSE,
    EXIT_NOT_FOUND,
    EXIT_PARTIAL_FAILURE,
)


class QbRestError(Exception):
    """Base exception for all qbrest errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`qbrest.exit_codes`.

    Args:
        message: Human-readable error description.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(QbRestError):
    """Raised for invalid CLI arguments or unusable caller input."""

    exit_code = EXIT_INVALID_USAGE


class AuthenticationError(QbRestError):
    """Raised when a temporary token for a table cannot be obtained.

    Attributes:
        resource_id: The table id the token was requested for.
        status_code: HTTP status of the token endpoint, or ``None`` when the
            request never got a response (network failure).
    """

    exit_code = EXIT_AUTH_FAILURE

    def __init__(
        self,
        message: str,
        resource_id: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.resource_id = resource_id
        self.status_code = status_code


class ApiRequestError(QbRestError):
    """Raised when an authenticated call returns a non-success status.

    Attributes:
        status_code: The HTTP status code.
        api_message: QuickBase's ``message`` field, or the reason phrase
            when the body carried none.
    """

    exit_code = EXIT_API_ERROR

    def __init__(self, status_code: int, api_message: str):
        super().__init__(f"{status_code}: {api_message}")
        self.status_code = status_code
        self.api_message = api_message


class TransportError(QbRestError):
    """Raised on network-level failures (timeout, DNS resolution, connection refused)."""

    exit_code = EXIT_CONNECTION_ERROR


class RecordNotFoundError(QbRestError):
    """Raised when a unique-field lookup matches no records."""

    exit_code = EXIT_NOT_FOUND

    def __init__(self, table_id: str, field_id: Any, value: Any):
        super().__init__(
            f"No records found in {table_id} where field {field_id} is {value!r}"
        )
        self.table_id = table_id
        self.field_id = field_id
        self.value = value


class AmbiguousMatchError(QbRestError):
    """Raised when a strict unique-field lookup matches several records."""

    exit_code = EXIT_AMBIGUOUS_MATCH

    def __init__(self, table_id: str, field_id: Any, value: Any, count: int):
        super().__init__(
            f"{count} records found in {table_id} where field {field_id} is {value!r}; "
            "expected exactly one"
        )
        self.table_id = table_id
        self.field_id = field_id
        self.value = value
        self.count = count


class UpsertPartialFailureError(QbRestError):
    """Raised by a strict upsert when any line was rejected.

    Attributes:
        line_errors: QuickBase's ``metadata.lineErrors`` map, keyed by the
            1-based line number (as a string) with a list of messages each.
    """

    exit_code = EXIT_PARTIAL_FAILURE

    def __init__(self, line_errors: dict[str, list[str]]):
        super().__init__(f"Upsert failed: {json.dumps(line_errors)}")
        self.line_errors = line_errors


class MalformedRecordError(QbRestError):
    """Raised when a wire record entry is not a ``{"value": ...}`` mapping."""

    exit_code = EXIT_MALFORMED_RESPONSE

    def __init__(self, message: str, field_id: Optional[str] = None):
        super().__init__(message)
        self.field_id = field_id


class ResponseParseError(QbRestError):
    """Raised when a non-JSON response (e.g. the legacy XML API) cannot be parsed."""

    exit_code = EXIT_MALFORMED_RESPONSE


class ConfigError(QbRestError):
    """Raised for configuration problems (missing profiles, invalid JSON, bad credential sources)."""

    exit_code = EXIT_GENERIC_FAILURE
