"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~qbrest.exceptions.QbRestError` subclass.
Shell scripts can inspect the exit code to tell an auth failure from a
missing record without parsing stderr.

Example::

    $ qbrest records get bqxyz123 42
    $ echo $?
    4   # EXIT_NOT_FOUND -- no record with that id
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or missing required parameters."""

EXIT_AUTH_FAILURE = 3
"""A temporary token could not be obtained for a table."""

EXIT_NOT_FOUND = 4
"""A unique-field lookup matched no records."""

EXIT_API_ERROR = 5
"""QuickBase answered an authenticated call with a non-success status."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, connection refused)."""

EXIT_MALFORMED_RESPONSE = 7
"""A response or record did not have the expected shape."""

EXIT_PARTIAL_FAILURE = 8
"""A strict upsert reported per-line errors."""

EXIT_AMBIGUOUS_MATCH = 9
"""A strict unique-field lookup matched more than one record."""
