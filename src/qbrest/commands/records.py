"""Record commands -- query, fetch, upsert and update QuickBase records.

Provides the ``qbrest records`` sub-command group. Every command resolves
the active profile, opens a :class:`~qbrest.client.QbClient` and prints
results through the global output manager: record lists as tables (or
TSV/JSON with ``--plain``/``--json``), single records and upsert summaries
as formatted objects.
"""

from __future__ import annotations

import json
from typing import Any, Optional

import typer

from qbrest.codec import normalize
from qbrest.commands.runtime import (
    load_settings,
    make_client,
    open_response_cache,
    parse_field_ids,
    parse_sort,
    run,
)
from qbrest.exceptions import InvalidUsageError
from qbrest.output import format_response, info, print_records, warning

records_app = typer.Typer(no_args_is_help=True)


@records_app.command("query")
def query_command(
    ctx: typer.Context,
    table: str = typer.Argument(help="Table id (dbid)."),
    select: str = typer.Option(..., "--select", "-s", help="Comma-separated field ids."),
    where: Optional[str] = typer.Option(
        None, "--where", "-w", help="QuickBase query string, e.g. \"{6.EX.'Bob'}\"."
    ),
    sort: Optional[list[str]] = typer.Option(
        None, "--sort", help="Sort by FID[:ASC|DESC]. Repeatable."
    ),
    top: Optional[int] = typer.Option(None, "--top", help="Maximum number of records."),
    skip: Optional[int] = typer.Option(None, "--skip", help="Number of records to skip."),
    labels: bool = typer.Option(
        True, "--labels/--ids", help="Key columns by field label or by field id."
    ),
    cache_ttl: Optional[int] = typer.Option(
        None, "--cache-ttl", help="Keep cached results for N minutes instead of cache.ttl_minutes."
    ),
    no_cache: bool = typer.Option(
        False, "--no-cache", help="Bypass the response cache for this query."
    ),
) -> None:
    """Query records from a table.

    Results are served from the response cache while ``cache.enabled`` is
    set, and kept for ``cache.ttl_minutes`` unless ``--cache-ttl`` says
    otherwise.

    Example::

        qbrest records query bqxyz123 --select 3,6,7 --where "{7.GT.100}" --sort 6:DESC
        qbrest records query bqxyz123 -s 3,6 --cache-ttl 10 --json
    """

    async def _query() -> list[dict[str, Any]]:
        config, profile = load_settings(ctx)
        fields = parse_field_ids(select)
        sort_by = parse_sort(sort)
        options = {k: v for k, v in (("top", top), ("skip", skip)) if v is not None} or None
        ttl_minutes = cache_ttl if cache_ttl is not None else config.cache.ttl_minutes

        cache = None if no_cache else open_response_cache(config)
        if cache_ttl is not None and cache is None and not no_cache:
            warning("Response cache is disabled in config; querying directly.")
        try:
            async with make_client(profile, cache) as client:
                if cache is not None:
                    response = await client.query_cached(
                        table, fields, where, sort_by, options, ttl_minutes=ttl_minutes
                    )
                else:
                    response = await client.query(table, fields, where, sort_by, options)
        finally:
            if cache is not None:
                cache.close()

        info(f"{response.count} record(s)")
        if labels:
            return response.formatted_records
        return [response.unpack_record(record) for record in response.records]

    print_records(run(_query()), title=table)


@records_app.command("get")
def get_command(
    ctx: typer.Context,
    table: str = typer.Argument(help="Table id (dbid)."),
    record_id: int = typer.Argument(help="Record ID# to fetch."),
    select: str = typer.Option("3", "--select", "-s", help="Comma-separated field ids."),
) -> None:
    """Fetch a single record by Record ID#.

    Example::

        qbrest records get bqxyz123 42 --select 3,6,7
    """

    async def _get() -> dict[str, Any]:
        _, profile = load_settings(ctx)
        async with make_client(profile) as client:
            return await client.get_by_id(table, record_id, parse_field_ids(select))

    format_response(run(_get()))


@records_app.command("upsert")
def upsert_command(
    ctx: typer.Context,
    table: str = typer.Argument(help="Table id (dbid)."),
    data: str = typer.Option(
        ..., "--data", "-d", help="JSON object or array of records keyed by field id."
    ),
    merge_field: Optional[int] = typer.Option(
        None, "--merge-field", help="Field id used to match existing records."
    ),
    strict: bool = typer.Option(
        False, "--strict", help="Fail when any record is rejected."
    ),
) -> None:
    """Insert or update records.

    Values may be raw (``{"6": "Bob"}``) or already wrapped
    (``{"6": {"value": "Bob"}}``).

    Example::

        qbrest records upsert bqxyz123 --data '[{"6": "Bob", "7": 12}]'
        qbrest records upsert bqxyz123 --data '{"3": 42, "7": 13}' --strict
    """

    async def _upsert() -> dict[str, Any]:
        _, profile = load_settings(ctx)
        records = [normalize(record) for record in _parse_records(data)]
        async with make_client(profile) as client:
            if strict:
                if merge_field is not None:
                    raise InvalidUsageError("--strict cannot be combined with --merge-field")
                response = await client.strict_upsert(table, records)
            else:
                response = await client.upsert(table, records, merge_field)
        if response.has_errors:
            warning(f"{len(response.errors)} line(s) rejected")
        return {
            "created": response.created_records,
            "updated": response.updated_records,
            "total_processed": response.total_processed,
            "errors": response.errors,
        }

    format_response(run(_upsert()))


@records_app.command("update")
def update_command(
    ctx: typer.Context,
    table: str = typer.Argument(help="Table id (dbid)."),
    record_id: int = typer.Argument(help="Record ID# to update."),
    data: str = typer.Option(..., "--data", "-d", help="JSON object of field id -> value."),
) -> None:
    """Update one record by Record ID#.

    Example::

        qbrest records update bqxyz123 42 --data '{"7": 13}'
    """

    async def _update() -> dict[str, Any]:
        _, profile = load_settings(ctx)
        fields = _parse_json(data)
        if not isinstance(fields, dict):
            raise InvalidUsageError("--data must be a JSON object")
        async with make_client(profile) as client:
            response = await client.update_record(table, record_id, fields)
        return {
            "updated": response.updated_records,
            "errors": response.errors,
        }

    format_response(run(_update()))


def _parse_json(text: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise InvalidUsageError(f"Invalid JSON in --data: {exc}") from None


def _parse_records(text: str) -> list[dict[str, Any]]:
    """Accept a single JSON object or an array of objects."""
    parsed = _parse_json(text)
    records = [parsed] if isinstance(parsed, dict) else parsed
    if not isinstance(records, list) or not all(isinstance(r, dict) for r in records):
        raise InvalidUsageError("--data must be a JSON object or an array of objects")
    return records
