"""Tests for qbrest.codec -- wire/flat record conversion and URL helpers."""

from __future__ import annotations

import pytest

from qbrest.codec import app_base_url, derive_field_map, flatten, normalize
from qbrest.exceptions import InvalidUsageError, MalformedRecordError


# ------------------------------------------------------------------ #
# derive_field_map
# ------------------------------------------------------------------ #


class TestDeriveFieldMap:
    def test_ids_become_strings(self) -> None:
        fields = [{"id": 3, "label": "Record ID#"}, {"id": 6, "label": "Name"}]
        assert derive_field_map(fields) == {"3": "Record ID#", "6": "Name"}

    def test_last_duplicate_wins(self) -> None:
        fields = [{"id": 6, "label": "Name"}, {"id": 6, "label": "Full Name"}]
        assert derive_field_map(fields) == {"6": "Full Name"}

    def test_unlabelled_descriptor_skipped(self) -> None:
        fields = [{"id": 6}, {"id": 7, "label": ""}, {"id": 8, "label": "Qty"}]
        assert derive_field_map(fields) == {"8": "Qty"}

    def test_empty(self) -> None:
        assert derive_field_map([]) == {}


# ------------------------------------------------------------------ #
# flatten
# ------------------------------------------------------------------ #


class TestFlatten:
    def test_label_mode_drops_unlabelled_record_id(self) -> None:
        """Field 3 without a label is only carried by ``rid``."""
        record = {"6": {"value": "Bob"}, "3": {"value": 42}}
        flat = flatten(record, use_labels=True, field_map={"6": "Name"})
        assert flat == {"Name": "Bob", "rid": 42}

    def test_id_mode_keeps_ids_and_adds_rid(self) -> None:
        record = {"6": {"value": "Bob"}, "3": {"value": 42}}
        assert flatten(record) == {"6": "Bob", "3": 42, "rid": 42}

    def test_label_mode_with_labelled_record_id(self) -> None:
        record = {"3": {"value": 7}, "6": {"value": "Bob"}}
        flat = flatten(record, use_labels=True, field_map={"3": "Record ID#", "6": "Name"})
        assert flat == {"Record ID#": 7, "Name": "Bob", "rid": 7}

    def test_label_mode_unlabelled_field_falls_back_to_id(self) -> None:
        record = {"6": {"value": "Bob"}, "9": {"value": True}}
        flat = flatten(record, use_labels=True, field_map={"6": "Name"})
        assert flat == {"Name": "Bob", "9": True}

    def test_no_rid_without_record_id_field(self) -> None:
        assert "rid" not in flatten({"6": {"value": "Bob"}})

    def test_rid_overrides_field_labelled_rid(self) -> None:
        record = {"6": {"value": "label value"}, "3": {"value": 42}}
        flat = flatten(record, use_labels=True, field_map={"6": "rid"})
        assert flat == {"rid": 42}

    def test_null_value_is_preserved(self) -> None:
        assert flatten({"6": {"value": None}}) == {"6": None}

    def test_idempotent(self) -> None:
        record = {"3": {"value": 1}, "6": {"value": "Bob"}}
        field_map = {"6": "Name"}
        first = flatten(record, use_labels=True, field_map=field_map)
        second = flatten(record, use_labels=True, field_map=field_map)
        assert first == second

    def test_does_not_mutate_input(self) -> None:
        record = {"3": {"value": 1}, "6": {"value": "Bob"}}
        flatten(record, use_labels=True, field_map={"6": "Name"})
        assert record == {"3": {"value": 1}, "6": {"value": "Bob"}}

    def test_entry_without_value_key_raises(self) -> None:
        with pytest.raises(MalformedRecordError) as exc_info:
            flatten({"6": {"val": "Bob"}})
        assert exc_info.value.field_id == "6"

    def test_non_mapping_entry_raises(self) -> None:
        with pytest.raises(MalformedRecordError):
            flatten({"6": "Bob"})


# ------------------------------------------------------------------ #
# normalize
# ------------------------------------------------------------------ #


class TestNormalize:
    def test_wraps_raw_values(self) -> None:
        assert normalize({"6": "Bob", "7": 12}) == {"6": {"value": "Bob"}, "7": {"value": 12}}

    def test_existing_wrappers_pass_through(self) -> None:
        record = {"6": {"value": "Bob"}, "7": 12}
        assert normalize(record) == {"6": {"value": "Bob"}, "7": {"value": 12}}

    def test_mapping_without_value_key_is_wrapped(self) -> None:
        assert normalize({"8": {"a": 1}}) == {"8": {"value": {"a": 1}}}

    def test_keys_are_stringified(self) -> None:
        assert normalize({6: "Bob"}) == {"6": {"value": "Bob"}}

    def test_idempotent(self) -> None:
        record = {"6": "Bob", "7": [1, 2]}
        assert normalize(normalize(record)) == normalize(record)

    def test_flatten_inverts_normalize(self) -> None:
        """Without field 3, flatten undoes normalize exactly."""
        flat = {"6": "Bob", "7": 12, "8": None}
        assert flatten(normalize(flat)) == flat

    def test_normalize_inverts_flatten(self) -> None:
        wire = {"6": {"value": "Bob"}, "7": {"value": [1, 2]}, "8": {"value": None}}
        assert normalize(flatten(wire, use_labels=False)) == wire

    def test_record_id_field_gains_rid_entry(self) -> None:
        wire = {"3": {"value": 42}, "6": {"value": "Bob"}}
        assert normalize(flatten(wire, use_labels=False)) == {**wire, "rid": {"value": 42}}


# ------------------------------------------------------------------ #
# app_base_url
# ------------------------------------------------------------------ #


class TestAppBaseUrl:
    def test_legacy_db_path(self) -> None:
        url = "https://acme.quickbase.com/db/bq8kmvxyz?a=td"
        assert app_base_url(url) == "https://acme.quickbase.com/nav/app/bq8kmvxyz/"

    def test_nav_app_path(self) -> None:
        url = "https://acme.quickbase.com/nav/app/bq8kmvxyz/table/bqtbl1/action/td"
        assert app_base_url(url) == "https://acme.quickbase.com/nav/app/bq8kmvxyz/"

    def test_url_without_app_id_raises(self) -> None:
        with pytest.raises(InvalidUsageError, match="App ID not found"):
            app_base_url("https://acme.quickbase.com/settings")
