"""Tests for splitting record fields into values and tags."""

from __future__ import annotations

import pytest

from influx_object.pipeline.classify import FieldKind, classify, kind_of, tag_text


@pytest.mark.parametrize(
    "value, kind",
    [
        (1, FieldKind.NUMERIC),
        (1.5, FieldKind.NUMERIC),
        (True, FieldKind.BOOLEAN),
        ("1", FieldKind.STRING),
        (None, FieldKind.NULL),
        ([1], FieldKind.OTHER),
    ],
)
def test_kind_of(value, kind):
    assert kind_of(value) is kind


def test_tag_text_uses_plain_representations():
    assert tag_text(None) == ""
    assert tag_text(False) == "false"
    assert tag_text(42) == "42"


def test_numeric_fields_become_values_and_configured_keys_become_tags():
    record = {"time": "2021-05-01T12:00:00Z", "latency_ms": 42, "region": "us-east", "name": "abc"}

    result = classify(record, {"region"})

    assert result.values == {"latency_ms": 42}
    assert result.tags == {"region": "us-east"}
    assert result.time_value == "2021-05-01T12:00:00Z"


def test_time_field_never_reaches_values_or_tags():
    record = {"ts": 1_619_870_400, "value": 1.0}

    result = classify(record, {"ts"}, time_key="ts")

    assert result.values == {"value": 1.0}
    assert result.tags == {}
    assert result.time_value == 1_619_870_400


@pytest.mark.parametrize("blank", ["", "  ", "\t\n", None])
def test_blank_tag_values_are_omitted(blank):
    result = classify({"region": blank, "v": 1}, ["region"])

    assert "region" not in result.tags


def test_tag_values_keep_their_original_text():
    result = classify({"region": " us-east ", "v": 1}, ["region"])

    assert result.tags == {"region": " us-east "}


def test_numeric_tag_key_is_both_value_and_tag():
    result = classify({"status": 200}, ["status"])

    assert result.values == {"status": 200}
    assert result.tags == {"status": "200"}


def test_booleans_are_not_values():
    result = classify({"ok": True, "flag": False}, ["flag"])

    assert result.values == {}
    assert result.tags == {"flag": "false"}


def test_classification_is_pure_and_idempotent():
    record = {"time": "x", "a": 1, "region": "eu", "extra": {"nested": 1}}
    snapshot = dict(record)

    first = classify(record, ["region"])
    second = classify(record, ["region"])

    assert first == second
    assert record == snapshot
