"""Unit tests for the InfluxDB client and line protocol encoding."""

from __future__ import annotations

import logging
from dataclasses import replace

import pytest
import requests
import responses
from responses import matchers

from influx_object.config.schema import SinkSettings
from influx_object.sinks import (
    ConfigError,
    InfluxAuthError,
    InfluxClient,
    InfluxWriteError,
    Point,
    point_to_line,
)

WRITE_URL = "http://influx-a:8086/write"
QUERY_URL = "http://influx-a:8086/query"


def make_point(**overrides) -> Point:
    data = {
        "timestamp": 1_619_870_400,
        "series": "app.logs",
        "values": {"latency_ms": 42, "ratio": 0.5},
        "tags": {"region": "us-east"},
    }
    data.update(overrides)
    return Point(**data)


def build_settings(**overrides) -> SinkSettings:
    payload = {"host": "influx-a", "dbname": "metrics", "user": "writer", "password": "secret"}
    payload.update(overrides)
    return SinkSettings.from_mapping(payload)


def test_point_requires_values():
    with pytest.raises(ValueError):
        Point(timestamp=1, series="s", values={})


def test_point_to_line_formats_integers_floats_and_tags():
    line = point_to_line(make_point(tags={"zone": "b", "region": "us-east"}))

    assert line == "app.logs,region=us-east,zone=b latency_ms=42i,ratio=0.5 1619870400"


def test_point_to_line_escapes_special_characters():
    point = make_point(series="app logs,v2", values={"a b": 1.0}, tags={"host name": "x=y,z"})

    assert point_to_line(point) == r"app\ logs\,v2,host\ name=x\=y\,z a\ b=1.0 1619870400"


@responses.activate
def test_write_points_posts_single_batch():
    responses.add(
        responses.POST,
        WRITE_URL,
        status=204,
        match=[matchers.query_param_matcher({"db": "metrics", "precision": "s"})],
    )
    client = InfluxClient(build_settings())

    client.write_points([make_point(), make_point(timestamp=1_619_870_401)])

    assert len(responses.calls) == 1
    request = responses.calls[0].request
    assert request.body.decode("utf-8").splitlines() == [
        "app.logs,region=us-east latency_ms=42i,ratio=0.5 1619870400",
        "app.logs,region=us-east latency_ms=42i,ratio=0.5 1619870401",
    ]
    assert request.headers["Authorization"].startswith("Basic ")


@responses.activate
def test_write_points_with_empty_batch_does_nothing():
    client = InfluxClient(build_settings())

    client.write_points([])

    assert len(responses.calls) == 0


@responses.activate
def test_rejected_write_raises_with_status_and_body():
    responses.add(responses.POST, WRITE_URL, status=400, body='{"error":"field type conflict"}')
    client = InfluxClient(build_settings())

    with pytest.raises(InfluxWriteError) as excinfo:
        client.write_points([make_point()])

    assert excinfo.value.status_code == 400
    assert "field type conflict" in excinfo.value.body
    assert len(responses.calls) == 1


@responses.activate
def test_unauthorized_write_raises_auth_error():
    responses.add(responses.POST, WRITE_URL, status=401, body="authorization failed")
    client = InfluxClient(build_settings())

    with pytest.raises(InfluxAuthError):
        client.write_points([make_point()])


@responses.activate
def test_unreachable_host_fails_over_to_next(caplog):
    caplog.set_level(logging.WARNING, logger="influx_object.sinks.influx")
    responses.add(responses.POST, WRITE_URL, body=requests.ConnectionError("refused"))
    responses.add(responses.POST, "http://influx-b:8086/write", status=204)
    client = InfluxClient(build_settings(host="influx-a,influx-b"))

    client.write_points([make_point()])

    assert responses.calls[-1].request.url.startswith("http://influx-b:8086/write?")
    assert any("influx-a" in record.getMessage() for record in caplog.records)


@responses.activate
def test_all_hosts_unreachable_raises_connection_error():
    responses.add(responses.POST, WRITE_URL, body=requests.ConnectionError("refused"))
    client = InfluxClient(build_settings())

    with pytest.raises(requests.ConnectionError):
        client.write_points([make_point()])


def test_ssl_settings_select_scheme_and_verification():
    client = InfluxClient(build_settings(use_ssl=True, verify_ssl=False, port=8443))

    assert client.base_urls == ["https://influx-a:8443"]
    assert client.session.verify is False


def test_client_requires_at_least_one_host():
    settings = replace(build_settings(), host=" , ")

    with pytest.raises(ConfigError, match="host"):
        InfluxClient(settings)


def _databases_payload(*names):
    return {"results": [{"series": [{"name": "databases", "columns": ["name"], "values": [[n] for n in names]}]}]}


@responses.activate
def test_list_databases_and_check_database():
    responses.add(responses.GET, QUERY_URL, json=_databases_payload("_internal", "metrics"))
    responses.add(responses.GET, QUERY_URL, json=_databases_payload("_internal", "metrics"))
    client = InfluxClient(build_settings())

    assert client.list_databases() == ["_internal", "metrics"]
    client.check_database()


@responses.activate
def test_check_database_raises_when_missing():
    responses.add(responses.GET, QUERY_URL, json=_databases_payload("_internal"))
    client = InfluxClient(build_settings())

    with pytest.raises(ConfigError, match="Database metrics doesn't exist"):
        client.check_database()


@responses.activate
def test_check_database_is_skipped_without_privileges(caplog):
    caplog.set_level(logging.INFO, logger="influx_object.sinks.influx")
    responses.add(responses.GET, QUERY_URL, status=403, body="forbidden")
    client = InfluxClient(build_settings())

    client.check_database()

    assert any("Skip database presence check" in record.getMessage() for record in caplog.records)
