"""Helpers to load, validate and persist configuration files."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from dotenv import dotenv_values

from .schema import SinkSettings

CONFIG_DIR = Path(__file__).resolve().parent

# Variables de entorno reconocidas y su clave equivalente en sink.yaml.
ENV_KEYS = {
    "INFLUXDB_HOST": "host",
    "INFLUXDB_PORT": "port",
    "INFLUXDB_DBNAME": "dbname",
    "INFLUXDB_MEASUREMENT": "measurement",
    "INFLUXDB_USER": "user",
    "INFLUXDB_PASSWORD": "password",
    "INFLUXDB_TIME_KEY": "time_key",
    "INFLUXDB_TIME_KEY_FORMAT": "time_key_format",
    "INFLUXDB_TIME_PRECISION": "time_precision",
    "INFLUXDB_USE_SSL": "use_ssl",
    "INFLUXDB_VERIFY_SSL": "verify_ssl",
    "INFLUXDB_TAG_KEYS": "tag_keys",
    "INFLUXDB_TIMEOUT_S": "timeout_s",
    "INFLUXDB_TIME_PARSE_ERROR_TAG": "time_parse_error_tag",
    "INFLUXDB_CHECK_DATABASE": "check_database",
    "INFLUXDB_METRICS_LOG_INTERVAL_S": "metrics_log_interval_s",
}


def _read_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(path)
    with path.open("r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Expected a mapping at {path}, found {type(data).__name__}")
    return data


def _write_yaml(path: Path, payload: Mapping[str, Any]):
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as fh:
        yaml.safe_dump(payload, fh, sort_keys=False, allow_unicode=True)


def load_sink_settings(path: Optional[Path] = None) -> SinkSettings:
    """Read and validate sink settings from sink.yaml."""

    cfg_path = path or CONFIG_DIR / "sink.yaml"
    raw = _read_yaml(cfg_path)
    return SinkSettings.from_mapping(raw)


def save_sink_settings(settings: SinkSettings, path: Optional[Path] = None):
    """Persist the sink settings to sink.yaml."""

    cfg_path = path or CONFIG_DIR / "sink.yaml"
    _write_yaml(cfg_path, settings.to_dict())


def sink_settings_from_env(env: Mapping[str, Any], base: Optional[SinkSettings] = None) -> SinkSettings:
    """Create sink settings from environment variables.

    Values present in ``env`` override those of ``base``; unknown variables are
    ignored.
    """

    payload: Dict[str, Any] = base.to_dict() if base is not None else {}
    for env_name, key in ENV_KEYS.items():
        value = env.get(env_name)
        if value is None or value == "":
            continue
        payload[key] = value
    return SinkSettings.from_mapping(payload)


def default_sink_settings() -> SinkSettings:
    """Return a template configuration pointing to a local InfluxDB."""

    return SinkSettings.from_mapping(
        {
            "host": "localhost",
            "port": 8086,
            "dbname": "fluentd",
            "user": "root",
            "password": "root",
            "time_key": "time",
            "time_precision": "s",
            "tag_keys": [],
        }
    )


def load_env_file(path: Path) -> Mapping[str, str]:
    """Load key/value pairs from a dotenv file."""

    values = dotenv_values(str(path))
    return {k: v for k, v in values.items() if v is not None}
