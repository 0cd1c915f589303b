"""Configuration schemas and persistence helpers for the InfluxDB sink."""

from .schema import TIME_PRECISIONS, SinkSettings, TimeSpec
from .store import (
    default_sink_settings,
    load_env_file,
    load_sink_settings,
    save_sink_settings,
    sink_settings_from_env,
)

__all__ = [
    "TIME_PRECISIONS",
    "SinkSettings",
    "TimeSpec",
    "default_sink_settings",
    "load_env_file",
    "load_sink_settings",
    "save_sink_settings",
    "sink_settings_from_env",
]
