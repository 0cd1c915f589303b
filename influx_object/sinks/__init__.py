"""Tipos de punto y cliente de almacenamiento InfluxDB."""

from __future__ import annotations

from .base import Chunk, Point, PointWriter
from .influx import (
    ConfigError,
    InfluxAuthError,
    InfluxClient,
    InfluxError,
    InfluxWriteError,
    point_to_line,
)

__all__ = [
    "Chunk",
    "ConfigError",
    "InfluxAuthError",
    "InfluxClient",
    "InfluxError",
    "InfluxWriteError",
    "Point",
    "PointWriter",
    "point_to_line",
]
