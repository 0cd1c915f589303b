"""InfluxDB output that turns structured records into time-series points."""

__all__ = [
    "config",
    "metrics",
    "output",
    "pipeline",
    "run",
    "sinks",
]
