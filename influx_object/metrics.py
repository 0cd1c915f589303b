import json
import logging
import threading
import time
from typing import Dict


class SinkMetrics:
    """Thread-safe accumulator for chunk processing and write counters."""

    def __init__(self, log_interval_s: float = 30.0, logger: logging.Logger | None = None) -> None:
        self.log_interval_s = max(0.0, float(log_interval_s))
        self._logger = logger or logging.getLogger(__name__)
        self._lock = threading.Lock()
        self._start_time = time.time()
        self._last_log_time = self._start_time
        self._counters = self._initial_counters()
        self._last_snapshot = self._counters.copy()

    @staticmethod
    def _initial_counters() -> Dict[str, int]:
        return {
            "chunks_processed": 0,
            "records_received": 0,
            "records_malformed": 0,
            "records_discarded": 0,
            "time_parse_errors": 0,
            "points_written": 0,
            "writes": 0,
            "write_failures": 0,
        }

    def snapshot(self) -> Dict[str, int]:
        with self._lock:
            return self._counters.copy()

    def record_chunk(self, records: int) -> None:
        with self._lock:
            self._counters["chunks_processed"] += 1
            self._counters["records_received"] += max(0, records)

    def increment_malformed(self) -> None:
        with self._lock:
            self._counters["records_malformed"] += 1

    def increment_discarded(self) -> None:
        with self._lock:
            self._counters["records_discarded"] += 1

    def increment_time_parse_error(self) -> None:
        with self._lock:
            self._counters["time_parse_errors"] += 1

    def record_write(self, points: int) -> None:
        with self._lock:
            self._counters["writes"] += 1
            self._counters["points_written"] += max(0, points)
        self.maybe_log()

    def record_write_failure(self) -> None:
        with self._lock:
            self._counters["write_failures"] += 1
        self.maybe_log()

    def maybe_log(self, force: bool = False) -> None:
        now = time.time()
        with self._lock:
            interval = now - self._last_log_time
            if not force and self.log_interval_s > 0.0 and interval < self.log_interval_s:
                return

            payload = self._build_payload(now, interval)
            self._last_log_time = now
            self._last_snapshot = self._counters.copy()

        self._logger.info("sink_metrics %s", json.dumps(payload, sort_keys=True))

    def _build_payload(self, now: float, interval: float) -> Dict[str, object]:
        delta = {
            key: self._counters[key] - self._last_snapshot.get(key, 0)
            for key in self._counters
        }
        return {
            "type": "sink_metrics",
            "uptime_s": round(now - self._start_time, 3),
            "interval_s": round(interval, 3),
            "counters": self._counters.copy(),
            "delta": delta,
        }
