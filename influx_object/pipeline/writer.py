"""Armado y escritura del lote de puntos correspondiente a un chunk."""

from __future__ import annotations

import logging
from typing import Any, Iterable, List, Mapping, Optional

from influx_object.metrics import SinkMetrics
from influx_object.sinks.base import Point, PointWriter

from .classify import classify
from .timeparse import TimeResolver, to_epoch

logger = logging.getLogger(__name__)


class ChunkWriter:
    """Convierte un chunk de registros en un único lote y lo envía al almacenamiento.

    Los errores del almacenamiento se propagan sin reintentos: la política de
    reintento pertenece al framework que entrega los chunks.
    """

    def __init__(
        self,
        client: PointWriter,
        resolver: TimeResolver,
        *,
        tag_keys: Iterable[str] = (),
        measurement: Optional[str] = None,
        precision: str = "s",
        metrics: Optional[SinkMetrics] = None,
    ) -> None:
        self.client = client
        self.resolver = resolver
        self.tag_keys = frozenset(tag_keys)
        self.measurement = measurement
        self.precision = precision
        self.metrics = metrics or SinkMetrics()

    def build_points(self, tag: str, entries: Iterable[Any]) -> List[Point]:
        points: List[Point] = []
        time_key = self.resolver.time_spec.time_key
        for entry in entries:
            if isinstance(entry, (tuple, list)) and len(entry) == 2:
                event_time, record = entry
            else:
                event_time, record = None, None
            if not isinstance(record, Mapping):
                logger.debug("Ignoring non-record entry in chunk %s: %r", tag, entry)
                self.metrics.increment_malformed()
                continue

            classification = classify(record, self.tag_keys, time_key)
            moment = self.resolver.resolve(classification.time_value, event_time, tag)

            if not classification.values:
                logger.warning(
                    "Skip record '%s', because InfluxDB requires at least one value in raw",
                    dict(record),
                )
                self.metrics.increment_discarded()
                continue

            points.append(
                Point(
                    timestamp=to_epoch(moment, self.precision),
                    series=self.measurement or tag,
                    values=classification.values,
                    tags=classification.tags,
                )
            )
        return points

    def process_chunk(self, tag: str, entries: Iterable[Any]) -> int:
        """Procesa un chunk completo; devuelve la cantidad de puntos escritos."""

        entries = list(entries)
        self.metrics.record_chunk(len(entries))
        points = self.build_points(tag, entries)
        if not points:
            logger.debug("Chunk %s produced no points; skipping write.", tag)
            return 0

        logger.info("write points size: %d", len(points))
        try:
            self.client.write_points(points)
        except Exception:
            self.metrics.record_write_failure()
            raise
        self.metrics.record_write(len(points))
        return len(points)
