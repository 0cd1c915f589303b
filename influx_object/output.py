"""Plugin de salida que conecta el framework anfitrión con InfluxDB."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Protocol, Union, runtime_checkable

from influx_object.config.schema import SinkSettings
from influx_object.metrics import SinkMetrics
from influx_object.pipeline.timeparse import EventTime, TimeResolver
from influx_object.pipeline.writer import ChunkWriter
from influx_object.sinks.base import Chunk
from influx_object.sinks.influx import InfluxClient

logger = logging.getLogger(__name__)

DEFAULT_TIME_PARSE_ERROR_TAG = "influxdb_object.time_parse_error"


@runtime_checkable
class ErrorEventRouter(Protocol):
    """Destino de los eventos de error (registros que no se pudieron interpretar)."""

    def emit_error_event(self, tag: str, time: float, record: Mapping[str, Any], error: Exception) -> None:
        """Publica un evento de error."""


class LoggingErrorRouter:
    """Router por defecto: registra cada evento de error en el log."""

    def __init__(self, logger_: Optional[logging.Logger] = None) -> None:
        self._logger = logger_ or logging.getLogger(__name__ + ".errors")

    def emit_error_event(self, tag: str, time: float, record: Mapping[str, Any], error: Exception) -> None:
        self._logger.error(
            "error event tag=%s time=%s record=%s error=%s: %s",
            tag,
            time,
            dict(record),
            type(error).__name__,
            error,
        )


class InfluxdbObjectOutput:
    """Salida con buffer que escribe cada chunk como un lote en InfluxDB."""

    def __init__(
        self,
        *,
        router: Optional[ErrorEventRouter] = None,
        client_factory: Callable[[SinkSettings], Any] = InfluxClient,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.router: ErrorEventRouter = router or LoggingErrorRouter()
        self._client_factory = client_factory
        self._clock = clock
        self.settings: Optional[SinkSettings] = None
        self.client: Any = None
        self.resolver: Optional[TimeResolver] = None
        self.writer: Optional[ChunkWriter] = None
        self.metrics = SinkMetrics()

    def configure(self, settings: Union[SinkSettings, Mapping[str, Any]]) -> None:
        if not isinstance(settings, SinkSettings):
            settings = SinkSettings.from_mapping(settings)
        self.settings = settings
        self.metrics = SinkMetrics(log_interval_s=settings.metrics_log_interval_s)

        logger.info(
            "Connecting to database: %s, host: %s, port: %s, username: %s, use_ssl = %s, verify_ssl = %s",
            settings.dbname,
            settings.host,
            settings.port,
            settings.user,
            settings.use_ssl,
            settings.verify_ssl,
        )
        self.client = self._client_factory(settings)
        if settings.check_database:
            self.client.check_database()

        self.resolver = TimeResolver(settings.time_spec, on_error=self._on_time_parse_error)
        self.writer = ChunkWriter(
            self.client,
            self.resolver,
            tag_keys=settings.tag_keys,
            measurement=settings.measurement,
            precision=settings.time_precision,
            metrics=self.metrics,
        )

    def write_objects(self, tag: str, chunk: Union[Chunk, Iterable[Any]]) -> int:
        """Escribe un chunk; los errores de escritura se propagan al anfitrión."""

        if self.writer is None:
            raise RuntimeError("configure() must be called before write_objects()")
        if isinstance(chunk, Chunk):
            tag = chunk.tag
        return self.writer.process_chunk(tag, chunk)

    def shutdown(self) -> None:
        close = getattr(self.client, "close", None)
        if callable(close):
            close()
        self.metrics.maybe_log(force=True)

    def _on_time_parse_error(
        self,
        tag: str,
        event_time: EventTime,
        time_format: Optional[str],
        value: Any,
        error: Exception,
    ) -> None:
        self.metrics.increment_time_parse_error()
        error_tag = DEFAULT_TIME_PARSE_ERROR_TAG
        if self.settings is not None and self.settings.time_parse_error_tag:
            error_tag = self.settings.time_parse_error_tag
        record: Dict[str, Any] = {"tag": tag, "time": event_time, "format": time_format, "value": value}
        self.router.emit_error_event(error_tag, self._clock(), record, error)
