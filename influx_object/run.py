"""Envía registros JSON (uno por línea) a InfluxDB agrupados en chunks."""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
import time
from dataclasses import replace
from pathlib import Path
from typing import Any, Callable, Iterable, Iterator, List, Optional, TextIO

import requests

from influx_object.config import (
    SinkSettings,
    default_sink_settings,
    load_env_file,
    load_sink_settings,
    sink_settings_from_env,
)
from influx_object.output import InfluxdbObjectOutput
from influx_object.sinks import Chunk, InfluxError

logger = logging.getLogger(__name__)


def iter_records(stream: TextIO) -> Iterator[Any]:
    for lineno, line in enumerate(stream, start=1):
        text = line.strip()
        if not text:
            continue
        try:
            yield json.loads(text)
        except json.JSONDecodeError as exc:
            logger.warning("Línea %d no es JSON válido (%s); se omite.", lineno, exc)


def iter_chunks(
    records: Iterable[Any],
    tag: str,
    chunk_size: int,
    clock: Callable[[], float] = time.time,
) -> Iterator[Chunk]:
    """Agrupa registros en chunks; cada registro recibe la hora de lectura como respaldo."""

    if chunk_size < 1:
        raise ValueError("chunk_size debe ser >= 1")
    chunk = Chunk(tag=tag)
    for record in records:
        chunk.append(clock(), record)
        if len(chunk) >= chunk_size:
            yield chunk
            chunk = Chunk(tag=tag)
    if len(chunk):
        yield chunk


def _iter_inputs(paths: List[Path]) -> Iterator[Any]:
    if not paths:
        yield from iter_records(sys.stdin)
        return
    for path in paths:
        with path.open("r", encoding="utf-8") as fh:
            yield from iter_records(fh)


def build_settings(args: argparse.Namespace, environ: Optional[dict] = None) -> SinkSettings:
    settings = load_sink_settings(args.config) if args.config else default_sink_settings()
    if args.env:
        settings = sink_settings_from_env(load_env_file(args.env), base=settings)
    settings = sink_settings_from_env(os.environ if environ is None else environ, base=settings)
    if args.no_db_check:
        settings = replace(settings, check_database=False)
    return settings


def main(argv: list[str] | None = None, *, output: Optional[InfluxdbObjectOutput] = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("inputs", nargs="*", type=Path, help="Archivos JSON lines (por defecto stdin)")
    parser.add_argument("--config", type=Path, default=None, help="Ruta a sink.yaml")
    parser.add_argument("--env", type=Path, default=None, help="Archivo .env con variables INFLUXDB_*")
    parser.add_argument("--tag", default="influxdb_object", help="Tag del chunk (serie si no hay measurement)")
    parser.add_argument("--chunk-size", type=int, default=100, help="Registros por chunk")
    parser.add_argument("--no-db-check", action="store_true", help="Omitir la verificación de la base de datos")
    args = parser.parse_args(argv)
    if args.chunk_size < 1:
        parser.error("--chunk-size debe ser >= 1")

    if not logging.getLogger().hasHandlers():
        logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    sink = output or InfluxdbObjectOutput()
    try:
        sink.configure(build_settings(args))
    except (ValueError, FileNotFoundError, requests.RequestException) as exc:
        logger.error("No se pudo configurar el sink: %s", exc)
        return 2

    ok = True
    try:
        for chunk in iter_chunks(_iter_inputs(args.inputs), args.tag, args.chunk_size):
            try:
                sink.write_objects(chunk.tag, chunk)
            except (InfluxError, requests.RequestException) as exc:
                logger.error("Chunk de %d registros no escrito: %s", len(chunk), exc)
                ok = False
    except KeyboardInterrupt:
        logger.info("Envío interrumpido por el usuario.")
    finally:
        sink.shutdown()
    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(main())
