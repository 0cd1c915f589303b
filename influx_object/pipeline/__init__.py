"""Transformación de registros en puntos y escritura por lotes."""

from .classify import Classification, FieldKind, classify, kind_of
from .timeparse import ParseResult, TimeResolver, build_parsers, from_event_time, to_epoch
from .writer import ChunkWriter

__all__ = [
    "ChunkWriter",
    "Classification",
    "FieldKind",
    "ParseResult",
    "TimeResolver",
    "build_parsers",
    "classify",
    "from_event_time",
    "kind_of",
    "to_epoch",
]
