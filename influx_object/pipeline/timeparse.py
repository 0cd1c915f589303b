"""Resolución de la marca temporal de cada registro.

Cada estrategia de parseo devuelve un :class:`ParseResult` en lugar de lanzar
excepciones; :class:`TimeResolver` prueba las estrategias en orden y, si todas
fallan, notifica el error y devuelve la marca temporal de respaldo del
framework anfitrión.

Con ``time_key_format`` configurado se intenta primero un parser compilado a
partir del formato (solo admite ``%Y %m %d %H %M %S %f %z %%``) y después
``datetime.strptime`` con el mismo formato. Sin formato se intenta ISO-8601 y
luego el parser libre de pandas.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, List, Optional, Pattern, Protocol, Sequence, Union

import pandas as pd

from influx_object.config.schema import TimeSpec

logger = logging.getLogger(__name__)

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
EventTime = Union[int, float, datetime]
ErrorHandler = Callable[[str, EventTime, Optional[str], Any, Exception], None]

# Mismas expresiones que usa _strptime para cada directiva.
_DIRECTIVES = {
    "Y": r"(?P<Y>\d\d\d\d)",
    "m": r"(?P<m>1[0-2]|0[1-9]|[1-9])",
    "d": r"(?P<d>3[01]|[12]\d|0[1-9]|[1-9]| [1-9])",
    "H": r"(?P<H>2[0-3]|[0-1]\d|\d)",
    "M": r"(?P<M>[0-5]\d|\d)",
    "S": r"(?P<S>6[0-1]|[0-5]\d|\d)",
    "f": r"(?P<f>[0-9]{1,6})",
    "z": r"(?P<z>[+-]\d\d:?[0-5]\d(:?[0-5]\d(\.\d{1,6})?)?|(?-i:Z))",
}
# El separador tras las horas debe repetirse antes de los segundos.
_OFFSET_PATTERN = re.compile(r"([+-])(\d\d)(:?)(\d\d)(?:\3(\d\d)(?:\.(\d{1,6}))?)?")
_RELATIVE_WORDS = frozenset({"now", "today", "tomorrow", "yesterday"})
_PRECISION_MICROS = {"h": 3_600_000_000, "m": 60_000_000, "s": 1_000_000, "ms": 1_000, "u": 1}


class UnsupportedFormat(ValueError):
    """El parser compilado no reconoce alguna directiva del formato."""


def _as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


@dataclass(frozen=True)
class ParseResult:
    value: Optional[datetime] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.value is not None

    @classmethod
    def success(cls, value: datetime) -> "ParseResult":
        return cls(value=_as_utc(value))

    @classmethod
    def failure(cls, error: Exception) -> "ParseResult":
        return cls(error=error)


class TimeParser(Protocol):
    name: str

    def parse(self, text: str) -> ParseResult:
        """Intenta convertir ``text`` en un instante."""


def compile_format(time_format: str) -> Pattern[str]:
    """Traduce un formato strftime a una expresión regular equivalente."""

    parts: List[str] = []
    seen = set()
    i = 0
    while i < len(time_format):
        char = time_format[i]
        if char == "%":
            if i + 1 >= len(time_format):
                raise UnsupportedFormat("el formato termina con '%'")
            directive = time_format[i + 1]
            if directive == "%":
                parts.append("%")
            elif directive in _DIRECTIVES:
                if directive in seen:
                    raise UnsupportedFormat(f"directiva %{directive} repetida")
                seen.add(directive)
                parts.append(_DIRECTIVES[directive])
            else:
                raise UnsupportedFormat(f"directiva %{directive} no soportada")
            i += 2
        elif char.isspace():
            while i < len(time_format) and time_format[i].isspace():
                i += 1
            parts.append(r"\s+")
        else:
            parts.append(re.escape(char))
            i += 1
    return re.compile("".join(parts), re.IGNORECASE)


def _parse_offset(text: str) -> timezone:
    if text.upper() == "Z":
        return timezone.utc
    match = _OFFSET_PATTERN.fullmatch(text)
    if match is None:
        raise ValueError(f"offset inválido: {text!r}")
    sign, hours, _, minutes, seconds, fraction = match.groups()
    delta = timedelta(
        hours=int(hours),
        minutes=int(minutes),
        seconds=int(seconds or 0),
        microseconds=int((fraction or "0").ljust(6, "0")),
    )
    return timezone(-delta if sign == "-" else delta)


class CompiledFormatParser:
    """Parser rápido para formatos compuestos solo por directivas numéricas."""

    name = "compiled"

    def __init__(self, time_format: str) -> None:
        self.time_format = time_format
        self._pattern = compile_format(time_format)

    def parse(self, text: str) -> ParseResult:
        match = self._pattern.fullmatch(text)
        if match is None:
            return ParseResult.failure(
                ValueError(f"time data {text!r} does not match format {self.time_format!r}")
            )
        fields = match.groupdict()
        try:
            moment = datetime(
                int(fields.get("Y") or 1900),
                int(fields.get("m") or 1),
                int(fields.get("d") or 1),
                int(fields.get("H") or 0),
                int(fields.get("M") or 0),
                int(fields.get("S") or 0),
                int((fields.get("f") or "0").ljust(6, "0")),
            )
            if fields.get("z"):
                moment = moment.replace(tzinfo=_parse_offset(fields["z"]))
        except ValueError as exc:
            return ParseResult.failure(exc)
        return ParseResult.success(moment)


class StrptimeParser:
    name = "strptime"

    def __init__(self, time_format: str) -> None:
        self.time_format = time_format

    def parse(self, text: str) -> ParseResult:
        try:
            return ParseResult.success(datetime.strptime(text, self.time_format))
        except ValueError as exc:
            return ParseResult.failure(exc)


class IsoFormatParser:
    name = "isoformat"

    def parse(self, text: str) -> ParseResult:
        try:
            return ParseResult.success(datetime.fromisoformat(text.replace("Z", "+00:00")))
        except ValueError as exc:
            return ParseResult.failure(exc)


class FreeformParser:
    """Acepta representaciones legibles ("May 1 2021 12:00", RFC 2822...)."""

    name = "freeform"

    def parse(self, text: str) -> ParseResult:
        if text.strip().lower() in _RELATIVE_WORDS:
            return ParseResult.failure(ValueError(f"relative date {text!r} is not accepted"))
        try:
            stamp = pd.to_datetime(text, utc=True)
        except (ValueError, TypeError, OverflowError) as exc:
            return ParseResult.failure(exc)
        if pd.isna(stamp):
            return ParseResult.failure(ValueError(f"unable to parse {text!r}"))
        return ParseResult.success(stamp.to_pydatetime())


def build_parsers(time_format: Optional[str]) -> List[TimeParser]:
    if not time_format:
        return [IsoFormatParser(), FreeformParser()]
    parsers: List[TimeParser] = []
    try:
        parsers.append(CompiledFormatParser(time_format))
    except UnsupportedFormat as exc:
        logger.debug("Formato %r sin parser compilado (%s); se usa strptime.", time_format, exc)
    parsers.append(StrptimeParser(time_format))
    return parsers


def from_event_time(value: EventTime) -> datetime:
    """Convierte la marca temporal del framework (segundos epoch) en datetime."""

    if isinstance(value, datetime):
        return _as_utc(value)
    return datetime.fromtimestamp(value, tz=timezone.utc)


def to_epoch(moment: datetime, precision: str = "s") -> int:
    """Entero epoch en la precisión indicada (n, u, ms, s, m, h)."""

    delta = _as_utc(moment) - EPOCH
    micros = (delta.days * 86_400 + delta.seconds) * 1_000_000 + delta.microseconds
    if precision in {"n", "ns"}:
        return micros * 1_000
    try:
        return micros // _PRECISION_MICROS[precision]
    except KeyError:
        raise ValueError(f"precisión desconocida: {precision!r}") from None


def _log_parse_error(tag: str, event_time: EventTime, time_format: Optional[str], value: Any, error: Exception) -> None:
    logger.error(
        "Failed to parse time field: tag=%s time=%s format=%s value=%r (%s)",
        tag,
        event_time,
        time_format,
        value,
        error,
    )


class TimeResolver:
    """Obtiene el instante de un registro con degradación a la hora de respaldo."""

    def __init__(
        self,
        time_spec: TimeSpec,
        *,
        on_error: Optional[ErrorHandler] = None,
        parsers: Optional[Sequence[TimeParser]] = None,
    ) -> None:
        self.time_spec = time_spec
        self.parsers: List[TimeParser] = list(parsers) if parsers is not None else build_parsers(time_spec.time_format)
        self._on_error = on_error or _log_parse_error

    def parse(self, value: Any) -> ParseResult:
        if not isinstance(value, str):
            return ParseResult.failure(
                TypeError(f"time value must be a string, got {type(value).__name__}")
            )
        result = ParseResult.failure(ValueError("no time parser configured"))
        for parser in self.parsers:
            result = parser.parse(value)
            if result.ok:
                return result
        return result

    def resolve(self, value: Any, fallback_time: EventTime, tag: str) -> datetime:
        fallback = from_event_time(fallback_time)
        result = self.parse(value)
        if result.ok:
            return result.value  # type: ignore[return-value]
        self._on_error(tag, fallback_time, self.time_spec.time_format, value, result.error)
        return fallback
