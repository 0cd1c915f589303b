"""Interfaces y tipos comunes entre el pipeline y el almacenamiento."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterator, List, Mapping, Protocol, Sequence, Tuple, Union, runtime_checkable

Number = Union[int, float]
EventTime = Union[int, float]
Entry = Tuple[EventTime, Any]


@dataclass(frozen=True)
class Point:
    """Un dato de la serie temporal listo para enviarse al almacenamiento."""

    timestamp: int
    series: str
    values: Mapping[str, Number]
    tags: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.values:
            raise ValueError("un punto necesita al menos un valor numérico")


@dataclass
class Chunk:
    """Conjunto de registros entregados juntos por el framework anfitrión."""

    tag: str
    entries: List[Entry] = field(default_factory=list)

    def append(self, event_time: EventTime, record: Any) -> None:
        self.entries.append((event_time, record))

    def __iter__(self) -> Iterator[Entry]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)


@runtime_checkable
class PointWriter(Protocol):
    """Capacidad mínima que el pipeline necesita del almacenamiento."""

    def write_points(self, points: Sequence[Point]) -> None:
        """Escribe el lote completo o lanza una excepción."""
