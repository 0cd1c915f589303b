"""Separación de los campos de un registro en valores numéricos y tags."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Collection, Dict, Mapping


class FieldKind(enum.Enum):
    NUMERIC = "numeric"
    STRING = "string"
    BOOLEAN = "boolean"
    NULL = "null"
    OTHER = "other"


def kind_of(value: Any) -> FieldKind:
    # bool es subclase de int: se evalúa antes que los números.
    if isinstance(value, bool):
        return FieldKind.BOOLEAN
    if isinstance(value, (int, float)):
        return FieldKind.NUMERIC
    if isinstance(value, str):
        return FieldKind.STRING
    if value is None:
        return FieldKind.NULL
    return FieldKind.OTHER


def tag_text(value: Any) -> str:
    """Representación textual de un valor usado como tag."""

    kind = kind_of(value)
    if kind is FieldKind.NULL:
        return ""
    if kind is FieldKind.BOOLEAN:
        return "true" if value else "false"
    return str(value)


@dataclass(frozen=True)
class Classification:
    values: Dict[str, Any] = field(default_factory=dict)
    tags: Dict[str, str] = field(default_factory=dict)
    time_value: Any = None


def classify(record: Mapping[str, Any], tag_keys: Collection[str], time_key: str = "time") -> Classification:
    """Reparte los campos de ``record`` sin modificarlo.

    El campo ``time_key`` se devuelve aparte y nunca aparece en ``values`` ni
    en ``tags``. Un mismo campo puede ser valor y tag a la vez; los campos que
    no son numéricos ni tags se descartan.
    """

    values: Dict[str, Any] = {}
    tags: Dict[str, str] = {}
    for key, value in record.items():
        if key == time_key:
            continue
        if kind_of(value) is FieldKind.NUMERIC:
            values[key] = value
        if key in tag_keys:
            text = tag_text(value)
            if text.strip():
                tags[key] = text
    return Classification(values=values, tags=tags, time_value=record.get(time_key))
