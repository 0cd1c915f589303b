"""Typed configuration models implemented with dataclasses."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence

# Precisiones aceptadas por la API de escritura de InfluxDB 1.x.
TIME_PRECISIONS = ("n", "u", "ms", "s", "m", "h")
_PRECISION_ALIASES = {"ns": "n", "us": "u", "µs": "u"}


def _as_str(value: Any, field_name: str, *, optional: bool = False) -> Optional[str]:
    if value is None:
        if optional:
            return None
        raise ValueError(f"'{field_name}' es obligatorio")
    text = str(value).strip()
    if not text and not optional:
        raise ValueError(f"'{field_name}' no puede estar vacío")
    return text or None


def _as_int(value: Any, field_name: str) -> int:
    if value is None:
        raise ValueError(f"'{field_name}' es obligatorio")
    try:
        result = int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"'{field_name}' debe ser un entero válido") from exc
    return result


def _as_float(value: Any, field_name: str) -> float:
    if value is None:
        raise ValueError(f"'{field_name}' es obligatorio")
    try:
        result = float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"'{field_name}' debe ser numérico") from exc
    return result


def _as_bool(value: Any, default: bool = True) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in {"1", "true", "yes", "si", "sí"}:
        return True
    if text in {"0", "false", "no"}:
        return False
    return default


def _as_str_list(value: Any, field_name: str) -> List[str]:
    if value in (None, ""):
        return []
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    if isinstance(value, Sequence):
        return [str(item).strip() for item in value if str(item).strip()]
    raise ValueError(f"{field_name} debe ser una lista o cadena")


def _as_precision(value: Any) -> str:
    text = (_as_str(value, "time_precision", optional=True) or "s").lower()
    text = _PRECISION_ALIASES.get(text, text)
    if text not in TIME_PRECISIONS:
        raise ValueError(
            "time_precision debe ser uno de: " + ", ".join(TIME_PRECISIONS)
        )
    return text


@dataclass(frozen=True)
class TimeSpec:
    """Cómo obtener la marca temporal de cada registro."""

    time_key: str = "time"
    time_format: Optional[str] = None


@dataclass
class SinkSettings:
    host: str = "localhost"
    port: int = 8086
    dbname: str = "fluentd"
    measurement: Optional[str] = None
    user: str = "root"
    password: str = "root"
    time_key: str = "time"
    time_key_format: Optional[str] = None
    time_precision: str = "s"
    use_ssl: bool = False
    verify_ssl: bool = True
    tag_keys: List[str] = field(default_factory=list)
    timeout_s: float = 5.0
    time_parse_error_tag: Optional[str] = None
    check_database: bool = True
    metrics_log_interval_s: float = 30.0

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> "SinkSettings":
        if not data:
            return cls()
        host = _as_str(data.get("host", "localhost"), "host") or "localhost"
        hosts = [item.strip() for item in host.split(",") if item.strip()]
        if not hosts:
            raise ValueError("host debe contener al menos un servidor")
        port = _as_int(data.get("port", 8086), "port")
        if not 0 < port < 65536:
            raise ValueError("port debe estar entre 1 y 65535")
        dbname = _as_str(data.get("dbname", "fluentd"), "dbname") or "fluentd"
        measurement = _as_str(data.get("measurement"), "measurement", optional=True)
        user = _as_str(data.get("user", "root"), "user", optional=True) or ""
        password_raw = data.get("password", "root")
        password = "" if password_raw is None else str(password_raw)
        time_key = _as_str(data.get("time_key", "time"), "time_key") or "time"
        time_key_format = _as_str(data.get("time_key_format"), "time_key_format", optional=True)
        time_precision = _as_precision(data.get("time_precision", "s"))
        use_ssl = _as_bool(data.get("use_ssl"), False)
        verify_ssl = _as_bool(data.get("verify_ssl"), True)
        tag_keys = _as_str_list(data.get("tag_keys"), "tag_keys")
        timeout_s = _as_float(data.get("timeout_s", 5.0), "timeout_s")
        if timeout_s <= 0:
            raise ValueError("timeout_s debe ser > 0")
        error_tag = _as_str(data.get("time_parse_error_tag"), "time_parse_error_tag", optional=True)
        check_database = _as_bool(data.get("check_database"), True)
        interval = _as_float(data.get("metrics_log_interval_s", 30.0), "metrics_log_interval_s")
        if interval < 0:
            raise ValueError("metrics_log_interval_s debe ser >= 0")
        return cls(
            host=",".join(hosts),
            port=port,
            dbname=dbname,
            measurement=measurement,
            user=user,
            password=password,
            time_key=time_key,
            time_key_format=time_key_format,
            time_precision=time_precision,
            use_ssl=use_ssl,
            verify_ssl=verify_ssl,
            tag_keys=tag_keys,
            timeout_s=timeout_s,
            time_parse_error_tag=error_tag,
            check_database=check_database,
            metrics_log_interval_s=interval,
        )

    @property
    def hosts(self) -> List[str]:
        return [item.strip() for item in self.host.split(",") if item.strip()]

    @property
    def time_spec(self) -> TimeSpec:
        return TimeSpec(time_key=self.time_key, time_format=self.time_key_format)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "host": self.host,
            "port": self.port,
            "dbname": self.dbname,
            "measurement": self.measurement,
            "user": self.user,
            "password": self.password,
            "time_key": self.time_key,
            "time_key_format": self.time_key_format,
            "time_precision": self.time_precision,
            "use_ssl": self.use_ssl,
            "verify_ssl": self.verify_ssl,
            "tag_keys": list(self.tag_keys),
            "timeout_s": self.timeout_s,
            "time_parse_error_tag": self.time_parse_error_tag,
            "check_database": self.check_database,
            "metrics_log_interval_s": self.metrics_log_interval_s,
        }
