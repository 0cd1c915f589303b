"""Cliente HTTP mínimo para la API de escritura de InfluxDB 1.x."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, TYPE_CHECKING

import requests

from .base import Point, PointWriter

if TYPE_CHECKING:  # pragma: no cover - hints only
    from influx_object.config.schema import SinkSettings


logger = logging.getLogger(__name__)

AUTH_STATUS_CODES = {401, 403}


class InfluxError(RuntimeError):
    """InfluxDB respondió con un código HTTP distinto de 2xx."""

    def __init__(self, status_code: int, headers: Mapping[str, str], body: str, action: str = "request") -> None:
        self.status_code = status_code
        self.headers = dict(headers)
        self.body = body
        self.action = action
        super().__init__(f"InfluxDB {action} failed: HTTP {status_code} body={body}")


class InfluxAuthError(InfluxError):
    """El usuario configurado no tiene permisos para la operación."""


class InfluxWriteError(InfluxError):
    """La escritura de un lote fue rechazada."""


class ConfigError(ValueError):
    """La configuración apunta a un destino que no existe."""


class InfluxClient(PointWriter):
    """Escribe lotes de puntos con una única petición HTTP por lote."""

    def __init__(
        self,
        settings: "SinkSettings",
        *,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.settings = settings
        scheme = "https" if settings.use_ssl else "http"
        self.base_urls = [f"{scheme}://{host}:{settings.port}" for host in settings.hosts]
        if not self.base_urls:
            raise ConfigError("host debe incluir al menos un servidor InfluxDB")
        self.dbname = settings.dbname
        self.precision = settings.time_precision
        self.timeout = settings.timeout_s
        self.auth = (settings.user, settings.password) if settings.user else None
        self.session = session or requests.Session()
        self.session.verify = settings.verify_ssl

    # Implementación de PointWriter ------------------------------------------
    def write_points(self, points: Sequence[Point]) -> None:
        if not points:
            return
        data = "\n".join(point_to_line(point) for point in points)
        params = {"db": self.dbname, "precision": self.precision}
        response = self._request("POST", "/write", params=params, data=data.encode("utf-8"))
        if response.status_code >= 300:
            raise self._error_for(response, "write", InfluxWriteError)
        logger.debug("InfluxDB accepted %d points into '%s'.", len(points), self.dbname)

    # API auxiliar ------------------------------------------------------------
    def query(self, statement: str) -> Dict[str, Any]:
        response = self._request("GET", "/query", params={"q": statement})
        if response.status_code >= 300:
            raise self._error_for(response, "query", InfluxError)
        return response.json()

    def list_databases(self) -> List[str]:
        payload = self.query("SHOW DATABASES")
        names: List[str] = []
        for result in payload.get("results", []):
            if "error" in result:
                raise InfluxError(200, {}, str(result["error"]), action="query")
            for series in result.get("series", []):
                names.extend(str(row[0]) for row in series.get("values", []) if row)
        return names

    def check_database(self) -> None:
        """Verifica que la base configurada exista antes de recibir datos."""

        try:
            existing = self.list_databases()
        except InfluxError as exc:
            logger.info(
                "Skip database presence check because '%s' user can't list databases (%s). "
                "Check '%s' exists on InfluxDB.",
                self.settings.user,
                exc,
                self.dbname,
            )
            return
        if self.dbname not in existing:
            raise ConfigError(
                f"Database {self.dbname} doesn't exist. Create it first, please. "
                f"Existing databases: {','.join(existing)}"
            )
        logger.info("OK: Database %s exists.", self.dbname)

    def close(self) -> None:
        self.session.close()

    # Lógica interna ----------------------------------------------------------
    def _request(self, method: str, path: str, **kwargs: Any) -> requests.Response:
        last_exc: Optional[requests.ConnectionError] = None
        for base_url in self.base_urls:
            try:
                return self.session.request(
                    method,
                    f"{base_url}{path}",
                    auth=self.auth,
                    timeout=self.timeout,
                    **kwargs,
                )
            except requests.ConnectionError as exc:
                last_exc = exc
                logger.warning("InfluxDB host %s unreachable (%s: %s).", base_url, type(exc).__name__, exc)
        raise last_exc  # type: ignore[misc]

    @classmethod
    def _error_for(cls, response: requests.Response, action: str, default: type) -> InfluxError:
        error_cls = InfluxAuthError if response.status_code in AUTH_STATUS_CODES else default
        return error_cls(
            response.status_code,
            dict(response.headers),
            cls._extract_body(response),
            action=action,
        )

    @staticmethod
    def _extract_body(response: requests.Response, limit: int = 512) -> str:
        try:
            body = response.text or ""
        except Exception as exc:  # pragma: no cover - extremely raro
            return f"<unable to decode body: {exc}>"
        if len(body) <= limit:
            return body
        return f"{body[:limit]}... [truncated {len(body) - limit} chars]"


def _escape(value: object, specials: str) -> str:
    text = str(value).replace("\n", "\\n")
    for char in specials:
        text = text.replace(char, "\\" + char)
    return text


def _escape_measurement(value: object) -> str:
    """Escape a measurement name for the Influx line protocol."""

    return _escape(value, ", ")


def _escape_key(value: object) -> str:
    """Escape tag keys, tag values and field keys."""

    return _escape(value, ",= ")


def _format_field_value(value: object) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return f"{value}i"
    if isinstance(value, float):
        return repr(value)
    escaped = str(value).replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def to_line(meas: str, tags: Mapping[str, object], fields: Mapping[str, object], ts: Optional[int]) -> str:
    measurement = _escape_measurement(meas)
    tags_payload = ",".join(
        f"{_escape_key(k)}={_escape_key(v)}" for k, v in sorted(tags.items())
    )
    fields_payload = ",".join(
        f"{_escape_key(k)}={_format_field_value(v)}" for k, v in fields.items()
    )

    prefix = f"{measurement},{tags_payload}" if tags_payload else measurement
    if ts is None:
        return f"{prefix} {fields_payload}"
    return f"{prefix} {fields_payload} {ts}"


def point_to_line(point: Point) -> str:
    """Convierte un punto en el formato de línea que espera InfluxDB."""

    return to_line(point.series, point.tags, point.values, point.timestamp)
