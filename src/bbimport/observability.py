"""Logging setup plus structured events and StatsD counters for the importer."""

from __future__ import annotations

import json
import logging
import socket
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Mapping

from bbimport.settings import Settings, get_settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

_LOGGER = logging.getLogger("bbimport.observability")
_METRICS_BACKEND_LOCK = threading.Lock()
_SHARED_METRICS: "_StatsdBackend | None" = None


def configure_logging(settings: Settings | None = None) -> None:
    """Apply the process-wide logging configuration."""

    resolved = settings or get_settings()
    level = getattr(logging, resolved.log_level.upper(), logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT)


class Observability:
    """Emit structured logs and StatsD-compatible counters."""

    def __init__(
        self,
        *,
        settings: Settings,
        component: str | None = None,
        metrics_backend: "_StatsdBackend | None" = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.settings = settings
        self.component = component or "core"
        self._logger = logger or _LOGGER
        self._structured_logging = bool(settings.observability.structured_logging)
        self._metrics = metrics_backend

    def emit_event(self, event: str, **fields: Any) -> None:
        """Emit an event log line, as JSON when structured logging is enabled."""

        payload = {
            "event": event,
            "component": self.component,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            **fields,
        }
        if self._structured_logging:
            self._logger.info(json.dumps(payload, default=str))
        else:
            self._logger.info("%s | %s", event, payload)

    def increment(self, metric: str, *, value: float = 1.0, tags: Mapping[str, str] | None = None) -> None:
        """Increment a counter-style metric."""

        if not self._metrics:
            return
        self._metrics.increment(metric, value=value, tags=_normalize_tags(tags))


def get_observability(*, component: str | None = None, settings: Settings | None = None) -> Observability:
    """Return an :class:`Observability` instance for the requested component."""

    resolved = settings or get_settings()
    backend = _build_shared_metrics_backend(resolved)
    return Observability(settings=resolved, component=component, metrics_backend=backend)


def reset_observability_cache() -> None:
    """Reset the cached metrics backend (used in tests)."""

    global _SHARED_METRICS
    with _METRICS_BACKEND_LOCK:
        _SHARED_METRICS = None


@dataclass(slots=True)
class _StatsdBackend:
    """Minimal StatsD client using UDP sockets."""

    host: str
    port: int
    prefix: str
    _socket: socket.socket | None = None

    def __post_init__(self) -> None:
        self._socket = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)

    def increment(self, metric: str, *, value: float, tags: Mapping[str, str] | None) -> None:
        scoped = f"{self.prefix}.{metric}" if self.prefix else metric
        payload = f"{scoped}:{_format_number(value)}|c"
        if tags:
            tag_block = ",".join(f"{key}:{val}" for key, val in sorted(tags.items()))
            payload = f"{payload}|#{tag_block}"
        try:
            self._socket.sendto(payload.encode("utf-8"), (self.host, self.port))
        except OSError:  # pragma: no cover - metrics are best effort
            _LOGGER.debug("StatsD send failed for metric %s", metric, exc_info=True)


def _build_shared_metrics_backend(settings: Settings) -> _StatsdBackend | None:
    global _SHARED_METRICS
    with _METRICS_BACKEND_LOCK:
        if _SHARED_METRICS is not None:
            return _SHARED_METRICS
        statsd_host = settings.observability.statsd_host
        if not statsd_host:
            return None
        _SHARED_METRICS = _StatsdBackend(
            host=statsd_host,
            port=settings.observability.statsd_port,
            prefix=settings.observability.statsd_prefix,
        )
        return _SHARED_METRICS


def _normalize_tags(tags: Mapping[str, str] | None) -> Mapping[str, str] | None:
    if not tags:
        return None
    normalized = {str(key): str(value) for key, value in tags.items() if value is not None}
    return normalized or None


def _format_number(value: float) -> str:
    formatted = f"{value:.6f}".rstrip("0").rstrip(".")
    return formatted or "0"


__all__ = [
    "LOG_FORMAT",
    "Observability",
    "configure_logging",
    "get_observability",
    "reset_observability_cache",
]
