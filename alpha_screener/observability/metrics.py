from __future__ import annotations

import logging
import secrets
from typing import Any

from alpha_screener.config import settings

logger = logging.getLogger("alpha_screener.metrics")


class MetricsReporter:
    """Lightweight metrics emitter that writes structured log events."""

    def __init__(self) -> None:
        self._disabled = settings.metrics_disable
        self._namespace = settings.metrics_namespace or "alpha_screener"
        self._sample_rate = max(0.0, min(settings.metrics_sample_rate, 1.0))

    def timing(self, metric: str, value_ms: float, *, tags: dict[str, Any] | None = None) -> None:
        self._emit("timing", metric, value_ms, tags=tags)

    def gauge(self, metric: str, value: float, *, tags: dict[str, Any] | None = None) -> None:
        self._emit("gauge", metric, value, tags=tags)

    def increment(
        self, metric: str, value: float = 1.0, *, tags: dict[str, Any] | None = None
    ) -> None:
        self._emit("counter", metric, value, tags=tags)

    def _emit(
        self, metric_type: str, metric: str, value: float, *, tags: dict[str, Any] | None
    ) -> None:
        if self._disabled or value is None:
            return
        sampled = metric_type != "gauge" and self._sample_rate < 1.0
        if sampled:
            roll = secrets.randbelow(1_000_000) / 1_000_000
            if roll > self._sample_rate:
                return
        payload = {
            "metric": self._normalize_metric(metric),
            "value": round(float(value), 4),
            "type": metric_type,
            "tags": tags or {},
        }
        if sampled:
            payload["sample_rate"] = round(self._sample_rate, 4)
        logger.info("alpha_screener.metric", extra={"metrics": payload})

    def _normalize_metric(self, metric: str) -> str:
        trimmed = (metric or "").strip()
        if trimmed.startswith(f"{self._namespace}."):
            return trimmed
        return f"{self._namespace}.{trimmed}" if trimmed else self._namespace


metrics = MetricsReporter()
