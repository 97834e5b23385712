"""Prometheus-style metrics collector. Thread-safe, in-memory. No real Prometheus dependency."""

import threading
from typing import Any


def _label_key(name: str, category: str | None) -> str:
    return name if category is None else f"{name}:category={category}"


class MetricsCollector:
    """
    In-memory registry of counters.
    Counts side-effect failures (audit, oracle, notification) and workflow progress.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._counters: dict[str, float] = {}

    def increment(
        self,
        name: str,
        value: float = 1.0,
        *,
        category: str | None = None,
    ) -> None:
        """Increment a counter. With a category, the labelled series and the bare total both move."""
        with self._lock:
            self._counters[name] = self._counters.get(name, 0) + value
            if category is not None:
                key = _label_key(name, category)
                self._counters[key] = self._counters.get(key, 0) + value

    def counter(self, name: str, *, category: str | None = None) -> float:
        with self._lock:
            return self._counters.get(_label_key(name, category), 0)

    def export_metrics(self) -> dict[str, Any]:
        with self._lock:
            return {"counters": dict(self._counters)}

    def reset(self) -> None:
        """Reset all metrics (for tests)."""
        with self._lock:
            self._counters.clear()
