"""Metrics collection for API traffic."""

from abc import ABC, abstractmethod
from collections import Counter, defaultdict
from typing import Any


class MetricsBackend(ABC):
    """Abstract base class for metrics backends."""

    @abstractmethod
    def increment(self, name: str, value: int = 1, tags: dict[str, str] | None = None) -> None:
        pass

    @abstractmethod
    def gauge(self, name: str, value: float, tags: dict[str, str] | None = None) -> None:
        pass

    @abstractmethod
    def timing(self, name: str, value: float, tags: dict[str, str] | None = None) -> None:
        pass


class InMemoryBackend(MetricsBackend):
    """In-memory backend aggregating counters, gauges and timings."""

    def __init__(self) -> None:
        self.counters: Counter[str] = Counter()
        self.gauges: dict[str, float] = {}
        self.timings: dict[str, list[float]] = defaultdict(list)

    def increment(self, name: str, value: int = 1, tags: dict[str, str] | None = None) -> None:
        self.counters[self._format_key(name, tags)] += value

    def gauge(self, name: str, value: float, tags: dict[str, str] | None = None) -> None:
        # Last value wins
        self.gauges[self._format_key(name, tags)] = value

    def timing(self, name: str, value: float, tags: dict[str, str] | None = None) -> None:
        self.timings[self._format_key(name, tags)].append(value)

    def _format_key(self, name: str, tags: dict[str, str] | None) -> str:
        if not tags:
            return name
        tag_str = ",".join(f"{k}={v}" for k, v in sorted(tags.items()))
        return f"{name}[{tag_str}]"

    def get_summary(self) -> dict[str, Any]:
        """Return a summary of collected metrics."""
        summary: dict[str, Any] = {
            "counters": dict(self.counters),
            "gauges": dict(self.gauges),
            "timings": {},
        }
        for name, values in self.timings.items():
            if values:
                summary["timings"][name] = {
                    "count": len(values),
                    "avg": sum(values) / len(values),
                    "min": min(values),
                    "max": max(values),
                }
        return summary


class MetricsCollector:
    """Central collector for client metrics."""

    def __init__(self, backend: MetricsBackend | None = None) -> None:
        self.backend = backend or InMemoryBackend()

    def count_command(self, command: str, status: str) -> None:
        """Record the outcome ("ok", "api_error", "transport_error") of one API command."""
        self.backend.increment(
            "cpmgmt_api_requests_total",
            tags={"command": command, "status": status},
        )

    def record_latency(self, command: str, duration_ms: float) -> None:
        self.backend.timing(
            "cpmgmt_api_latency_ms",
            duration_ms,
            tags={"command": command},
        )

    def update_in_flight(self, current: int) -> None:
        """Update the gauge of requests currently waiting on the server."""
        self.backend.gauge("cpmgmt_api_in_flight", float(current))

    def count_batch(self, command: str, size: int) -> None:
        """Record one identity batch sent to a gateway."""
        self.backend.increment("cpmgmt_ia_batches_total", tags={"command": command})
        self.backend.increment(
            "cpmgmt_ia_batch_requests_total", value=size, tags={"command": command}
        )

    def get_summary(self) -> dict[str, Any]:
        """Get summary from backend if supported."""
        if hasattr(self.backend, "get_summary"):
            return self.backend.get_summary()  # type: ignore
        return {}


_GLOBAL_COLLECTOR: MetricsCollector | None = None


def get_global_collector() -> MetricsCollector:
    """Get or create the global metrics collector."""
    global _GLOBAL_COLLECTOR
    if _GLOBAL_COLLECTOR is None:
        _GLOBAL_COLLECTOR = MetricsCollector()
    return _GLOBAL_COLLECTOR


def reset_global_collector() -> None:
    """Drop the global collector (tests start from empty counters)."""
    global _GLOBAL_COLLECTOR
    _GLOBAL_COLLECTOR = None
