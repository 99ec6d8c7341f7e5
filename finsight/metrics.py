"""Metrics sink injected into the pipeline instead of a global registry."""

from __future__ import annotations

from collections import defaultdict
from typing import Dict, List, Protocol, Tuple

REQUESTS_TOTAL = "ai_service_requests_total"
REQUEST_DURATION = "ai_service_duration_ms"
ERRORS_TOTAL = "errors_total"
CACHE_HITS = "cache_hits_total"
CACHE_MISSES = "cache_misses_total"
VISUALIZATIONS_TOTAL = "visualizations_generated_total"

LabelKey = Tuple[Tuple[str, str], ...]


def _label_key(labels: Dict[str, str]) -> LabelKey:
    return tuple(sorted((k, str(v)) for k, v in labels.items()))


class MetricsSink(Protocol):
    def increment(self, name: str, labels: Dict[str, str], amount: float = 1.0) -> None:
        ...

    def observe(self, name: str, labels: Dict[str, str], value: float) -> None:
        ...


class NullMetrics:
    """Descarta todas as amostras."""

    def increment(self, name: str, labels: Dict[str, str], amount: float = 1.0) -> None:
        return None

    def observe(self, name: str, labels: Dict[str, str], value: float) -> None:
        return None


class InMemoryMetrics:
    """Counters and observation lists kept in process; each call is a single dict update."""

    def __init__(self) -> None:
        self.counters: Dict[str, Dict[LabelKey, float]] = defaultdict(lambda: defaultdict(float))
        self.observations: Dict[str, Dict[LabelKey, List[float]]] = defaultdict(lambda: defaultdict(list))

    def increment(self, name: str, labels: Dict[str, str], amount: float = 1.0) -> None:
        self.counters[name][_label_key(labels)] += amount

    def observe(self, name: str, labels: Dict[str, str], value: float) -> None:
        self.observations[name][_label_key(labels)].append(value)

    def count(self, name: str, **labels: str) -> float:
        """Sum of a counter over every series whose labels include ``labels``."""

        wanted = set(_label_key(labels))
        return sum(v for key, v in self.counters.get(name, {}).items() if wanted.issubset(key))

    def samples(self, name: str, **labels: str) -> List[float]:
        wanted = set(_label_key(labels))
        out: List[float] = []
        for key, values in self.observations.get(name, {}).items():
            if wanted.issubset(key):
                out.extend(values)
        return out
