from __future__ import annotations
from typing import Dict


class Metrics:
    def __init__(self):
        self.counters: Dict[str, float] = {}
        self.latency: Dict[str, list] = {}

    def inc(self, name: str, amt: float = 1.0, labels: Dict[str, str] | None = None):
        key = self._key(name, labels)
        self.counters[key] = self.counters.get(key, 0.0) + amt

    def observe(self, name: str, value_ms: float, labels: Dict[str, str] | None = None):
        key = self._key(name, labels)
        self.latency.setdefault(key, []).append(value_ms)
        if len(self.latency[key]) > 1000:
            self.latency[key] = self.latency[key][-1000:]

    def count(self, name: str, labels: Dict[str, str] | None = None) -> float:
        return self.counters.get(self._key(name, labels), 0.0)

    def total(self, name: str) -> float:
        """Sum of a counter across all label sets."""
        return sum(v for k, v in self.counters.items() if k.split("{")[0] == name)

    def clear(self) -> None:
        self.counters.clear()
        self.latency.clear()

    def _key(self, name: str, labels: Dict[str, str] | None):
        if not labels:
            return name
        parts = [f'{k}="{v}"' for k, v in sorted(labels.items())]
        return f"{name}{{{','.join(parts)}}}"
