"""
In-process counters for expression, data requirement, action and endpoint
outcomes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict


@dataclass
class ActionMetricsSnapshot:
    count: int
    total_duration_seconds: float


class MetricsRegistry:
    def __init__(self) -> None:
        self._expression_failures: int = 0
        self._cache_hits: Dict[str, int] = {}
        self._cache_misses: Dict[str, int] = {}
        self._fetch_failures: Dict[str, int] = {}
        self._actions: Dict[tuple[str, str], ActionMetricsSnapshot] = {}
        self._unsupported_nodes: Dict[str, int] = {}
        self._circuit_events: Dict[str, int] = {}

    def record_expression_failure(self) -> None:
        self._expression_failures += 1

    def record_requirement_cache_hit(self, source_type: str) -> None:
        key = source_type or "unknown"
        self._cache_hits[key] = self._cache_hits.get(key, 0) + 1

    def record_requirement_cache_miss(self, source_type: str) -> None:
        key = source_type or "unknown"
        self._cache_misses[key] = self._cache_misses.get(key, 0) + 1

    def record_fetch_failure(self, source_type: str) -> None:
        key = source_type or "unknown"
        self._fetch_failures[key] = self._fetch_failures.get(key, 0) + 1

    def record_action(self, action_type: str, status: str, duration_seconds: float = 0.0) -> None:
        key = (action_type or "unknown", status or "unknown")
        if key not in self._actions:
            self._actions[key] = ActionMetricsSnapshot(count=0, total_duration_seconds=0.0)
        snap = self._actions[key]
        snap.count += 1
        snap.total_duration_seconds += max(duration_seconds, 0.0)

    def record_unsupported_node(self, type_name: str) -> None:
        key = type_name or "unknown"
        self._unsupported_nodes[key] = self._unsupported_nodes.get(key, 0) + 1

    def record_circuit_event(self, endpoint: str, event: str) -> None:
        key = f"{endpoint or 'unknown'}:{event}"
        self._circuit_events[key] = self._circuit_events.get(key, 0) + 1

    def get_expression_failures(self) -> int:
        return self._expression_failures

    def get_requirement_cache_hits(self) -> Dict[str, int]:
        return dict(self._cache_hits)

    def get_requirement_cache_misses(self) -> Dict[str, int]:
        return dict(self._cache_misses)

    def get_fetch_failures(self) -> Dict[str, int]:
        return dict(self._fetch_failures)

    def get_action_counts(self) -> Dict[tuple[str, str], int]:
        return {key: snap.count for key, snap in self._actions.items()}

    def get_action_metrics(self) -> Dict[tuple[str, str], ActionMetricsSnapshot]:
        return dict(self._actions)

    def get_unsupported_nodes(self) -> Dict[str, int]:
        return dict(self._unsupported_nodes)

    def get_circuit_events(self) -> Dict[str, int]:
        return dict(self._circuit_events)

    def snapshot(self) -> Dict[str, object]:
        return {
            "expression_failures": self._expression_failures,
            "requirement_cache_hits": dict(self._cache_hits),
            "requirement_cache_misses": dict(self._cache_misses),
            "fetch_failures": dict(self._fetch_failures),
            "actions": {f"{t}:{s}": snap.count for (t, s), snap in self._actions.items()},
            "unsupported_nodes": dict(self._unsupported_nodes),
            "circuit_events": dict(self._circuit_events),
        }


default_metrics = MetricsRegistry()
