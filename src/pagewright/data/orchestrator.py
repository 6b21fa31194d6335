"""
Per-node data requirements: cache lookups, shared in-flight fetches and
per-node loading state.

Resolution passes are synchronous, so `ensure()` only records what needs
fetching. `flush()` runs every queued fetch concurrently and settles the
per-node states when they finish.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

from ..observability.metrics import MetricsRegistry, default_metrics
from .cache import CacheEntry, RequirementCache, requirement_cache_key, requirement_state_key
from .sources import SourceFetcher

log = logging.getLogger("pagewright.data")


@dataclass
class RequirementState:
    data: Any = None
    is_loading: bool = False
    error: Optional[str] = None
    timestamp: Optional[float] = None
    cache_key: Optional[str] = None


@dataclass
class _PendingFetch:
    cache_key: str
    source: Mapping[str, Any]
    waiters: Dict[str, Tuple[str, Mapping[str, Any]]] = field(default_factory=dict)
    task: Optional[asyncio.Task] = None


class DataRequirementOrchestrator:
    def __init__(
        self,
        fetcher: SourceFetcher,
        cache: RequirementCache | None = None,
        metrics: MetricsRegistry | None = None,
    ) -> None:
        self.fetcher = fetcher
        self.cache = cache if cache is not None else RequirementCache()
        self.metrics = metrics or default_metrics
        self.states: Dict[str, RequirementState] = {}
        self._node_keys: Dict[str, List[str]] = {}
        self._pending: Dict[str, _PendingFetch] = {}
        self._released: set[str] = set()

    def ensure(
        self, node_id: str, requirements: List[Mapping[str, Any]]
    ) -> List[Tuple[Mapping[str, Any], RequirementState]]:
        """Settle each requirement from cache or queue a fetch for it."""

        self._released.discard(node_id)
        settled: List[Tuple[Mapping[str, Any], RequirementState]] = []
        keys: List[str] = []
        for requirement in requirements:
            source = requirement.get("source") or {}
            state_key = requirement_state_key(node_id, str(requirement.get("key")))
            cache_key = requirement_cache_key(source)
            keys.append(state_key)
            entry = self.cache.get(cache_key, requirement.get("cacheDurationMs"))
            if entry is not None:
                current = self.states.get(state_key)
                if (
                    current is None
                    or current.is_loading
                    or current.cache_key != cache_key
                    or current.timestamp != entry.timestamp
                ):
                    self.metrics.record_requirement_cache_hit(str(source.get("type")))
                    self.states[state_key] = self._state_from_entry(entry, cache_key, requirement)
            else:
                pending = self._pending.get(cache_key)
                if pending is None:
                    self.metrics.record_requirement_cache_miss(str(source.get("type")))
                    pending = _PendingFetch(cache_key=cache_key, source=source)
                    self._pending[cache_key] = pending
                pending.waiters[state_key] = (node_id, requirement)
                previous = self.states.get(state_key)
                carried = previous.data if previous is not None and previous.data is not None else None
                self.states[state_key] = RequirementState(
                    data=carried if carried is not None else requirement.get("defaultValue"),
                    is_loading=True,
                    timestamp=self.cache.now(),
                    cache_key=cache_key,
                )
            settled.append((requirement, self.states[state_key]))
        self._node_keys[node_id] = keys
        return settled

    @staticmethod
    def _state_from_entry(entry: CacheEntry, cache_key: str, requirement: Mapping[str, Any]) -> RequirementState:
        if entry.error is not None:
            return RequirementState(
                data=requirement.get("defaultValue"),
                is_loading=False,
                error=entry.error,
                timestamp=entry.timestamp,
                cache_key=cache_key,
            )
        return RequirementState(data=entry.data, is_loading=False, timestamp=entry.timestamp, cache_key=cache_key)

    def get_state(self, node_id: str, requirement_key: str) -> Optional[RequirementState]:
        return self.states.get(requirement_state_key(node_id, requirement_key))

    def has_pending(self) -> bool:
        return bool(self._pending)

    def start_pending(self) -> List[asyncio.Task]:
        """Start tasks for queued fetches. Needs a running event loop."""

        tasks = []
        for pending in list(self._pending.values()):
            if pending.task is None:
                pending.task = asyncio.get_running_loop().create_task(self._run(pending))
            tasks.append(pending.task)
        return tasks

    async def flush(self) -> None:
        while self._pending:
            await asyncio.gather(*self.start_pending())

    async def _run(self, pending: _PendingFetch) -> None:
        source_type = str(pending.source.get("type"))
        try:
            data = await self.fetcher.fetch(pending.source)
            entry = self.cache.set(pending.cache_key, data)
        except Exception as exc:  # noqa: BLE001 - one failing source never fails the page
            log.error("Data requirement fetch failed (%s): %s", source_type, exc)
            self.metrics.record_fetch_failure(source_type)
            entry = self.cache.set(pending.cache_key, None, error=str(exc) or type(exc).__name__)
        finally:
            self._pending.pop(pending.cache_key, None)
        for state_key, (node_id, requirement) in pending.waiters.items():
            if node_id in self._released:
                log.debug("Dropping late result for released node %s", node_id)
                continue
            self.states[state_key] = self._state_from_entry(entry, pending.cache_key, requirement)

    def release(self, node_id: str) -> None:
        """Tear down a node: results that arrive later must not touch its state."""

        self._released.add(node_id)
        for state_key in self._node_keys.pop(node_id, []):
            self.states.pop(state_key, None)

    def retain_only(self, live_node_ids: set[str]) -> None:
        for node_id in [node_id for node_id in self._node_keys if node_id not in live_node_ids]:
            self.release(node_id)

    def invalidate_errors(self) -> None:
        """Forget cached failures so the next pass fetches those sources again."""

        self.cache.drop_errors()
        for state_key in [key for key, state in self.states.items() if state.error is not None]:
            self.states.pop(state_key, None)

    def reset(self) -> None:
        self.cache.clear()
        self.states.clear()
        self._node_keys.clear()
        self._pending.clear()
        self._released.clear()
