from __future__ import annotations

import hashlib
import json
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional


def _stable_json(value: Any) -> str:
    try:
        return json.dumps(value, sort_keys=True, default=str, separators=(",", ":"))
    except (TypeError, ValueError):
        return str(value)


def requirement_cache_key(source: Mapping[str, Any]) -> str:
    """
    Stable key for a resolved source. Batched queries hash by their query map;
    every other kind by query, variables and data path.
    """

    if source.get("type") == "rql":
        canonical = {"type": "rql", "queries": source.get("queries")}
    else:
        canonical = {
            "type": source.get("type"),
            "query": source.get("query"),
            "variables": source.get("variables") or {},
            "dataPath": source.get("dataPath"),
        }
    digest = hashlib.sha256(_stable_json(canonical).encode("utf-8")).hexdigest()
    return f"req_{digest[:16]}"


def requirement_state_key(node_id: str, requirement_key: str) -> str:
    return f"{node_id}_{requirement_key}"


@dataclass
class CacheEntry:
    data: Any
    error: Optional[str]
    timestamp: float


class RequirementCache:
    """
    Session cache shared by every node. Freshness is judged by the reader,
    because two requirements with the same source may declare different TTLs.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}

    def now(self) -> float:
        return self._clock()

    def get(self, key: str, ttl_ms: Optional[float] = None) -> Optional[CacheEntry]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if ttl_ms and (self._clock() - entry.timestamp) * 1000.0 >= ttl_ms:
            return None
        return entry

    def set(self, key: str, data: Any, error: Optional[str] = None) -> CacheEntry:
        entry = CacheEntry(data=data, error=error, timestamp=self._clock())
        self._entries[key] = entry
        return entry

    def drop_errors(self) -> None:
        for key in [key for key, entry in self._entries.items() if entry.error is not None]:
            self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
