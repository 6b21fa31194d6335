from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from ..document.loader import thaw


def deep_merge(base: Mapping[str, Any] | None, patch: Mapping[str, Any] | None) -> dict[str, Any]:
    """
    Structural merge returning a new dict. Nested mappings combine key by key;
    lists and scalars from `patch` replace what `base` had. Neither input is
    modified.
    """

    merged = thaw(base) if base else {}
    if not patch:
        return merged
    for key, value in patch.items():
        existing = merged.get(key)
        if isinstance(value, Mapping) and isinstance(existing, Mapping):
            merged[key] = deep_merge(existing, value)
        else:
            merged[key] = thaw(value)
    return merged
