from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

from .values import UNDEFINED, is_sequence

_SEGMENT_RE = re.compile(r"""[^.\[\]]+|\[(?:([^"'\[\]]+)|["']([^"']+)["'])\]""")
_INDEX_RE = re.compile(r"^\d+$")


def split_path(path: str) -> list[str]:
    """Split `a.b[0]['c-d']` into `['a', 'b', '0', 'c-d']`."""

    segments: list[str] = []
    for match in _SEGMENT_RE.finditer(path):
        unquoted, quoted = match.group(1), match.group(2)
        if unquoted is not None:
            segments.append(unquoted.strip())
        elif quoted is not None:
            segments.append(quoted)
        else:
            segments.append(match.group(0))
    return segments


def get_member(container: Any, key: Any) -> Any:
    """Read one property; returns UNDEFINED instead of raising."""

    if isinstance(container, Mapping):
        if key in container:
            return container[key]
        if not isinstance(key, str):
            return container.get(str(key), UNDEFINED)
        return UNDEFINED
    if is_sequence(container) or isinstance(container, str):
        if key == "length":
            return len(container)
        index = key
        if isinstance(index, str) and _INDEX_RE.match(index):
            index = int(index)
        if isinstance(index, float) and index.is_integer():
            index = int(index)
        if isinstance(index, int) and not isinstance(index, bool) and 0 <= index < len(container):
            return container[index]
        return UNDEFINED
    return UNDEFINED


def get_path(obj: Any, path: Any, default: Any = None) -> Any:
    """
    Walk a dotted/bracketed path. Missing segments yield `default`; an explicit
    null stored at the end of the path is returned as None.
    """

    if obj is None or obj is UNDEFINED or not isinstance(path, str) or not path:
        return default
    segments = split_path(path)
    if not segments:
        return default
    current = obj
    for segment in segments:
        if current is None or current is UNDEFINED:
            return default
        current = get_member(current, segment)
    return default if current is UNDEFINED else current
