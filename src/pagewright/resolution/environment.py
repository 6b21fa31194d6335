"""
Viewport breakpoint detection and locale negotiation.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional

DEFAULT_BREAKPOINTS: Dict[str, str] = {
    "mobile": "(max-width: 767px)",
    "tablet": "(min-width: 768px) and (max-width: 1023px)",
    "desktop": "(min-width: 1024px)",
}

_MIN_RE = re.compile(r"min-width:\s*(\d+(?:\.\d+)?)px")
_MAX_RE = re.compile(r"max-width:\s*(\d+(?:\.\d+)?)px")

RTL_LANGUAGES = {"ar", "he", "fa", "ur", "ps", "yi", "dv", "ku"}


@dataclass
class _Range:
    name: str
    min_width: Optional[float]
    max_width: Optional[float]

    def contains(self, width: float) -> bool:
        if self.min_width is not None and width < self.min_width:
            return False
        if self.max_width is not None and width > self.max_width:
            return False
        return True


def _parse_ranges(breakpoints: Dict[str, str]) -> list[_Range]:
    ranges = []
    for name, query in breakpoints.items():
        min_match = _MIN_RE.search(query or "")
        max_match = _MAX_RE.search(query or "")
        ranges.append(
            _Range(
                name=name,
                min_width=float(min_match.group(1)) if min_match else None,
                max_width=float(max_match.group(1)) if max_match else None,
            )
        )
    # Widest min-width first so overlapping queries resolve to the larger layout.
    ranges.sort(key=lambda r: r.min_width if r.min_width is not None else -1, reverse=True)
    return ranges


def detect_breakpoint(width: Optional[float], breakpoints: Optional[Dict[str, str]] = None) -> Optional[str]:
    """
    Map a viewport width to a breakpoint name using `min-width`/`max-width`
    media queries. Returns None when nothing matches.
    """

    table = breakpoints or DEFAULT_BREAKPOINTS
    if width is None:
        return None
    for candidate in _parse_ranges(table):
        if candidate.contains(float(width)):
            return candidate.name
    return None


def negotiate_locale(requested: Optional[str], supported: Iterable[str] = (), default: str = "en-US") -> str:
    """
    Pick the best supported locale: exact match, then language-only match
    (`fr-CA` -> `fr` or `fr-FR`), then the default.
    """

    options = list(supported)
    if not requested:
        return default
    if not options or requested in options:
        return requested
    lowered = {option.lower(): option for option in options}
    if requested.lower() in lowered:
        return lowered[requested.lower()]
    language = requested.split("-")[0].lower()
    for option in options:
        if option.split("-")[0].lower() == language:
            return option
    return default


def is_rtl(locale: Optional[str]) -> bool:
    if not locale:
        return False
    return locale.split("-")[0].lower() in RTL_LANGUAGES


@dataclass
class Environment:
    """Viewport and locale the page is resolved for."""

    breakpoint: Optional[str] = None
    locale: Optional[str] = None
    viewport_width: Optional[float] = None
    breakpoints: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_BREAKPOINTS))

    @classmethod
    def for_viewport(
        cls,
        width: Optional[float] = None,
        locale: Optional[str] = None,
        breakpoints: Optional[Dict[str, str]] = None,
        breakpoint: Optional[str] = None,
    ) -> "Environment":
        table = dict(breakpoints or DEFAULT_BREAKPOINTS)
        active = breakpoint or detect_breakpoint(width, table)
        return cls(breakpoint=active, locale=locale, viewport_width=width, breakpoints=table)

    def viewport(self) -> Dict[str, object]:
        return {
            "width": self.viewport_width,
            "breakpoint": self.breakpoint,
            "locale": self.locale,
            "isRtl": is_rtl(self.locale),
        }
