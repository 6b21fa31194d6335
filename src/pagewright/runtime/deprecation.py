from __future__ import annotations

import logging
import os
import warnings

log = logging.getLogger(__name__)

_warned: set[str] = set()


class DeprecationStrictError(RuntimeError):
    """Raised when a deprecated feature is used and strict mode is enabled."""


def warn_deprecated(feature: str, *, remove_in: str, code: str, details: str | None = None) -> None:
    """
    Emit a structured deprecation warning, once per feature per process.

    If PAGEWRIGHT_DEPRECATION_STRICT=true, raise DeprecationStrictError instead of warning.
    """

    message = f"{feature} is deprecated and will be removed in {remove_in} (code={code})."
    if details:
        message = f"{message} {details}"
    strict = str(os.getenv("PAGEWRIGHT_DEPRECATION_STRICT", "")).strip().lower() in {"1", "true", "yes", "on"}
    if strict:
        raise DeprecationStrictError(message)
    if feature in _warned:
        return
    _warned.add(feature)
    warnings.warn(message, DeprecationWarning, stacklevel=2)
    log.warning("DEPRECATION: %s", message)


def reset_deprecation_warnings() -> None:
    _warned.clear()
