from __future__ import annotations

import os
from typing import Any

_SENSITIVE_KEYS = {
    "email",
    "phone",
    "authorization",
    "access_token",
    "password",
    "secret",
    "token",
    "cardnumber",
    "cvv",
}


def _env_bool(name: str, default: bool = True) -> bool:
    val = os.getenv(name)
    if val is None:
        return default
    return str(val).strip().lower() in {"1", "true", "yes", "on"}


def redact_payload(payload: Any) -> Any:
    """
    Return a copy of action params or form data safe to put in a log line.

    Nested dicts and lists are walked; values under sensitive keys are masked.
    """

    if not _env_bool("PAGEWRIGHT_LOG_REDACT", True):
        return payload
    if isinstance(payload, dict):
        redacted: dict[str, Any] = {}
        for key, value in payload.items():
            if str(key).lower() in _SENSITIVE_KEYS:
                redacted[key] = "[REDACTED]"
            else:
                redacted[key] = redact_payload(value)
        return redacted
    if isinstance(payload, (list, tuple)):
        return [redact_payload(item) for item in payload]
    return payload
