"""
Runtime configuration loaded from the environment.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional


def _env(env: Mapping[str, str] | None, name: str) -> Optional[str]:
    source = os.environ if env is None else env
    return source.get(name)


def _env_bool(env: Mapping[str, str] | None, name: str, default: bool = False) -> bool:
    val = _env(env, name)
    if val is None:
        return default
    return str(val).strip().lower() in {"1", "true", "yes", "on"}


def _env_float(env: Mapping[str, str] | None, name: str, default: float) -> float:
    val = _env(env, name)
    if val is None:
        return default
    try:
        return float(val)
    except (TypeError, ValueError):
        return default


def _env_int(env: Mapping[str, str] | None, name: str, default: int) -> int:
    val = _env(env, name)
    if val is None:
        return default
    try:
        return int(val)
    except (TypeError, ValueError):
        return default


def _env_str(env: Mapping[str, str] | None, name: str, default: Optional[str] = None) -> Optional[str]:
    val = _env(env, name)
    if val is None or not str(val).strip():
        return default
    return str(val).strip()


@dataclass
class RuntimeConfig:
    query_endpoint: Optional[str] = None
    graphql_endpoint: str = "/api/graphql"
    site_origin: Optional[str] = None
    http_timeout_seconds: float = 15.0
    http_max_retries: int = 0
    http_backoff_base: float = 0.25
    mock_delay_seconds: float = 0.0
    placeholder_max_depth: int = 8
    max_render_passes: int = 10
    circuit_failure_threshold: int = 5
    circuit_reset_seconds: float = 30.0
    default_locale: str = "en-US"
    embedded_preview: bool = False


def load_config(env: Mapping[str, str] | None = None) -> RuntimeConfig:
    """
    Build a RuntimeConfig from PAGEWRIGHT_* variables, falling back to defaults
    for anything missing or unparsable.
    """

    defaults = RuntimeConfig()
    return RuntimeConfig(
        query_endpoint=_env_str(env, "PAGEWRIGHT_QUERY_ENDPOINT", defaults.query_endpoint),
        graphql_endpoint=_env_str(env, "PAGEWRIGHT_GRAPHQL_ENDPOINT", defaults.graphql_endpoint) or defaults.graphql_endpoint,
        site_origin=_env_str(env, "PAGEWRIGHT_SITE_ORIGIN", defaults.site_origin),
        http_timeout_seconds=_env_float(env, "PAGEWRIGHT_HTTP_TIMEOUT_SECONDS", defaults.http_timeout_seconds),
        http_max_retries=max(0, _env_int(env, "PAGEWRIGHT_HTTP_MAX_RETRIES", defaults.http_max_retries)),
        http_backoff_base=_env_float(env, "PAGEWRIGHT_HTTP_BACKOFF_BASE", defaults.http_backoff_base),
        mock_delay_seconds=max(0.0, _env_float(env, "PAGEWRIGHT_MOCK_DELAY_SECONDS", defaults.mock_delay_seconds)),
        placeholder_max_depth=max(1, _env_int(env, "PAGEWRIGHT_PLACEHOLDER_MAX_DEPTH", defaults.placeholder_max_depth)),
        max_render_passes=max(1, _env_int(env, "PAGEWRIGHT_MAX_RENDER_PASSES", defaults.max_render_passes)),
        circuit_failure_threshold=max(
            1, _env_int(env, "PAGEWRIGHT_CIRCUIT_FAILURE_THRESHOLD", defaults.circuit_failure_threshold)
        ),
        circuit_reset_seconds=max(
            0.0, _env_float(env, "PAGEWRIGHT_CIRCUIT_RESET_SECONDS", defaults.circuit_reset_seconds)
        ),
        default_locale=_env_str(env, "PAGEWRIGHT_DEFAULT_LOCALE", defaults.default_locale) or defaults.default_locale,
        embedded_preview=_env_bool(env, "PAGEWRIGHT_EMBEDDED_PREVIEW", defaults.embedded_preview),
    )
