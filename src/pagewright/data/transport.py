"""
HTTP collaborators: a generic JSON client and the batched query transport.

The default client uses urllib off the event loop; tests and embedders pass
their own objects satisfying the protocols below.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
import urllib.error
import urllib.request
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional, Protocol
from urllib.parse import urljoin

from ..config import RuntimeConfig
from ..errors import TransportError
from ..observability.metrics import MetricsRegistry, default_metrics
from ..runtime.retries import RetryPolicy, call_with_retries

log = logging.getLogger("pagewright.data")


@dataclass
class HttpResponse:
    status: int
    payload: Any = None
    headers: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


class HttpClient(Protocol):
    async def request(
        self,
        method: str,
        url: str,
        *,
        json_body: Any = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> HttpResponse: ...


class QueryTransport(Protocol):
    async def execute(self, queries: Mapping[str, Any]) -> Mapping[str, Any]: ...


def _decode(raw: bytes) -> Any:
    text = raw.decode("utf-8") if raw else ""
    if not text.strip():
        return None
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return text


@dataclass
class EndpointHealth:
    failures: int = 0
    opened_at: Optional[float] = None
    last_error: Optional[str] = None


class EndpointBreaker:
    """
    Pauses calls to one endpoint after `failure_threshold` consecutive
    failures (errors, timeouts or 5xx answers) so a dead collaborator stops
    costing a full timeout for every node that needs it. Once `reset_seconds`
    have passed a trial call goes through; its outcome closes or reopens the
    endpoint.
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        reset_seconds: float = 30.0,
        *,
        metrics: MetricsRegistry | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.failure_threshold = max(1, failure_threshold)
        self.reset_seconds = reset_seconds
        self.metrics = metrics or default_metrics
        self._clock = clock
        self._health: Dict[str, EndpointHealth] = {}

    @classmethod
    def from_config(cls, config: RuntimeConfig, metrics: MetricsRegistry | None = None) -> "EndpointBreaker":
        return cls(config.circuit_failure_threshold, config.circuit_reset_seconds, metrics=metrics)

    def status(self, endpoint: str) -> str:
        health = self._health.get(endpoint)
        if health is None or health.opened_at is None:
            return "closed"
        if self._clock() - health.opened_at >= self.reset_seconds:
            return "trial"
        return "open"

    def allows(self, endpoint: str) -> bool:
        return self.status(endpoint) != "open"

    def succeeded(self, endpoint: str) -> None:
        health = self._health.pop(endpoint, None)
        if health is not None and health.opened_at is not None:
            log.info("Endpoint %s answered again; resuming calls", endpoint)
            self.metrics.record_circuit_event(endpoint, "closed")

    def failed(self, endpoint: str, reason: str) -> None:
        health = self._health.setdefault(endpoint, EndpointHealth())
        was_open = health.opened_at is not None
        health.failures += 1
        health.last_error = reason
        if was_open or health.failures >= self.failure_threshold:
            health.opened_at = self._clock()
            log.warning("Pausing calls to %s after %s failure(s): %s", endpoint, health.failures, reason)
            self.metrics.record_circuit_event(endpoint, "opened")

    def snapshot(self) -> Dict[str, Dict[str, Any]]:
        return {
            endpoint: {"status": self.status(endpoint), "failures": health.failures, "lastError": health.last_error}
            for endpoint, health in self._health.items()
        }


class UrllibHttpClient:
    """JSON over HTTP with timeout, retries and an `EndpointBreaker` per client."""

    def __init__(
        self,
        config: RuntimeConfig,
        breaker: EndpointBreaker | None = None,
        metrics: MetricsRegistry | None = None,
    ) -> None:
        self.config = config
        self.retry = RetryPolicy.from_config(config)
        self.breaker = breaker if breaker is not None else EndpointBreaker.from_config(config, metrics)

    def absolute_url(self, url: str) -> str:
        if url.startswith(("http://", "https://")):
            return url
        if not self.config.site_origin:
            raise TransportError(f"Relative URL '{url}' needs PAGEWRIGHT_SITE_ORIGIN to be set")
        return urljoin(self.config.site_origin, url)

    async def request(
        self,
        method: str,
        url: str,
        *,
        json_body: Any = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> HttpResponse:
        target = self.absolute_url(url)
        all_headers = {"Content-Type": "application/json", **dict(headers or {})}

        async def _call() -> HttpResponse:
            return await asyncio.to_thread(self._send, method.upper(), target, json_body, all_headers)

        return await call_with_retries(
            _call,
            policy=self.retry,
            retry_on=(TransportError,) if self.retry.max_retries else (),
            gate=self.breaker,
            endpoint=target.split("?", 1)[0],
            is_failure=lambda response: response.status >= 500,
        )

    def _send(self, method: str, url: str, body: Any, headers: Dict[str, str]) -> HttpResponse:
        data = None if body is None or method == "GET" else json.dumps(body).encode("utf-8")
        req = urllib.request.Request(url, data=data, headers=headers, method=method)
        try:
            with urllib.request.urlopen(req, timeout=self.retry.timeout) as resp:  # pragma: no cover - live calls
                return HttpResponse(status=resp.status, payload=_decode(resp.read()), headers=dict(resp.headers))
        except urllib.error.HTTPError as exc:
            return HttpResponse(status=exc.code, payload=_decode(exc.read() or b""), headers=dict(exc.headers or {}))
        except urllib.error.URLError as exc:
            raise TransportError(f"{method} {url} failed: {exc.reason}") from exc


class HttpQueryTransport:
    """Posts a map of named queries to the query endpoint in one request."""

    def __init__(self, endpoint: str, http: HttpClient) -> None:
        self.endpoint = endpoint
        self.http = http

    async def execute(self, queries: Mapping[str, Any]) -> Mapping[str, Any]:
        response = await self.http.request("POST", self.endpoint, json_body=dict(queries))
        if not response.ok:
            raise TransportError(
                f"Query endpoint returned HTTP {response.status}",
                status=response.status,
                payload=response.payload,
            )
        if not isinstance(response.payload, Mapping):
            raise TransportError("Query endpoint returned a non-object payload", status=response.status)
        return response.payload


def build_query_transport(config: RuntimeConfig, http: HttpClient) -> Optional[HttpQueryTransport]:
    if not config.query_endpoint:
        return None
    return HttpQueryTransport(config.query_endpoint, http)
