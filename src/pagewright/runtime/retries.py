"""
Timeout and retry wrapper for outbound calls made while a page resolves or
an action runs.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Protocol, Tuple

from ..errors import TransportCircuitOpenError, TransportRetryError, TransportTimeoutError


@dataclass
class RetryPolicy:
    timeout: float = 15.0
    max_retries: int = 0
    backoff_base: float = 0.25

    @classmethod
    def from_config(cls, config: Any) -> "RetryPolicy":
        return cls(
            timeout=config.http_timeout_seconds,
            max_retries=config.http_max_retries,
            backoff_base=config.http_backoff_base,
        )

    @property
    def attempts(self) -> int:
        return self.max_retries + 1

    def backoff(self, attempt: int) -> float:
        return self.backoff_base * (2**attempt)


class CallGate(Protocol):
    """Per-endpoint admission control, e.g. `EndpointBreaker`."""

    def allows(self, endpoint: str) -> bool: ...

    def succeeded(self, endpoint: str) -> None: ...

    def failed(self, endpoint: str, reason: str) -> None: ...


async def call_with_retries(
    fn: Callable[[], Awaitable[Any]],
    *,
    policy: RetryPolicy | None = None,
    retry_on: Tuple[type[BaseException], ...] = (),
    gate: CallGate | None = None,
    endpoint: Optional[str] = None,
    is_failure: Callable[[Any], bool] | None = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> Any:
    """
    Await `fn()` under `policy.timeout`.

    Exceptions that are instances of `retry_on` are retried with exponential
    backoff until `policy.max_retries` runs out, then `TransportRetryError` is
    raised. Anything else propagates at once. A timeout surfaces as
    `TransportTimeoutError`, so listing `TransportError` retries it as well.

    With a `gate`, every outcome is reported for `endpoint` and a closed gate
    fails the call before it starts. `is_failure` marks returned values (such
    as a 5xx response) that the gate should count against the endpoint even
    though the value is handed back to the caller.
    """

    policy = policy or RetryPolicy()
    gated = gate is not None and bool(endpoint)
    last_error: BaseException | None = None

    for attempt in range(policy.attempts):
        if gated and not gate.allows(endpoint):
            raise TransportCircuitOpenError(f"Calls to {endpoint} are paused after repeated failures")
        try:
            result = await asyncio.wait_for(fn(), timeout=policy.timeout)
        except asyncio.TimeoutError:
            error: BaseException = TransportTimeoutError(
                f"Call to {endpoint or 'endpoint'} timed out after {policy.timeout} seconds"
            )
        except Exception as exc:  # noqa: BLE001 - re-raised below unless retryable
            error = exc
        else:
            if gated:
                if is_failure is not None and is_failure(result):
                    gate.failed(endpoint, f"HTTP {getattr(result, 'status', '?')}")
                else:
                    gate.succeeded(endpoint)
            return result

        last_error = error
        if gated:
            gate.failed(endpoint, str(error) or type(error).__name__)
        if not isinstance(error, retry_on):
            raise error
        if attempt < policy.max_retries:
            await sleep(policy.backoff(attempt))

    raise TransportRetryError(
        f"Call to {endpoint or 'endpoint'} failed after {policy.attempts} attempts",
        attempts=policy.attempts,
        last_error=last_error,
    )
