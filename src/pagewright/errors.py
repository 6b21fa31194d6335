"""
Error types raised by the pagewright interpreter.

Most of these never escape the unit that raised them: the resolution pipeline
and the action engine catch them at the node, requirement or action boundary.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


@dataclass
class PagewrightError(Exception):
    """Base error with an optional error code and diagnostics payload."""

    message: str
    code: str = "PW-0000"
    diagnostics: list[dict[str, Any]] | None = None

    def __post_init__(self) -> None:  # pragma: no cover - trivial
        if self.diagnostics is None:
            self.diagnostics = [{"code": self.code, "message": self.message, "severity": "error"}]

    def __str__(self) -> str:  # pragma: no cover - trivial
        return self.message


@dataclass
class ExpressionError(PagewrightError):
    """A `{{ ... }}` expression could not be parsed or evaluated."""

    code: str = "PW-1001"
    column: Optional[int] = None

    def __str__(self) -> str:  # pragma: no cover - trivial
        if self.column is None:
            return self.message
        return f"{self.message} (column {self.column})"


@dataclass
class DocumentError(PagewrightError):
    """The serialized page document is malformed."""

    code: str = "PW-1101"


@dataclass
class DataSourceError(PagewrightError):
    """A data requirement or page data source failed to fetch."""

    code: str = "PW-1201"
    source_type: str | None = None


@dataclass
class UnsupportedSourceError(DataSourceError):
    """The data source kind is unknown or not implemented."""

    code: str = "PW-1202"


@dataclass
class TransportError(PagewrightError):
    """An HTTP collaborator call failed."""

    code: str = "PW-1301"
    status: int | None = None
    payload: Any = None


@dataclass
class TransportTimeoutError(TransportError):
    """An HTTP collaborator call exceeded the configured timeout."""

    code: str = "PW-1302"


@dataclass
class TransportRetryError(TransportError):
    """An HTTP collaborator call exhausted its retries."""

    code: str = "PW-1303"
    attempts: int | None = None
    last_error: BaseException | None = None


@dataclass
class TransportCircuitOpenError(TransportError):
    """Calls to an endpoint are short-circuited after repeated failures."""

    code: str = "PW-1304"


@dataclass
class PlaceholderCycleError(PagewrightError):
    """A node names itself or an ancestor as its own loading placeholder."""

    code: str = "PW-1401"
    chain: list[str] | None = None


@dataclass
class ActionError(PagewrightError):
    """An action is malformed or of an unsupported type."""

    code: str = "PW-1501"
    action_type: str | None = None
