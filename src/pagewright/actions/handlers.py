"""
Built-in action handlers.

A handler receives the runtime, the action's resolved params and the id of
the node that fired it, performs one side effect and reports success plus
any result data for chaining.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, List, Optional, Protocol
from urllib.parse import urlparse

from ..config import RuntimeConfig
from ..data.transport import HttpClient
from ..errors import ActionError
from ..observability.logging_utils import redact_payload
from ..state.stores import PageSession
from .models import ActionOutcome

if TYPE_CHECKING:
    from ..data.orchestrator import DataRequirementOrchestrator
    from ..data.page_data import PageDataSource

log = logging.getLogger("pagewright.actions")


class CartCollaborator(Protocol):
    def add_to_cart(self, item: Mapping[str, Any]) -> Any: ...


class NavigationCollaborator(Protocol):
    def navigate(self, url: str, new_tab: bool = False) -> Any: ...


class SessionCollaborator(Protocol):
    def get_session(self) -> Mapping[str, Any]: ...


@dataclass
class RecordingCollaborators:
    """Cart, navigation and session collaborators that only record calls."""

    session: Dict[str, Any] = field(default_factory=dict)
    cart_items: List[Dict[str, Any]] = field(default_factory=list)
    navigations: List[Dict[str, Any]] = field(default_factory=list)

    def add_to_cart(self, item: Mapping[str, Any]) -> None:
        self.cart_items.append(dict(item))

    def navigate(self, url: str, new_tab: bool = False) -> None:
        self.navigations.append({"url": url, "newTab": new_tab})

    def get_session(self) -> Mapping[str, Any]:
        return dict(self.session)

    def calls(self) -> Dict[str, Any]:
        return {"cart": list(self.cart_items), "navigations": list(self.navigations)}


@dataclass
class ActionRuntime:
    """Everything a handler may touch. Optional collaborators may be missing."""

    session: PageSession
    config: RuntimeConfig = field(default_factory=RuntimeConfig)
    http: Optional[HttpClient] = None
    cart: Optional[CartCollaborator] = None
    navigator: Optional[NavigationCollaborator] = None
    page_data: Optional["PageDataSource"] = None
    orchestrator: Optional["DataRequirementOrchestrator"] = None
    form_scope_id: Optional[str] = None


ActionHandler = Callable[[ActionRuntime, Dict[str, Any], Optional[str]], Awaitable[ActionOutcome]]


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


def _require_http(runtime: ActionRuntime, action_type: str) -> HttpClient:
    if runtime.http is None:
        raise ActionError(f"'{action_type}' needs an HTTP client", action_type=action_type)
    return runtime.http


async def update_node_state(runtime: ActionRuntime, params: Dict[str, Any], node_id: Optional[str]) -> ActionOutcome:
    target, updates = params.get("targetNodeId"), params.get("updates")
    if target and isinstance(updates, Mapping):
        runtime.session.overrides.set_node_overrides(str(target), updates)
    return ActionOutcome()


async def update_state(runtime: ActionRuntime, params: Dict[str, Any], node_id: Optional[str]) -> ActionOutcome:
    target = params.get("targetNodeId") or node_id
    updates = params.get("updates")
    if target and isinstance(updates, Mapping):
        runtime.session.states.update(str(target), updates)
    return ActionOutcome()


async def open_modal(runtime: ActionRuntime, params: Dict[str, Any], node_id: Optional[str]) -> ActionOutcome:
    if params.get("modalNodeId"):
        runtime.session.overrides.set_node_overrides(str(params["modalNodeId"]), {"visibility": {"hidden": False}})
    return ActionOutcome()


async def close_modal(runtime: ActionRuntime, params: Dict[str, Any], node_id: Optional[str]) -> ActionOutcome:
    if params.get("modalNodeId"):
        runtime.session.overrides.set_node_overrides(str(params["modalNodeId"]), {"visibility": {"hidden": True}})
    return ActionOutcome()


async def reset_form(runtime: ActionRuntime, params: Dict[str, Any], node_id: Optional[str]) -> ActionOutcome:
    if runtime.form_scope_id and runtime.form_scope_id in runtime.session.forms:
        runtime.session.forms[runtime.form_scope_id].reset()
    return ActionOutcome()


async def add_item_to_cart(runtime: ActionRuntime, params: Dict[str, Any], node_id: Optional[str]) -> ActionOutcome:
    if not params.get("productId"):
        return ActionOutcome()
    if runtime.cart is None:
        raise ActionError("addItemToCart needs a cart collaborator", action_type="addItemToCart")
    item = {
        "productId": params["productId"],
        "quantity": params.get("quantity") or 1,
        "customizations": params.get("customizations"),
        "product": params.get("product"),
    }
    await _maybe_await(runtime.cart.add_to_cart(item))
    return ActionOutcome()


def is_same_origin(url: str, origin: Optional[str]) -> bool:
    parsed = urlparse(url)
    if not parsed.scheme and not parsed.netloc:
        return True
    if not origin:
        return False
    base = urlparse(origin)
    return (parsed.scheme, parsed.netloc) == (base.scheme, base.netloc)


async def navigate(runtime: ActionRuntime, params: Dict[str, Any], node_id: Optional[str]) -> ActionOutcome:
    url = params.get("url")
    if not url:
        return ActionOutcome()
    if runtime.navigator is None:
        raise ActionError("navigate needs a navigation collaborator", action_type="navigate")
    url = str(url)
    if params.get("newTab") or not is_same_origin(url, runtime.config.site_origin):
        await _maybe_await(runtime.navigator.navigate(url, new_tab=True))
        return ActionOutcome()
    preview_navigate = getattr(runtime.navigator, "navigate_in_preview", None)
    if runtime.config.embedded_preview and callable(preview_navigate):
        await _maybe_await(preview_navigate(url))
        return ActionOutcome()
    await _maybe_await(runtime.navigator.navigate(url, new_tab=False))
    # Leaving the page ends its session.
    runtime.session.reset()
    return ActionOutcome()


async def execute_rql(runtime: ActionRuntime, params: Dict[str, Any], node_id: Optional[str]) -> ActionOutcome:
    http = _require_http(runtime, "executeRQL")
    endpoint = runtime.config.query_endpoint
    if not endpoint:
        raise ActionError("executeRQL needs PAGEWRIGHT_QUERY_ENDPOINT to be set", action_type="executeRQL")
    body = {str(params.get("resultKey") or "default"): params.get("query")}
    response = await http.request("POST", endpoint, json_body=body)
    if not response.ok:
        log.error("executeRQL failed with HTTP status %s: %s", response.status, redact_payload(response.payload))
        return ActionOutcome(successful=False)
    payload = response.payload if isinstance(response.payload, Mapping) else {}
    if payload.get("errors"):
        log.error("executeRQL returned query errors: %s", redact_payload(payload.get("errors")))
        return ActionOutcome(successful=False, result_data=payload)
    return ActionOutcome(result_data=payload.get("data"))


async def submit_data(runtime: ActionRuntime, params: Dict[str, Any], node_id: Optional[str]) -> ActionOutcome:
    http = _require_http(runtime, "submitData")
    endpoint = params.get("endpoint")
    if not endpoint:
        raise ActionError("submitData needs an 'endpoint'", action_type="submitData")
    response = await http.request(
        str(params.get("method") or "POST"),
        str(endpoint),
        json_body=params.get("body"),
        headers=params.get("headers") or None,
    )
    payload = response.payload
    has_errors = isinstance(payload, Mapping) and bool(payload.get("errors"))
    if not response.ok or has_errors:
        log.error("submitData to %s failed (status %s)", endpoint, response.status)
        return ActionOutcome(successful=False, result_data=payload)
    return ActionOutcome(result_data=payload)


async def refetch_page_data(runtime: ActionRuntime, params: Dict[str, Any], node_id: Optional[str]) -> ActionOutcome:
    if runtime.page_data is not None:
        runtime.page_data.mark_stale()
    if runtime.orchestrator is not None:
        runtime.orchestrator.invalidate_errors()
    return ActionOutcome()


BUILTIN_HANDLERS: Dict[str, ActionHandler] = {
    "updateNodeState": update_node_state,
    "updateState": update_state,
    "openModal": open_modal,
    "closeModal": close_modal,
    "resetForm": reset_form,
    "addItemToCart": add_item_to_cart,
    "navigate": navigate,
    "executeRQL": execute_rql,
    "submitData": submit_data,
    "refetchPageData": refetch_page_data,
}

# Result data from these types is stored in `actionResults` for chaining.
RESULT_ACTION_TYPES = {"executeRQL", "submitData"}
