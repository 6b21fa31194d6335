"""
Node resolution pipeline.

Each node goes through the same steps: override merge, data requirement
settlement, loading check, visibility, parameter binding and finally the
type handler (which recurses into children or repeater items). Failures are
contained to the node that raised them.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, Iterator, List, Optional, Tuple

from ..config import RuntimeConfig
from ..document.loader import PageDocument
from ..errors import PagewrightError, PlaceholderCycleError
from ..expressions.templates import resolve_data_bindings_in_object
from ..expressions.values import to_plain
from ..observability.metrics import MetricsRegistry, default_metrics
from ..state.stores import PageSession
from .environment import Environment
from .overrides import resolve_effective_node, resolve_requirement_sources
from .registry import NodeTypeRegistry
from .repeater import expand_repeater
from .visibility import evaluate_visibility

if TYPE_CHECKING:
    from ..data.orchestrator import DataRequirementOrchestrator

log = logging.getLogger("pagewright.resolution")

PAGE_DATA_BINDING_RE = re.compile(r"\{\{\s*data[.\[]")

PASSTHROUGH_KEYS = (
    "positioning",
    "animations",
    "interactionStates",
    "className",
    "layout",
    "htmlTag",
    "inlineStyles",
    "content",
    "language",
)


def references_page_data(value: Any) -> bool:
    """True when any string in `value` binds to the page-level `data` scope."""

    if isinstance(value, str):
        return bool(PAGE_DATA_BINDING_RE.search(value))
    if isinstance(value, Mapping):
        return any(references_page_data(item) for item in value.values())
    if isinstance(value, (list, tuple)):
        return any(references_page_data(item) for item in value)
    return False


def _order_key(node: Mapping[str, Any]) -> float:
    try:
        return float(node.get("order") or 0)
    except (TypeError, ValueError):
        return 0.0


@dataclass
class ResolvedNode:
    id: str
    type: str
    kind: Optional[str] = None
    name: Optional[str] = None
    order: float = 0
    params: Dict[str, Any] = field(default_factory=dict)
    visible: bool = True
    loading: bool = False
    placeholder: Optional[Dict[str, Any]] = None
    children: List["ResolvedNode"] = field(default_factory=list)
    event_handlers: Dict[str, List[Dict[str, Any]]] = field(default_factory=dict)
    form_scope_id: Optional[str] = None
    state: Optional[Dict[str, Any]] = None
    node_data: Dict[str, Any] = field(default_factory=dict)
    requirement_errors: Dict[str, str] = field(default_factory=dict)
    attributes: Dict[str, Any] = field(default_factory=dict)
    repeater: Optional[Dict[str, Any]] = None
    error: Optional[Dict[str, Any]] = None
    diagnostics: List[str] = field(default_factory=list)

    @property
    def unsupported(self) -> bool:
        return bool(self.error) and self.error.get("code") == "PW-1102"

    def walk(self) -> Iterator["ResolvedNode"]:
        yield self
        if self.placeholder and isinstance(self.placeholder.get("node"), ResolvedNode):
            yield from self.placeholder["node"].walk()
        for child in self.children:
            yield from child.walk()

    def find(self, node_id: str) -> Optional["ResolvedNode"]:
        return next((node for node in self.walk() if node.id == node_id), None)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "id": self.id,
            "type": self.type,
            "order": self.order,
            "visible": self.visible,
            "loading": self.loading,
        }
        if self.kind is not None:
            payload["kind"] = self.kind
        if self.name is not None:
            payload["name"] = self.name
        if self.loading:
            placeholder = dict(self.placeholder) if self.placeholder else None
            if placeholder and isinstance(placeholder.get("node"), ResolvedNode):
                placeholder["node"] = placeholder["node"].to_dict()
            payload["placeholder"] = placeholder
        else:
            payload["params"] = to_plain(self.params)
        if self.children:
            payload["children"] = [child.to_dict() for child in self.children]
        if self.event_handlers:
            payload["eventHandlers"] = self.event_handlers
        if self.form_scope_id:
            payload["formScopeId"] = self.form_scope_id
        if self.state is not None:
            payload["state"] = to_plain(self.state)
        if self.node_data:
            payload["nodeData"] = to_plain(self.node_data)
        if self.requirement_errors:
            payload["requirementErrors"] = dict(self.requirement_errors)
        if self.attributes:
            payload["attributes"] = to_plain(self.attributes)
        if self.repeater:
            payload["repeater"] = dict(self.repeater)
        if self.error:
            payload["error"] = dict(self.error)
        if self.diagnostics:
            payload["diagnostics"] = list(self.diagnostics)
        return payload


@dataclass
class NodeBinding:
    """What the action engine needs to run a node's handlers later."""

    effective: Dict[str, Any]
    context: Dict[str, Any]
    form_scope_id: Optional[str]


@dataclass
class PageGlobals:
    page: Dict[str, Any] = field(default_factory=dict)
    site: Dict[str, Any] = field(default_factory=dict)
    site_info: Dict[str, Any] = field(default_factory=dict)
    user: Dict[str, Any] = field(default_factory=dict)
    data: Any = None
    data_loading: bool = False
    data_error: Optional[str] = None


class NodeResolver:
    def __init__(
        self,
        document: PageDocument,
        session: PageSession,
        orchestrator: "DataRequirementOrchestrator",
        environment: Environment | None = None,
        registry: NodeTypeRegistry | None = None,
        config: RuntimeConfig | None = None,
        metrics: MetricsRegistry | None = None,
    ) -> None:
        self.document = document
        self.session = session
        self.orchestrator = orchestrator
        self.environment = environment or Environment()
        self.registry = registry or build_default_registry()
        self.config = config or RuntimeConfig()
        self.metrics = metrics or default_metrics
        self.globals = PageGlobals()
        self.bindings: Dict[str, NodeBinding] = {}
        self.live_ids: set[str] = set()
        self.materialized_state = False

    def root_context(self) -> Dict[str, Any]:
        g = self.globals
        return {
            "data": g.data,
            "site": g.site,
            "siteInfo": g.site_info,
            "page": g.page,
            "user": g.user,
            "viewport": self.environment.viewport(),
            "nodeData": {},
            "state": {},
            "states": self.session.states.view(),
        }

    def resolve_page(self, globals: PageGlobals | None = None) -> List[ResolvedNode]:
        """One synchronous pass over the whole page."""

        if globals is not None:
            self.globals = globals
        self.bindings = {}
        self.live_ids = set()
        self.materialized_state = False
        context = self.root_context()
        resolved: List[ResolvedNode] = []
        for node in sorted(self.document.nodes, key=_order_key):
            result = self.resolve_node(node, context, None)
            if result is not None:
                resolved.append(result)
        return resolved

    def resolve_node(
        self,
        node: Mapping[str, Any],
        parent_context: Mapping[str, Any],
        form_scope_id: Optional[str],
        placeholder_chain: Tuple[str, ...] = (),
    ) -> Optional[ResolvedNode]:
        try:
            return self._resolve(node, parent_context, form_scope_id, placeholder_chain)
        except PlaceholderCycleError as exc:
            if placeholder_chain:
                raise
            log.error("Placeholder cycle at node %s: %s", node.get("id"), exc.message)
            return self._error_node(node, exc.code, exc.message)
        except Exception as exc:  # noqa: BLE001 - one broken node never takes down the page
            log.exception("Failed to resolve node %s", node.get("id"))
            code = exc.code if isinstance(exc, PagewrightError) else "PW-1000"
            return self._error_node(node, code, str(exc) or type(exc).__name__)

    def _resolve(
        self,
        node: Mapping[str, Any],
        parent_context: Mapping[str, Any],
        form_scope_id: Optional[str],
        placeholder_chain: Tuple[str, ...],
    ) -> Optional[ResolvedNode]:
        node_id = str(node["id"])
        self.live_ids.add(node_id)
        effective = resolve_effective_node(
            node,
            self.environment.breakpoint,
            self.environment.locale,
            self.session.overrides.get(node_id),
        )

        requirements = resolve_requirement_sources(effective.get("dataRequirements"), parent_context)
        settled = self.orchestrator.ensure(node_id, requirements) if requirements else []
        own_data = {str(req.get("key")): state.data for req, state in settled}
        requirement_errors = {str(req.get("key")): state.error for req, state in settled if state.error}
        requirement_loading = any(req.get("blocking", True) is not False and state.is_loading for req, state in settled)

        declared_state = effective.get("state")
        state_pending = isinstance(declared_state, Mapping) and not self.session.states.has(node_id)
        if state_pending:
            # Visible on the next pass; this one shows the placeholder.
            self.session.states.initialize(node_id, declared_state)
            self.materialized_state = True

        context = self._node_context(node_id, parent_context, own_data)
        depends_on_data = references_page_data(effective.get("params"))
        loading = requirement_loading or state_pending or (self.globals.data_loading and depends_on_data)

        resolved = ResolvedNode(
            id=node_id,
            type=str(effective.get("type") or ""),
            name=effective.get("name"),
            order=_order_key(effective),
            form_scope_id=form_scope_id,
            state=self.session.states.get(node_id),
            node_data=own_data,
            requirement_errors=requirement_errors,
            event_handlers=effective.get("eventHandlers") or {},
        )

        if loading:
            resolved.loading = True
            resolved.placeholder = self._placeholder(effective, parent_context, form_scope_id, placeholder_chain)
            return resolved

        if self.globals.data_error and depends_on_data:
            resolved.error = {
                "code": "PW-1201",
                "message": f"Error loading content for {effective.get('name') or node_id}.",
            }
            return resolved

        if not evaluate_visibility(effective.get("visibility"), context):
            return None

        resolved.params = resolve_data_bindings_in_object(effective.get("params") or {}, context)
        resolved.attributes = {
            key: resolve_data_bindings_in_object(effective[key], context) for key in PASSTHROUGH_KEYS if key in effective
        }

        handler = self.registry.handler_for(resolved.type)
        if handler is None:
            self._mark_unsupported(resolved, "node", resolved.type)
        else:
            handler(self, effective, context, resolved)
        self.bindings[node_id] = NodeBinding(effective=effective, context=context, form_scope_id=resolved.form_scope_id)
        return resolved

    def _node_context(self, node_id: str, parent_context: Mapping[str, Any], own_data: Dict[str, Any]) -> Dict[str, Any]:
        parent_state = parent_context.get("state") or {}
        own_state = self.session.states.get(node_id)
        if own_state is None:
            # Repeated items see the repeater container's state.
            own_state = parent_state if "repeater" in parent_context else {}
        context = dict(parent_context)
        context["nodeData"] = {**(parent_context.get("nodeData") or {}), **own_data}
        context["state"] = own_state
        context["parentState"] = parent_state
        context["states"] = self.session.states.view()
        return context

    def _placeholder(
        self,
        effective: Mapping[str, Any],
        parent_context: Mapping[str, Any],
        form_scope_id: Optional[str],
        chain: Tuple[str, ...],
    ) -> Optional[Dict[str, Any]]:
        behavior = effective.get("loadingBehavior") or {}
        kind = behavior.get("placeholderType")
        if kind == "skeleton":
            return {"type": "skeleton", "config": behavior.get("skeletonConfig") or {}}
        if kind == "spinner":
            return {"type": "spinner", "color": behavior.get("spinnerColor")}
        if kind == "custom_node":
            target_id = behavior.get("customPlaceholderNodeId")
            target = self.document.find(str(target_id)) if target_id else None
            if target is None:
                log.warning("Placeholder node '%s' for %s not found; using spinner", target_id, effective.get("id"))
                return {"type": "spinner", "color": behavior.get("spinnerColor")}
            next_chain = chain + (str(effective.get("id")),)
            if target_id in next_chain:
                raise PlaceholderCycleError(
                    f"Node '{effective.get('id')}' uses '{target_id}' as a placeholder, which loops back",
                    chain=list(next_chain) + [str(target_id)],
                )
            if len(next_chain) >= self.config.placeholder_max_depth:
                raise PlaceholderCycleError(
                    f"Placeholder nesting deeper than {self.config.placeholder_max_depth} at '{effective.get('id')}'",
                    chain=list(next_chain),
                )
            return {
                "type": "custom_node",
                "nodeId": target_id,
                "node": self.resolve_node(target, parent_context, form_scope_id, next_chain),
            }
        return None

    def _mark_unsupported(self, resolved: ResolvedNode, category: str, type_name: Optional[str]) -> None:
        label = type_name or "(missing)"
        self.metrics.record_unsupported_node(f"{category}:{label}")
        log.warning("Unsupported %s type '%s' on node %s", category, label, resolved.id)
        resolved.error = {"code": "PW-1102", "message": f"Unsupported {category} type '{label}'"}

    def _error_node(self, node: Mapping[str, Any], code: str, message: str) -> ResolvedNode:
        return ResolvedNode(
            id=str(node.get("id")),
            type=str(node.get("type") or ""),
            name=node.get("name"),
            order=_order_key(node),
            error={"code": code, "message": message},
        )


def resolve_section(
    resolver: NodeResolver, effective: Dict[str, Any], context: Dict[str, Any], resolved: ResolvedNode
) -> None:
    if effective.get("isFormContext"):
        resolved.form_scope_id = resolved.id
        form = resolver.session.form(resolved.id)
        initial = resolved.params.get("initialValues")
        if isinstance(initial, Mapping) and not form.initial_values:
            form.initial_values = dict(initial)
            form.values = {**dict(initial), **form.values}

    repeater = effective.get("repeater")
    if isinstance(repeater, Mapping):
        expansion = expand_repeater(resolved.id, repeater, context)
        if expansion.diagnostic:
            resolved.diagnostics.append(expansion.diagnostic)
        if expansion.is_collection or not effective.get("children"):
            container_state = resolver.session.states.get(resolved.id)
            if container_state is None:
                container_state = context.get("state") or {}
            for child in expansion.children:
                item_context = dict(context)
                item_context.update(
                    {
                        "state": container_state,
                        "item": child.item,
                        "index": child.index,
                        "repeater": {"nodeId": child.node["id"], "parentId": resolved.id},
                    }
                )
                result = resolver.resolve_node(child.node, item_context, resolved.form_scope_id)
                if result is not None:
                    result.repeater = {"nodeId": child.node["id"], "parentId": resolved.id, "index": child.index}
                    resolved.children.append(result)
            return

    for child in sorted(effective.get("children") or [], key=_order_key):
        result = resolver.resolve_node(child, context, resolved.form_scope_id)
        if result is not None:
            resolved.children.append(result)


def resolve_atom(
    resolver: NodeResolver, effective: Dict[str, Any], context: Dict[str, Any], resolved: ResolvedNode
) -> None:
    resolved.kind = effective.get("atomType")
    if not resolver.registry.knows_atom(resolved.kind):
        resolver._mark_unsupported(resolved, "atom", resolved.kind)
        return
    field_name = resolved.params.get("name")
    if resolved.kind == "Input" and resolved.form_scope_id and field_name:
        values = resolver.session.form_values(resolved.form_scope_id)
        if field_name in values:
            resolved.params["value"] = values[field_name]
        elif "value" not in resolved.params and "defaultValue" in resolved.params:
            resolved.params["value"] = resolved.params["defaultValue"]


def resolve_component(
    resolver: NodeResolver, effective: Dict[str, Any], context: Dict[str, Any], resolved: ResolvedNode
) -> None:
    resolved.kind = effective.get("componentType")
    if not resolver.registry.knows_component(resolved.kind):
        resolver._mark_unsupported(resolved, "component", resolved.kind)


def resolve_codeblock(
    resolver: NodeResolver, effective: Dict[str, Any], context: Dict[str, Any], resolved: ResolvedNode
) -> None:
    resolved.kind = effective.get("language") or resolved.params.get("language") or "html"


def build_default_registry() -> NodeTypeRegistry:
    registry = NodeTypeRegistry()
    registry.register_node_handler("section", resolve_section)
    registry.register_node_handler("atom", resolve_atom)
    registry.register_node_handler("component", resolve_component)
    registry.register_node_handler("codeblock", resolve_codeblock)
    return registry
