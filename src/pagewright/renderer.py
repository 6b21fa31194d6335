"""
Page renderer: wires the document, session stores, page data, requirement
orchestrator, resolution pipeline and action engine together.

`resolve()` is one synchronous snapshot of the page. `render()` keeps
resolving, awaiting fetches between passes, until nothing is pending.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from dataclasses import replace
from typing import Any, Awaitable, Callable, Dict, List, Optional

from .actions import ActionEngine, ActionRunResult, ActionRuntime
from .actions.handlers import CartCollaborator, NavigationCollaborator
from .config import RuntimeConfig
from .data.cache import RequirementCache
from .data.orchestrator import DataRequirementOrchestrator
from .data.page_data import PageDataSource, build_page_info, build_user_info
from .data.sources import SourceFetcher
from .data.transport import HttpClient, QueryTransport, build_query_transport
from .document.loader import PageDocument, load_page
from .expressions.templates import resolve_data_bindings_in_string
from .observability.metrics import MetricsRegistry, default_metrics
from .resolution.environment import Environment
from .resolution.pipeline import NodeResolver, PageGlobals, ResolvedNode
from .resolution.registry import NodeTypeRegistry
from .state.stores import PageSession

log = logging.getLogger("pagewright.renderer")


class PageRenderer:
    def __init__(
        self,
        page: PageDocument | Mapping[str, Any],
        *,
        session: PageSession | None = None,
        environment: Environment | None = None,
        config: RuntimeConfig | None = None,
        http: HttpClient | None = None,
        transport: QueryTransport | None = None,
        cart: CartCollaborator | None = None,
        navigator: NavigationCollaborator | None = None,
        user: Optional[Mapping[str, Any]] = None,
        site: Optional[Mapping[str, Any]] = None,
        site_info: Optional[Mapping[str, Any]] = None,
        route_params: Optional[Mapping[str, str]] = None,
        initial_data: Any = None,
        registry: NodeTypeRegistry | None = None,
        metrics: MetricsRegistry | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.document = page if isinstance(page, PageDocument) else load_page(page)
        self.config = config or RuntimeConfig()
        self.session = session or PageSession()
        self.environment = environment or Environment(locale=self.config.default_locale)
        self.metrics = metrics or default_metrics
        self._sleep = sleep
        if transport is None and http is not None:
            transport = build_query_transport(self.config, http)
        fetcher = SourceFetcher(self.config, http=http, transport=transport, sleep=sleep)
        self.orchestrator = DataRequirementOrchestrator(fetcher, RequirementCache(), self.metrics)
        self.page_data = PageDataSource(
            self.document.data_source,
            build_page_info(self.document.info(), route_params),
            build_user_info(user),
            transport=transport,
            fetcher=fetcher,
            initial_data=initial_data,
        )
        self.site = dict(site or {})
        self.site_info = dict(site_info or {})
        self.resolver = NodeResolver(
            self.document,
            self.session,
            self.orchestrator,
            environment=self.environment,
            registry=registry,
            config=self.config,
            metrics=self.metrics,
        )
        self.runtime = ActionRuntime(
            session=self.session,
            config=self.config,
            http=http,
            cart=cart,
            navigator=navigator,
            page_data=self.page_data,
            orchestrator=self.orchestrator,
        )
        self.tree: List[ResolvedNode] = []

    def globals(self) -> PageGlobals:
        return PageGlobals(
            page=self.page_data.page_info,
            site=self.site,
            site_info=self.site_info,
            user=self.page_data.user_info,
            data=self.page_data.data,
            data_loading=self.page_data.is_loading,
            data_error=self.page_data.error,
        )

    def resolve(self) -> List[ResolvedNode]:
        self.tree = self.resolver.resolve_page(self.globals())
        self.orchestrator.retain_only(self.resolver.live_ids)
        return self.tree

    def is_settled(self) -> bool:
        return not (
            self.page_data.is_loading or self.orchestrator.has_pending() or self.resolver.materialized_state
        )

    async def render(self) -> List[ResolvedNode]:
        """Resolve until every fetch has settled, capped at `max_render_passes`."""

        if self.page_data.is_loading:
            await self.page_data.load()
        for attempt in range(self.config.max_render_passes):
            tree = self.resolve()
            if self.is_settled():
                return tree
            log.debug("Render pass %s left work pending; awaiting fetches", attempt + 1)
            if self.page_data.is_loading:
                await self.page_data.load()
            await self.orchestrator.flush()
        log.warning(
            "Page %s still pending after %s render passes", self.document.id, self.config.max_render_passes
        )
        return self.tree

    def find(self, node_id: str) -> Optional[ResolvedNode]:
        for root in self.tree:
            found = root.find(node_id)
            if found is not None:
                return found
        return None

    async def dispatch(self, node_id: str, event: str, payload: Any = None) -> ActionRunResult:
        """
        Fire a node's `eventHandlers[event]` with the context the node was
        last resolved with. An `onChange` on an Input first stores the new
        value in its form.
        """

        binding = self.resolver.bindings.get(node_id)
        if binding is None:
            self.resolve()
            binding = self.resolver.bindings.get(node_id)
        if binding is None:
            log.warning("Cannot dispatch '%s': node %s is not on the page", event, node_id)
            return ActionRunResult(triggering_node_id=node_id)

        effective = binding.effective
        if event == "onChange" and effective.get("atomType") == "Input" and binding.form_scope_id:
            field_name = (effective.get("params") or {}).get("name")
            if isinstance(field_name, str):
                field_name = resolve_data_bindings_in_string(field_name, binding.context)
            if field_name:
                value = payload.get("value") if isinstance(payload, Mapping) else payload
                self.session.form(binding.form_scope_id).set_value(str(field_name), value)

        handlers = (effective.get("eventHandlers") or {}).get(event) or []
        return await self.run_actions(
            handlers, node_id, {"event": payload}, base_context=binding.context, form_scope_id=binding.form_scope_id
        )

    async def run_actions(
        self,
        actions: Any,
        node_id: Optional[str] = None,
        aux_context: Optional[Mapping[str, Any]] = None,
        *,
        base_context: Optional[Mapping[str, Any]] = None,
        form_scope_id: Optional[str] = None,
    ) -> ActionRunResult:
        runtime = replace(self.runtime, form_scope_id=form_scope_id)
        engine = ActionEngine(runtime, metrics=self.metrics, sleep=self._sleep)
        if base_context is None:
            self.resolver.globals = self.globals()
            base_context = self.resolver.root_context()
        return await engine.run(actions, node_id, aux_context, base_context=base_context)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "page": self.document.info(),
            "breakpoint": self.environment.breakpoint,
            "locale": self.environment.locale,
            "dataError": self.page_data.error,
            "nodes": [node.to_dict() for node in self.tree],
        }
