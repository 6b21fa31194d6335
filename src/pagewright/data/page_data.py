"""
Page-level data (`data` scope) loaded from the document's `dataSource`.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional

from ..errors import DataSourceError
from ..expressions.templates import resolve_data_bindings_in_object
from .sources import SourceFetcher, format_query_errors
from .transport import QueryTransport

log = logging.getLogger("pagewright.data")


def build_page_info(page: Mapping[str, Any], route_params: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    params = dict(route_params or {})
    info: Dict[str, Any] = {
        "id": page.get("id"),
        "name": page.get("name"),
        "route": page.get("route"),
        "routeParams": params,
        "slugs": params,
    }
    if params:
        first_name = next(iter(params))
        info["slugName"] = first_name
        info["slug"] = params[first_name]
    return info


def build_user_info(user: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    if user is not None and "isAuthenticated" in user:
        return dict(user)
    return {"isAuthenticated": bool(user), "profile": dict(user) if user else None}


class PageDataSource:
    """
    Holds `data`, `is_loading` and `error` for the page. A page without a
    data source is never loading; static content is available immediately.
    """

    def __init__(
        self,
        data_source: Optional[Mapping[str, Any]],
        page_info: Mapping[str, Any],
        user_info: Mapping[str, Any],
        transport: Optional[QueryTransport] = None,
        fetcher: Optional[SourceFetcher] = None,
        initial_data: Any = None,
    ) -> None:
        self.data_source = data_source
        self.page_info = dict(page_info)
        self.user_info = dict(user_info)
        self.transport = transport
        self.fetcher = fetcher
        self.data: Any = initial_data
        self.error: Optional[str] = None
        self.load_count = 0
        source_type = (data_source or {}).get("type")
        if initial_data is not None or not data_source:
            self.is_loading = False
        elif source_type == "staticContent":
            self.data = (data_source or {}).get("content")
            self.is_loading = False
        else:
            self.is_loading = True

    def templating_context(self) -> Dict[str, Any]:
        return {
            "page": self.page_info,
            "user": self.user_info,
            "route": self.page_info.get("routeParams") or {},
        }

    def resolved_queries(self) -> Dict[str, Any]:
        source_params = (self.data_source or {}).get("sourceParams") or {}
        queries = source_params.get("queries") or (self.data_source or {}).get("queries") or {}
        context = self.templating_context()
        resolved: Dict[str, Any] = {}
        for name, query in queries.items():
            entry = dict(query)
            if query.get("params") is not None:
                entry["params"] = resolve_data_bindings_in_object(query["params"], context)
            resolved[name] = entry
        return resolved

    async def load(self) -> Any:
        self.is_loading = True
        self.error = None
        self.load_count += 1
        source = self.data_source
        try:
            if not source:
                self.data = None
            elif source.get("type") == "rql":
                self.data = await self._load_rql()
            elif source.get("type") == "staticContent":
                self.data = source.get("content")
            elif source.get("type") == "mockData" and self.fetcher is not None:
                self.data = await self.fetcher.fetch(source)
            else:
                log.warning("Page data source type '%s' is not loadable; page data left empty", source.get("type"))
                self.data = None
        except Exception as exc:  # noqa: BLE001 - page renders with error placeholders instead
            log.error("Page data load failed: %s", exc)
            self.error = str(exc) or type(exc).__name__
            self.data = None
        finally:
            self.is_loading = False
        return self.data

    async def _load_rql(self) -> Any:
        if self.transport is None:
            return {}
        result = await self.transport.execute(self.resolved_queries())
        if result.get("errors"):
            raise DataSourceError(f"RQL errors: {format_query_errors(result['errors'])}", source_type="rql")
        return result.get("data")

    def mark_stale(self) -> None:
        """Flag for reload; the next render pass awaits `load()` again."""

        self.is_loading = True

    async def refetch(self) -> Any:
        self.mark_stale()
        return await self.load()
