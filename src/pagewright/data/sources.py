"""
Fetchers for data requirement sources.

Supported kinds: `rql` (batched query transport), `apiEndpoint` (GET with
variables as query string), `graphQLQuery`, and `mockData`. `cmsCollection`
exists in documents but has no backend yet and always fails.
"""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional
from urllib.parse import urlencode

from ..config import RuntimeConfig
from ..errors import DataSourceError, UnsupportedSourceError
from ..expressions.paths import get_path
from ..expressions.values import js_string
from .transport import HttpClient, QueryTransport

log = logging.getLogger("pagewright.data")


def format_query_errors(errors: Any) -> str:
    parts = []
    for err in errors or []:
        if isinstance(err, Mapping):
            parts.append(f'QueryKey "{err.get("queryKey")}": {err.get("message")} ({err.get("code")})')
        else:
            parts.append(str(err))
    return "; ".join(parts)


def _mock_payload(source: Mapping[str, Any]) -> Any:
    query = source.get("query")
    query_text = query if isinstance(query, str) else json.dumps(query or "")
    if "relatedProducts" in query_text:
        return [
            {"id": "rel-1", "name": "Related Widget A", "price": 24.99, "categoryId": "test-category-001"},
            {"id": "rel-2", "name": "Related Widget B", "price": 34.99, "categoryId": "test-category-001"},
            {"id": "rel-3", "name": "Related Widget C", "price": 19.99, "categoryId": "test-category-001"},
        ]
    if "userReviews" in query_text:
        return [
            {"id": 1, "rating": 5, "comment": "Excellent product! Highly recommended.", "author": "John D.", "date": "2024-01-15"},
            {"id": 2, "rating": 4, "comment": "Very satisfied with the quality.", "author": "Jane S.", "date": "2024-01-10"},
            {"id": 3, "rating": 5, "comment": "Perfect for my needs!", "author": "Mike R.", "date": "2024-01-08"},
        ]
    if "reviewSummary" in query_text:
        return {
            "averageRating": 4.7,
            "totalReviews": 23,
            "ratingDistribution": {"5": 15, "4": 6, "3": 2, "2": 0, "1": 0},
        }
    if "productAnalytics" in query_text:
        return {
            "views": 1547,
            "purchases": 89,
            "conversionRate": 0.0575,
            "recommendation": "This product is trending! Consider bundling with related items for better value.",
            "lastUpdated": datetime.now(timezone.utc).isoformat(),
        }
    return {"message": f"Mock data for: {query_text}", "variables": source.get("variables")}


class SourceFetcher:
    def __init__(
        self,
        config: RuntimeConfig,
        http: Optional[HttpClient] = None,
        transport: Optional[QueryTransport] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.config = config
        self.http = http
        self.transport = transport
        self._sleep = sleep
        self._handlers: Dict[str, Callable[[Mapping[str, Any]], Awaitable[Any]]] = {
            "rql": self._fetch_rql,
            "apiEndpoint": self._fetch_api_endpoint,
            "graphQLQuery": self._fetch_graphql,
            "mockData": self._fetch_mock,
            "cmsCollection": self._fetch_cms_collection,
        }

    async def fetch(self, source: Mapping[str, Any]) -> Any:
        source_type = str(source.get("type") or "")
        handler = self._handlers.get(source_type)
        if handler is None:
            raise UnsupportedSourceError(f"Unsupported data source type: {source_type}", source_type=source_type)
        log.debug("Fetching %s source", source_type)
        return await handler(source)

    def _require_http(self, source_type: str) -> HttpClient:
        if self.http is None:
            raise DataSourceError(f"No HTTP client configured for '{source_type}' sources", source_type=source_type)
        return self.http

    async def _fetch_rql(self, source: Mapping[str, Any]) -> Any:
        if self.transport is None:
            return {}
        result = await self.transport.execute(source.get("queries") or {})
        errors = result.get("errors")
        if errors:
            raise DataSourceError(f"RQL errors: {format_query_errors(errors)}", source_type="rql")
        return result.get("data")

    async def _fetch_api_endpoint(self, source: Mapping[str, Any]) -> Any:
        http = self._require_http("apiEndpoint")
        url = str(source.get("query") or "")
        if not url:
            raise DataSourceError("apiEndpoint source has no URL in 'query'", source_type="apiEndpoint")
        variables = source.get("variables") or {}
        if variables:
            encoded = urlencode({key: js_string(value) for key, value in variables.items()})
            url = f"{url}{'&' if '?' in url else '?'}{encoded}"
        response = await http.request("GET", url)
        if not response.ok:
            raise DataSourceError(f"HTTP error! status: {response.status}", source_type="apiEndpoint")
        return self._extract(response.payload, source.get("dataPath"))

    async def _fetch_graphql(self, source: Mapping[str, Any]) -> Any:
        http = self._require_http("graphQLQuery")
        body = {"query": source.get("query"), "variables": dict(source.get("variables") or {})}
        response = await http.request("POST", self.config.graphql_endpoint, json_body=body)
        if not response.ok:
            raise DataSourceError(f"GraphQL HTTP error! status: {response.status}", source_type="graphQLQuery")
        payload = response.payload if isinstance(response.payload, Mapping) else {}
        if payload.get("errors"):
            messages = ", ".join(
                str(err.get("message")) if isinstance(err, Mapping) else str(err) for err in payload["errors"]
            )
            raise DataSourceError(f"GraphQL errors: {messages}", source_type="graphQLQuery")
        return self._extract(payload.get("data"), source.get("dataPath"))

    async def _fetch_mock(self, source: Mapping[str, Any]) -> Any:
        if self.config.mock_delay_seconds:
            await self._sleep(self.config.mock_delay_seconds)
        return _mock_payload(source)

    async def _fetch_cms_collection(self, source: Mapping[str, Any]) -> Any:
        raise UnsupportedSourceError(
            "Data source type 'cmsCollection' is not yet implemented.", source_type="cmsCollection"
        )

    @staticmethod
    def _extract(payload: Any, data_path: Any) -> Any:
        if not data_path:
            return payload
        return get_path(payload, str(data_path))
