import asyncio

import pytest

from fakes import FakeHttp, FakeTransport
from pagewright.config import RuntimeConfig
from pagewright.data import (
    DataRequirementOrchestrator,
    HttpResponse,
    RequirementCache,
    SourceFetcher,
    requirement_cache_key,
    requirement_state_key,
)
from pagewright.errors import DataSourceError, TransportError, UnsupportedSourceError
from pagewright.observability.metrics import MetricsRegistry


class Clock:
    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


RQL_REQUIREMENT = {
    "key": "related",
    "source": {"type": "rql", "queries": {"related": {"contractId": "relatedProducts"}}},
    "defaultValue": [],
}


def _orchestrator(transport=None, clock=None, http=None):
    metrics = MetricsRegistry()
    fetcher = SourceFetcher(RuntimeConfig(), http=http, transport=transport)
    cache = RequirementCache(clock) if clock else RequirementCache()
    return DataRequirementOrchestrator(fetcher, cache, metrics), metrics


def test_cache_key_is_stable_and_source_sensitive():
    a = {"type": "apiEndpoint", "query": "/x", "variables": {"b": 1, "a": 2}}
    b = {"type": "apiEndpoint", "query": "/x", "variables": {"a": 2, "b": 1}}
    c = {"type": "apiEndpoint", "query": "/x", "variables": {"a": 3}}
    assert requirement_cache_key(a) == requirement_cache_key(b)
    assert requirement_cache_key(a) != requirement_cache_key(c)
    assert requirement_cache_key(a).startswith("req_")
    assert requirement_state_key("node", "reviews") == "node_reviews"


def test_miss_then_flush_populates_state():
    transport = FakeTransport({"data": {"related": [{"id": 1}]}})
    orchestrator, metrics = _orchestrator(transport)
    [(req, state)] = orchestrator.ensure("grid", [RQL_REQUIREMENT])
    assert state.is_loading is True
    assert state.data == []
    assert orchestrator.has_pending()

    asyncio.run(orchestrator.flush())

    settled = orchestrator.get_state("grid", "related")
    assert settled.is_loading is False
    assert settled.data == {"related": [{"id": 1}]}
    assert metrics.get_requirement_cache_misses() == {"rql": 1}
    assert not orchestrator.has_pending()


def test_in_flight_fetches_are_shared_between_nodes():
    transport = FakeTransport({"data": {"related": []}})
    orchestrator, _ = _orchestrator(transport)
    orchestrator.ensure("a", [RQL_REQUIREMENT])
    orchestrator.ensure("b", [RQL_REQUIREMENT])
    asyncio.run(orchestrator.flush())
    assert len(transport.calls) == 1
    assert orchestrator.get_state("a", "related").data == {"related": []}
    assert orchestrator.get_state("b", "related").data == {"related": []}


def test_cache_hit_for_a_new_node_skips_fetch():
    transport = FakeTransport({"data": {"related": []}})
    orchestrator, metrics = _orchestrator(transport)
    orchestrator.ensure("a", [RQL_REQUIREMENT])
    asyncio.run(orchestrator.flush())
    [(_, state)] = orchestrator.ensure("b", [RQL_REQUIREMENT])
    assert state.is_loading is False
    assert len(transport.calls) == 1
    assert metrics.get_requirement_cache_hits() == {"rql": 1}


def test_failure_uses_default_value_and_caches_the_error():
    transport = FakeTransport(error=TransportError("boom"))
    orchestrator, metrics = _orchestrator(transport)
    orchestrator.ensure("grid", [RQL_REQUIREMENT])
    asyncio.run(orchestrator.flush())
    state = orchestrator.get_state("grid", "related")
    assert state.data == []
    assert "boom" in state.error
    assert metrics.get_fetch_failures() == {"rql": 1}

    orchestrator.ensure("grid", [RQL_REQUIREMENT])
    assert not orchestrator.has_pending()
    assert len(transport.calls) == 1

    orchestrator.invalidate_errors()
    orchestrator.ensure("grid", [RQL_REQUIREMENT])
    assert orchestrator.has_pending()


def test_query_errors_fail_the_requirement():
    transport = FakeTransport({"errors": [{"queryKey": "related", "message": "bad", "code": "E1"}]})
    orchestrator, _ = _orchestrator(transport)
    orchestrator.ensure("grid", [RQL_REQUIREMENT])
    asyncio.run(orchestrator.flush())
    state = orchestrator.get_state("grid", "related")
    assert 'QueryKey "related": bad (E1)' in state.error
    assert state.data == []


def test_ttl_expiry_refetches():
    clock = Clock()
    transport = FakeTransport({"data": {"n": 1}})
    orchestrator, _ = _orchestrator(transport, clock)
    requirement = {**RQL_REQUIREMENT, "cacheDurationMs": 1000}
    orchestrator.ensure("grid", [requirement])
    asyncio.run(orchestrator.flush())

    clock.now += 0.5
    orchestrator.ensure("grid", [requirement])
    assert not orchestrator.has_pending()

    clock.now += 1.0
    [(_, state)] = orchestrator.ensure("grid", [requirement])
    assert orchestrator.has_pending()
    # previous value stays visible while the refetch runs
    assert state.data == {"n": 1}
    assert state.is_loading is True


def test_released_node_ignores_late_results():
    transport = FakeTransport({"data": {"n": 1}})
    orchestrator, _ = _orchestrator(transport)
    orchestrator.ensure("gone", [RQL_REQUIREMENT])
    orchestrator.release("gone")
    asyncio.run(orchestrator.flush())
    assert orchestrator.get_state("gone", "related") is None


def test_retain_only_releases_missing_nodes():
    orchestrator, _ = _orchestrator(FakeTransport())
    orchestrator.ensure("kept", [RQL_REQUIREMENT])
    orchestrator.ensure("dropped", [{**RQL_REQUIREMENT, "key": "other"}])
    orchestrator.retain_only({"kept"})
    asyncio.run(orchestrator.flush())
    assert orchestrator.get_state("kept", "related") is not None
    assert orchestrator.get_state("dropped", "other") is None


def test_fetcher_rql_without_transport_returns_empty_object():
    fetcher = SourceFetcher(RuntimeConfig())
    assert asyncio.run(fetcher.fetch({"type": "rql", "queries": {}})) == {}


def test_fetcher_api_endpoint_encodes_variables_and_extracts_path():
    http = FakeHttp({("GET", "/api/reviews?limit=3&sort=new"): HttpResponse(200, {"result": {"items": [1, 2]}})})
    fetcher = SourceFetcher(RuntimeConfig(), http=http)
    source = {"type": "apiEndpoint", "query": "/api/reviews", "variables": {"limit": 3, "sort": "new"}, "dataPath": "result.items"}
    assert asyncio.run(fetcher.fetch(source)) == [1, 2]


def test_fetcher_api_endpoint_http_error():
    fetcher = SourceFetcher(RuntimeConfig(), http=FakeHttp())
    with pytest.raises(DataSourceError) as excinfo:
        asyncio.run(fetcher.fetch({"type": "apiEndpoint", "query": "/missing"}))
    assert "404" in str(excinfo.value)


def test_fetcher_graphql_errors_fail():
    http = FakeHttp({("POST", "/api/graphql"): HttpResponse(200, {"errors": [{"message": "nope"}]})})
    fetcher = SourceFetcher(RuntimeConfig(), http=http)
    with pytest.raises(DataSourceError):
        asyncio.run(fetcher.fetch({"type": "graphQLQuery", "query": "{ shop { name } }"}))
    assert http.calls[0]["json"] == {"query": "{ shop { name } }", "variables": {}}


def test_fetcher_graphql_data_path():
    http = FakeHttp({("POST", "/api/graphql"): HttpResponse(200, {"data": {"shop": {"name": "Corner"}}})})
    fetcher = SourceFetcher(RuntimeConfig(), http=http)
    source = {"type": "graphQLQuery", "query": "{ shop { name } }", "dataPath": "shop.name"}
    assert asyncio.run(fetcher.fetch(source)) == "Corner"


def test_fetcher_mock_data():
    fetcher = SourceFetcher(RuntimeConfig())
    reviews = asyncio.run(fetcher.fetch({"type": "mockData", "query": "userReviews"}))
    assert len(reviews) == 3
    summary = asyncio.run(fetcher.fetch({"type": "mockData", "query": "reviewSummary"}))
    assert summary["totalReviews"] == 23


def test_fetcher_unsupported_sources():
    fetcher = SourceFetcher(RuntimeConfig())
    with pytest.raises(UnsupportedSourceError):
        asyncio.run(fetcher.fetch({"type": "cmsCollection"}))
    with pytest.raises(UnsupportedSourceError):
        asyncio.run(fetcher.fetch({"type": "carrierPigeon"}))


def test_injected_empty_cache_is_kept():
    cache = RequirementCache(lambda: 100.0)
    fetcher = SourceFetcher(RuntimeConfig())
    orchestrator = DataRequirementOrchestrator(fetcher, cache)
    assert orchestrator.cache is cache
    assert orchestrator.cache.now() == 100.0
