from fastapi.testclient import TestClient

from fakes import FakeHttp, FakeTransport
from pagewright.config import RuntimeConfig
from pagewright.data import HttpResponse
from pagewright.observability.metrics import MetricsRegistry
from pagewright.server import create_app


PAGE = {
    "id": "product",
    "name": "Product",
    "route": "/products/[slug]",
    "nodes": [
        {
            "id": "title",
            "type": "atom",
            "atomType": "Text",
            "params": {"content": "{{ data.product.name }} ({{ page.slug }})"},
            "responsiveOverrides": {"mobile": {"params": {"size": "sm"}}},
        },
        {
            "id": "buy",
            "type": "atom",
            "atomType": "Button",
            "order": 1,
            "params": {"label": "Buy"},
        },
    ],
}


def _client(**kwargs):
    kwargs.setdefault("config", RuntimeConfig())
    kwargs.setdefault("http", FakeHttp())
    kwargs.setdefault("metrics", MetricsRegistry())
    return TestClient(create_app(**kwargs))


def test_server_routes_present():
    app = create_app(config=RuntimeConfig(), http=FakeHttp())
    paths = app.openapi()["paths"]
    for path, method in {
        ("/health", "GET"),
        ("/api/version", "GET"),
        ("/api/metrics", "GET"),
        ("/api/pages/resolve", "POST"),
        ("/api/actions/run", "POST"),
    }:
        assert path in paths, f"{path} missing from the OpenAPI schema"
        assert method.lower() in paths[path]


def test_health():
    response = _client().get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_resolve_page_with_data_and_breakpoint():
    response = _client().post(
        "/api/pages/resolve",
        json={
            "page": PAGE,
            "data": {"product": {"name": "Lamp"}},
            "viewportWidth": 375,
            "routeParams": {"slug": "lamp"},
        },
    )
    assert response.status_code == 200
    body = response.json()
    assert body["breakpoint"] == "mobile"
    title = body["nodes"][0]
    assert title["params"] == {"content": "Lamp (lamp)", "size": "sm"}
    assert [node["id"] for node in body["nodes"]] == ["title", "buy"]


def test_resolve_page_through_query_transport():
    page = {**PAGE, "dataSource": {"type": "rql", "queries": {"product": {"contractId": "getProduct"}}}}
    transport = FakeTransport({"data": {"product": {"name": "Desk"}}})
    response = _client(transport=transport).post("/api/pages/resolve", json={"page": page, "routeParams": {"slug": "desk"}})
    assert response.status_code == 200
    assert response.json()["nodes"][0]["params"]["content"] == "Desk (desk)"


def test_invalid_document_is_rejected():
    bad = {"nodes": [{"id": "a", "type": "atom"}, {"id": "a", "type": "atom"}]}
    response = _client().post("/api/pages/resolve", json={"page": bad})
    assert response.status_code == 400
    assert "Duplicate node ids" in response.json()["detail"]["message"]

    response = _client().post("/api/pages/resolve", json={"page": {"nodes": [{"type": "atom"}]}})
    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "PW-1101"


def test_run_actions_reports_trace_and_stores():
    http = FakeHttp({("POST", "/api/orders"): HttpResponse(200, {"orderId": 42})})
    response = _client(http=http).post(
        "/api/actions/run",
        json={
            "page": PAGE,
            "nodeId": "buy",
            "formData": {"qty": 2},
            "actions": [
                {"id": "cart", "type": "addItemToCart", "params": {"productId": "p1", "quantity": "{{ formData.qty }}"}},
                {
                    "id": "order",
                    "type": "submitData",
                    "params": {"endpoint": "/api/orders", "body": {"qty": "{{ formData.qty }}"}, "resultKey": "order"},
                    "onSuccess": [
                        {"id": "thanks", "type": "updateState", "params": {"updates": {"orderId": "{{ actionResults.order.orderId }}"}}},
                        {"id": "go", "type": "navigate", "params": {"url": "https://pay.example/checkout", "newTab": True}},
                    ],
                },
                {"id": "hide", "type": "closeModal", "params": {"modalNodeId": "title"}},
            ],
        },
    )
    assert response.status_code == 200
    body = response.json()
    assert [(step["id"], step["status"]) for step in body["trace"]["steps"]] == [
        ("cart", "success"),
        ("order", "success"),
        ("thanks", "success"),
        ("go", "success"),
        ("hide", "success"),
    ]
    assert body["states"]["buy"] == {"orderId": 42}
    assert body["overrides"]["title"] == {"visibility": {"hidden": True}}
    assert body["calls"]["cart"][0]["quantity"] == 2
    assert body["calls"]["navigations"] == [{"url": "https://pay.example/checkout", "newTab": True}]
    assert body["trace"]["actionResults"] == {"order": {"orderId": 42}}
    assert http.calls[0]["json"] == {"qty": 2}


def test_metrics_endpoint():
    metrics = MetricsRegistry()
    client = _client(metrics=metrics)
    client.post("/api/actions/run", json={"page": PAGE, "actions": [{"type": "updateState", "params": {}}]})
    snapshot = client.get("/api/metrics").json()["metrics"]
    assert snapshot["actions"] == {"updateState:success": 1}
