import asyncio

from fakes import FakeTransport
from pagewright.data import PageDataSource, build_page_info, build_user_info
from pagewright.errors import TransportError


PAGE = {"id": "product", "name": "Product", "route": "/products/[slug]"}


def test_page_info_exposes_slug():
    info = build_page_info(PAGE, {"slug": "lamp"})
    assert info["slug"] == "lamp"
    assert info["slugName"] == "slug"
    assert info["routeParams"] == {"slug": "lamp"}


def test_user_info():
    assert build_user_info(None) == {"isAuthenticated": False, "profile": None}
    assert build_user_info({"id": 1})["isAuthenticated"] is True


def test_static_content_is_ready_immediately():
    source = PageDataSource({"type": "staticContent", "content": {"title": "Hi"}}, build_page_info(PAGE), build_user_info(None))
    assert source.is_loading is False
    assert source.data == {"title": "Hi"}


def test_no_data_source_is_never_loading():
    source = PageDataSource(None, build_page_info(PAGE), build_user_info(None))
    assert source.is_loading is False
    assert source.data is None


def test_rql_queries_are_templated_against_page_user_and_route():
    transport = FakeTransport({"data": {"product": {"name": "Lamp"}}})
    data_source = {
        "type": "rql",
        "sourceParams": {
            "queries": {"product": {"contractId": "getProduct", "params": {"slug": "{{ route.slug }}", "uid": "{{ user.profile.id }}"}}}
        },
    }
    source = PageDataSource(data_source, build_page_info(PAGE, {"slug": "lamp"}), build_user_info({"id": 9}), transport=transport)
    assert source.is_loading is True
    data = asyncio.run(source.load())
    assert data == {"product": {"name": "Lamp"}}
    assert source.is_loading is False
    assert transport.calls[0]["product"]["params"] == {"slug": "lamp", "uid": 9}


def test_load_failure_sets_error():
    transport = FakeTransport(error=TransportError("down"))
    source = PageDataSource({"type": "rql", "queries": {}}, build_page_info(PAGE), build_user_info(None), transport=transport)
    asyncio.run(source.load())
    assert source.error == "down"
    assert source.data is None
    assert source.is_loading is False


def test_refetch_reloads():
    transport = FakeTransport({"data": {"n": 1}})
    source = PageDataSource({"type": "rql", "queries": {}}, build_page_info(PAGE), build_user_info(None), transport=transport)
    asyncio.run(source.load())
    transport.result = {"data": {"n": 2}}
    assert asyncio.run(source.refetch()) == {"n": 2}
    assert source.load_count == 2
