"""Small in-memory collaborators shared by the tests."""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

from pagewright.data.transport import HttpResponse


class FakeHttp:
    """Returns canned responses keyed by (method, url) and records calls."""

    def __init__(self, responses: Optional[Dict[tuple, HttpResponse]] = None) -> None:
        self.responses = dict(responses or {})
        self.calls: List[Dict[str, Any]] = []

    async def request(self, method, url, *, json_body=None, headers=None) -> HttpResponse:
        self.calls.append({"method": method, "url": url, "json": json_body, "headers": dict(headers or {})})
        response = self.responses.get((method, url))
        if response is None:
            return HttpResponse(status=404, payload={"error": "not found"})
        return response


class FakeTransport:
    def __init__(self, result: Optional[Mapping[str, Any]] = None, error: Optional[Exception] = None) -> None:
        self.result = result if result is not None else {"data": {}}
        self.error = error
        self.calls: List[Mapping[str, Any]] = []

    async def execute(self, queries):
        self.calls.append(queries)
        if self.error is not None:
            raise self.error
        return self.result


class FakeNavigator:
    def __init__(self, with_preview: bool = False) -> None:
        self.calls: List[tuple] = []
        if with_preview:
            self.navigate_in_preview = self._preview

    def navigate(self, url, new_tab=False):
        self.calls.append(("navigate", url, new_tab))

    def _preview(self, url):
        self.calls.append(("preview", url))


class FakeCart:
    def __init__(self) -> None:
        self.items: List[Dict[str, Any]] = []

    async def add_to_cart(self, item):
        self.items.append(dict(item))


async def no_sleep(seconds):
    no_sleep.calls.append(seconds)


no_sleep.calls = []
