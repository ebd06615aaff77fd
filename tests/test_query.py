import json

import httpx
import pytest

from wikisource_books import ContentApiClient, ProtocolError, TransportError
from wikisource_books.http import merge_recursive

PAGES = [
    {
        "batchcomplete": "",
        "continue": {"gapcontinue": "B", "continue": "gapcontinue||"},
        "query": {"pages": [{"title": "A"}], "limits": {"allpages": 1}},
    },
    {
        "continue": {"gapcontinue": "C", "continue": "gapcontinue||"},
        "query": {"pages": [{"title": "B"}], "limits": {"allpages": 2}},
    },
    {
        "continue": {"gapcontinue": "D", "continue": "gapcontinue||"},
        "query": {"pages": [{"title": "C"}], "limits": {"allpages": 3}},
    },
    {
        "batchcomplete": "yes",
        "query": {"pages": [{"title": "D"}], "limits": {"allpages": 4}},
    },
]


class PagedServer:
    def __init__(self, pages):
        self.pages = pages
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(200, json=self.pages[len(self.requests) - 1])


@pytest.mark.asyncio
async def test_complete_query_follows_continuation_until_absent():
    server = PagedServer(PAGES)
    async with httpx.AsyncClient(transport=httpx.MockTransport(server)) as client:
        api = ContentApiClient("fr", client=client)
        params = {"generator": "allpages", "gaplimit": 1}
        data = await api.complete_query(params)

    assert len(server.requests) == 4
    assert params == {"generator": "allpages", "gaplimit": 1}
    assert [p["title"] for p in data["query"]["pages"]] == ["A", "B", "C", "D"]
    assert data["query"]["limits"] == {"allpages": 4}
    assert data["batchcomplete"] == "yes"
    assert "continue" not in data

    first, second, last = server.requests[0], server.requests[1], server.requests[3]
    assert first.url.host == "fr.wikisource.org"
    assert first.url.path == "/w/api.php"
    assert "gapcontinue" not in first.url.params
    assert second.url.params["gapcontinue"] == "B"
    assert last.url.params["gapcontinue"] == "D"
    assert last.url.params["generator"] == "allpages"


@pytest.mark.asyncio
async def test_query_fills_defaults_without_overriding_caller():
    server = PagedServer([{"parse": {}}, {"query": {}}])
    async with httpx.AsyncClient(transport=httpx.MockTransport(server)) as client:
        api = ContentApiClient("en", client=client)
        await api.query_async({"action": "parse", "page": "X"})
        await api.query_async({"titles": "X"})
    assert server.requests[0].url.params["action"] == "parse"
    assert server.requests[0].url.params["format"] == "json"
    assert server.requests[1].url.params["action"] == "query"


@pytest.mark.asyncio
async def test_invalid_json_raises_protocol_error_with_raw_body():
    transport = httpx.MockTransport(lambda request: httpx.Response(200, text="<html>oops</html>"))
    async with httpx.AsyncClient(transport=transport) as client:
        api = ContentApiClient("fr", client=client)
        with pytest.raises(ProtocolError) as exc_info:
            await api.query_async({"titles": "X"})
    assert exc_info.value.raw_body == "<html>oops</html>"


@pytest.mark.asyncio
async def test_non_200_raises_transport_error_with_diagnostic():
    page = "<html><head><title>Wikimedia Error</title></head><body><code>DB down</code></body></html>"
    transport = httpx.MockTransport(lambda request: httpx.Response(503, html=page))
    async with httpx.AsyncClient(transport=transport) as client:
        api = ContentApiClient("de", client=client)
        with pytest.raises(TransportError) as exc_info:
            await api.get_async("https://de.wikisource.org/w/api.php")
    assert exc_info.value.status == 503
    assert exc_info.value.message == "Wikisource servers returned an error: DB down"


@pytest.mark.asyncio
async def test_network_failure_raises_transport_error_without_status():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        api = ContentApiClient("fr", client=client)
        with pytest.raises(TransportError) as exc_info:
            await api.query_async({"titles": "X"})
    assert exc_info.value.status is None
    assert "connection refused" in str(exc_info.value)


def test_merge_recursive_lists_concatenate_and_scalars_overwrite():
    acc = {}
    merge_recursive(acc, {"a": [1], "b": {"c": 1, "d": [1]}, "e": "x"})
    merge_recursive(acc, {"a": [2], "b": {"c": 2, "d": [2]}, "e": "y"})
    assert acc == {"a": [1, 2], "b": {"c": 2, "d": [1, 2]}, "e": "y"}


def test_merge_recursive_does_not_alias_input():
    src = {"a": [1], "b": {"c": [1]}}
    acc = merge_recursive({}, src)
    merge_recursive(acc, json.loads('{"a": [2], "b": {"c": [2]}}'))
    assert src == {"a": [1], "b": {"c": [1]}}
