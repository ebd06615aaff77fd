"""Async access to the MediaWiki action API of Wikisource-like wikis."""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from .exceptions import TransportError
from .models import ApiQuery
from .parsers import extract_error_message, parse_json_object
from .providers import make_source
from .sites import resolve_domain

logger = logging.getLogger(__name__)

UA = "Wikisource Export/0.1"
CONNECT_TIMEOUT = 10.0
REQUEST_TIMEOUT = 60.0


async def _log_request(request: httpx.Request) -> None:
    logger.debug("-> %s %s", request.method, request.url)


async def _log_response(response: httpx.Response) -> None:
    logger.debug("<- %s %s", response.status_code, response.request.url)


def create_client(**kwargs: Any) -> httpx.AsyncClient:
    kwargs.setdefault("headers", {"User-Agent": UA})
    kwargs.setdefault("timeout", httpx.Timeout(REQUEST_TIMEOUT, connect=CONNECT_TIMEOUT))
    kwargs.setdefault("follow_redirects", True)
    kwargs.setdefault("event_hooks", {"request": [_log_request], "response": [_log_response]})
    return httpx.AsyncClient(**kwargs)


def merge_recursive(into: Dict[str, Any], new: Dict[str, Any]) -> Dict[str, Any]:
    """Merge ``new`` into ``into`` in place: lists concatenate, dicts recurse,
    anything else is replaced by the newer value."""
    for key, value in new.items():
        old = into.get(key)
        if isinstance(old, list) and isinstance(value, list):
            old.extend(value)
        elif isinstance(old, dict) and isinstance(value, dict):
            merge_recursive(old, value)
        elif isinstance(value, dict):
            into[key] = merge_recursive({}, value)
        elif isinstance(value, list):
            into[key] = list(value)
        else:
            into[key] = value
    return into


class ContentApiClient:
    def __init__(
        self,
        lang: str = "",
        *,
        client: Optional[httpx.AsyncClient] = None,
        page_source: str = "api",
    ):
        self._domain, self._lang = resolve_domain(lang)
        self.source = make_source(page_source, self)
        self._owns_client = client is None
        self._client = client if client is not None else create_client()

    @property
    def lang(self) -> str:
        return self._lang

    @property
    def domain_name(self) -> str:
        return self._domain

    @property
    def api_url(self) -> str:
        return f"https://{self._domain}/w/api.php"

    @property
    def client(self) -> httpx.AsyncClient:
        return self._client

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "ContentApiClient":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    async def fetch(self, url: str, params: Optional[ApiQuery] = None) -> httpx.Response:
        """GET without status handling; network failures become TransportError."""
        try:
            return await self._client.get(url, params=params, follow_redirects=True)
        except httpx.HTTPError as e:
            raise TransportError(None, f"{type(e).__name__}: {e}") from e

    async def get_async(self, url: str, params: Optional[ApiQuery] = None) -> str:
        response = await self.fetch(url, params)
        if response.status_code != 200:
            raise TransportError(response.status_code, extract_error_message(response))
        return response.text

    async def query_async(self, params: ApiQuery) -> Dict[str, Any]:
        params = {"action": "query", "format": "json", **params}
        body = await self.get_async(self.api_url, params)
        return parse_json_object(body)

    async def complete_query(self, params: ApiQuery) -> Dict[str, Any]:
        """Run a query through every continuation round and merge the results.

        Rounds are awaited one at a time: each request needs the ``continue``
        values of the previous answer.
        """
        params = dict(params)
        data: Dict[str, Any] = {}
        rounds = 0
        while True:
            result = await self.query_async(params)
            rounds += 1
            cont = result.pop("continue", None)
            merge_recursive(data, result)
            if cont is None:
                break
            logger.debug("Continuing query on %s (round %d): %s", self._domain, rounds, cont)
            params.update(cont)
        return data

    async def get_page(self, title: str) -> str:
        """XHTML of ``title`` from the configured page source."""
        return await self.source.get_page(title)
