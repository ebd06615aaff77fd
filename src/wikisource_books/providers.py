from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol

from .exceptions import NotFoundError, TransportError
from .parsers import parse_page_revision
from .sanitizer import extract_body, strip_comments
from .sites import mediawiki_url_encode
from .utils import xhtml_from_content

if TYPE_CHECKING:
    from .http import ContentApiClient

logger = logging.getLogger(__name__)


class ContentSource(Protocol):
    async def get_page(self, title: str) -> str:  # returns XHTML
        ...


class QueryPageSource:
    """Page content through the action API (parsed revision text)."""

    def __init__(self, api: "ContentApiClient"):
        self.api = api

    async def get_page(self, title: str) -> str:
        result = await self.api.query_async({
            "titles": title,
            "prop": "revisions",
            "rvprop": "content",
            "rvparse": True,
        })
        page_title, content = parse_page_revision(result)
        return xhtml_from_content(self.api.lang, content, page_title)


class RestPageSource:
    """Page content through the REST HTML endpoint."""

    def __init__(self, api: "ContentApiClient"):
        self.api = api

    def page_url(self, title: str) -> str:
        return f"https://{self.api.domain_name}/api/rest_v1/page/html/{mediawiki_url_encode(title)}"

    async def get_page(self, title: str) -> str:
        try:
            body = await self.api.get_async(self.page_url(title))
        except TransportError as e:
            if e.status == 404:
                raise NotFoundError(title) from e
            raise
        # the endpoint answers with a whole document; keep only what is inside <body>
        return xhtml_from_content(self.api.lang, extract_body(strip_comments(body)), title)


SOURCES = {
    "api": QueryPageSource,
    "rest": RestPageSource,
}


def make_source(name: str, api: "ContentApiClient") -> ContentSource:
    try:
        cls = SOURCES[name]
    except KeyError:
        raise ValueError(f"Unknown page source {name!r}; expected one of {', '.join(SOURCES)}") from None
    logger.debug("Using %s page source for %s", name, api.domain_name)
    return cls(api)
