from __future__ import annotations

import html
import json
import logging
from html.parser import HTMLParser
from typing import List, Optional, Union

import httpx

from .exceptions import NotFoundError, ProtocolError
from .sites import is_content_host

logger = logging.getLogger(__name__)

ERROR_PAGE_MARKER = "<title>Wikimedia Error</title>"

_VOID_TAGS = {
    "area", "base", "br", "col", "embed", "hr", "img", "input",
    "link", "meta", "param", "source", "track", "wbr",
}


class _Node:
    __slots__ = ("tag", "attrs", "parent", "children")

    def __init__(self, tag: str, attrs: dict, parent: Optional["_Node"]):
        self.tag = tag
        self.attrs = attrs
        self.parent = parent
        self.children: List[Union["_Node", str]] = []

    @property
    def classes(self) -> str:
        return self.attrs.get("class") or ""

    def text_content(self) -> str:
        parts: List[str] = []
        for child in self.children:
            parts.append(child if isinstance(child, str) else child.text_content())
        return "".join(parts)

    def iter(self):
        yield self
        for child in self.children:
            if isinstance(child, _Node):
                yield from child.iter()


class TreeParser(HTMLParser):
    """Build a small element tree; tolerant of unclosed and stray end tags."""

    def __init__(self):
        super().__init__()
        self.root = _Node("#document", {}, None)
        self.current = self.root

    def handle_starttag(self, tag, attrs):
        node = _Node(tag, dict(attrs), self.current)
        self.current.children.append(node)
        if tag not in _VOID_TAGS:
            self.current = node

    def handle_startendtag(self, tag, attrs):
        self.current.children.append(_Node(tag, dict(attrs), self.current))

    def handle_endtag(self, tag):
        node = self.current
        while node is not None and node.tag != tag:
            node = node.parent
        if node is not None and node.parent is not None:
            self.current = node.parent

    def handle_data(self, data):
        self.current.children.append(data)


def _technical_details(root: _Node) -> Optional[str]:
    # wmerrors style page
    for node in root.iter():
        if node.tag != "div" or "AdditionalTechnicalStuff" not in node.classes:
            continue
        parent = node.parent
        if parent is not None and parent.classes == "TechnicalStuff":
            return html.unescape(parent.text_content())
    return None


def _code_blocks(root: _Node) -> Optional[str]:
    # hhvm-fatal-error.php style page
    text: Optional[str] = None
    for node in root.iter():
        if node.tag == "code":
            text = ((text or "") + "\n" + node.text_content()).strip()
    return text


def extract_error_message(response: Optional[httpx.Response]) -> Optional[str]:
    """Pull a readable diagnostic out of an HTML error page.

    Returns None when there is no response or it is not HTML. Content-service
    hosts get "Wikisource servers returned an error", anything else the generic
    external request message; details from the page are appended when found.
    """
    if response is None:
        return None
    ctype = response.headers.get("content-type", "").split(";")[0].strip().lower()
    if ctype != "text/html":
        return None

    message = "Error performing an external request"
    if is_content_host(response.request.url.host):
        message = "Wikisource servers returned an error"
    body = response.text
    if ERROR_PAGE_MARKER not in body:
        return message

    p = TreeParser()
    p.feed(body)
    p.close()
    text = _technical_details(p.root) or _code_blocks(p.root)
    return f"{message}: {text}" if text else message


def parse_json_object(body: str) -> dict:
    try:
        data = json.loads(body)
    except ValueError as e:
        raise ProtocolError(body, f"invalid JSON ({e})") from e
    if not isinstance(data, dict):
        raise ProtocolError(body, "expected a JSON object")
    return data


def parse_page_revision(result: dict) -> tuple[str, str]:
    """Return ``(title, content)`` of the first revision in a revisions query."""
    pages = (result.get("query") or {}).get("pages") or {}
    if isinstance(pages, dict):
        pages = list(pages.values())
    title: Optional[str] = None
    for page in pages:
        title = page.get("title")
        for revision in page.get("revisions") or []:
            content = revision.get("*")
            if content is None:
                content = (revision.get("slots") or {}).get("main", {}).get("*")
            if content is not None:
                return title or "", content
    if title is None:
        raise ProtocolError(json.dumps(result), "No page information found in response")
    raise NotFoundError(title)
