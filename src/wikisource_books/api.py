from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

import httpx

from .builder import ContainerBuilder
from .config import Settings
from .converter import ConversionOrchestrator, canonical_format
from .http import ContentApiClient
from .models import Document

logger = logging.getLogger(__name__)


class ExportEvent(dict):
    """Opaque event object for progress reporting."""
    pass


def _emit(cb: Optional[Callable[[ExportEvent], None]], ev: ExportEvent) -> None:
    if cb:
        try:
            cb(ev)
        except Exception:
            # a broken progress callback must not abort the export
            logger.exception("Progress callback failed on %s", ev.get("type"))


async def fetch_document(
    title: str,
    lang: str = "",
    *,
    page_source: str = "api",
    client: Optional[httpx.AsyncClient] = None,
) -> Document:
    async with ContentApiClient(lang, client=client, page_source=page_source) as api:
        content = await api.get_page(title)
        return Document(title=title, lang=api.lang, content=content)


async def export_page(
    title: str,
    format_key: str,
    *,
    lang: str = "",
    builder: ContainerBuilder,
    settings: Optional[Settings] = None,
    client: Optional[httpx.AsyncClient] = None,
    on_event: Optional[Callable[[ExportEvent], None]] = None,
) -> str:
    """Fetch one page and convert it; returns the path of the produced file."""
    key = canonical_format(format_key)
    settings = settings or Settings.from_env()
    _emit(on_event, ExportEvent(type="page_fetch_start", title=title, lang=lang))
    document = await fetch_document(title, lang, page_source=settings.page_source, client=client)
    _emit(on_event, ExportEvent(type="page_fetch_done", title=title, size=len(document.content)))

    orchestrator = ConversionOrchestrator.from_settings(builder, settings)
    _emit(on_event, ExportEvent(type="convert_start", title=title, format=key))
    # ebook-convert blocks for a while; keep the event loop free
    out_path = await asyncio.to_thread(orchestrator.create, document, key)
    _emit(on_event, ExportEvent(type="convert_done", title=title, format=key, path=out_path))
    return out_path
