"""wikisource_books public API (library-first).

Exports stable functions and classes for use by other applications. The CLI is
thin and delegates to internal modules.
"""
from __future__ import annotations

from .api import export_page, fetch_document
from .builder import ContainerBuilder, load_builder
from .config import Settings
from .converter import (
    ConversionOrchestrator,
    get_extension,
    get_mime_type,
    select_format,
    supported_formats,
)
from .exceptions import (
    ConversionError,
    InvalidFormat,
    NotFoundError,
    ProtocolError,
    ResourceExhausted,
    TransportError,
    WikisourceError,
)
from .http import ContentApiClient
from .models import ConversionJob, Document, FormatConfig, JobState
from .parsers import extract_error_message
from .providers import ContentSource, QueryPageSource, RestPageSource
from .sites import resolve_domain
from .tempfiles import SlugCache, TempArtifact, TempFileAllocator, encode_slug, remove_file

__all__ = [
    "export_page",
    "fetch_document",
    "ContainerBuilder",
    "load_builder",
    "Settings",
    "ConversionOrchestrator",
    "get_extension",
    "get_mime_type",
    "select_format",
    "supported_formats",
    "ConversionError",
    "InvalidFormat",
    "NotFoundError",
    "ProtocolError",
    "ResourceExhausted",
    "TransportError",
    "WikisourceError",
    "ContentApiClient",
    "ConversionJob",
    "Document",
    "FormatConfig",
    "JobState",
    "extract_error_message",
    "ContentSource",
    "QueryPageSource",
    "RestPageSource",
    "resolve_domain",
    "SlugCache",
    "TempArtifact",
    "TempFileAllocator",
    "encode_slug",
    "remove_file",
]
