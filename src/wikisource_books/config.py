from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass

PAGE_SOURCES = ("api", "rest")


def _default_temp_dir() -> str:
    return os.path.join(tempfile.gettempdir(), "wikisource_books")


@dataclass
class Settings:
    """Runtime configuration, read from WSEXPORT_* environment variables."""

    temp_dir: str
    ebook_convert: str = "ebook-convert"
    exec_timeout: float = 120.0
    page_source: str = "api"

    @classmethod
    def from_env(cls) -> "Settings":
        temp_dir = os.environ.get("WSEXPORT_TEMP_DIR") or _default_temp_dir()
        timeout_raw = os.environ.get("WSEXPORT_EXEC_TIMEOUT")
        try:
            timeout = float(timeout_raw) if timeout_raw else 120.0
        except ValueError:
            raise ValueError(f"WSEXPORT_EXEC_TIMEOUT must be a number of seconds, got {timeout_raw!r}")
        source = os.environ.get("WSEXPORT_PAGE_SOURCE") or "api"
        if source not in PAGE_SOURCES:
            raise ValueError(f"WSEXPORT_PAGE_SOURCE must be one of {', '.join(PAGE_SOURCES)}")
        return cls(
            temp_dir=temp_dir,
            ebook_convert=os.environ.get("WSEXPORT_EBOOK_CONVERT") or "ebook-convert",
            exec_timeout=timeout,
            page_source=source,
        )

    def ensure_temp_dir(self) -> str:
        os.makedirs(self.temp_dir, exist_ok=True)
        return self.temp_dir
