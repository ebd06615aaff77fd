from __future__ import annotations

from typing import Optional


class WikisourceError(Exception):
    """Base user-facing error for wikisource_books.

    Use this for predictable, actionable failures (bad format key, missing page,
    converter crash, etc.). CLI will catch this and print a concise message
    without a traceback.
    """


class TransportError(WikisourceError):
    """Non-200 answer or network failure while talking to the content service."""

    def __init__(self, status: Optional[int], message: Optional[str] = None):
        self.status = status
        self.message = message
        text = message or "Error performing an external request"
        if status is not None:
            text = f"HTTP {status}: {text}"
        super().__init__(text)


class ProtocolError(WikisourceError):
    """The content service answered with something that is not a JSON object."""

    def __init__(self, raw_body: str, reason: str = "invalid JSON"):
        self.raw_body = raw_body
        super().__init__(f'{reason}: "{raw_body[:200]}"')


class NotFoundError(WikisourceError):
    """No revision content exists for the requested title."""

    def __init__(self, title: str):
        self.title = title
        super().__init__(f"Page revision not found for: {title}")


class ResourceExhausted(WikisourceError):
    """Temporary file name allocation ran out of attempts."""


class ConversionError(WikisourceError):
    """External converter exited non-zero, timed out or could not be started."""

    def __init__(self, stderr: str, *, returncode: Optional[int] = None, timed_out: bool = False):
        self.stderr = stderr
        self.returncode = returncode
        self.timed_out = timed_out
        if timed_out:
            head = "Conversion timed out"
        elif returncode is not None:
            head = f"Conversion failed with exit code {returncode}"
        else:
            head = "Conversion failed"
        detail = stderr.strip()
        super().__init__(f"{head}: {detail}" if detail else head)


class InvalidFormat(WikisourceError):
    def __init__(self, key: str):
        self.key = key
        super().__init__(f"The file format '{key}' is unknown.")
