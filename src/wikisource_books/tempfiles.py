"""Temporary file naming and lifecycle.

Names are unique by construction (slug counter, pid, random suffix) and
checked against the filesystem with a bounded number of attempts rather than
locked, so several workers can share one temp directory.
"""
from __future__ import annotations

import logging
import os
import random
import re
import threading
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from .exceptions import ResourceExhausted
from .models import ArtifactState, ConversionJob

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 100
SLUG_MAX_LENGTH = 100

_TRANSLITERATION = [
    (re.compile(pattern, re.I), repl)
    for pattern, repl in (
        ("[αάàâäΑÂÄ]", "a"),
        ("[βΒ]", "b"),
        ("[Ψç]", "c"),
        ("[δΔ]", "d"),
        ("[εéèêëΕÊË]", "e"),
        ("[η]", "eh"),
        ("[φϕΦ]", "f"),
        ("[γΓ]", "g"),
        ("[θΘ]", "h"),
        ("[ιîïΙÎÏ]", "i"),
        ("[Κκ]", "k"),
        ("[λΛ]", "l"),
        ("[μ]", "m"),
        ("[ν]", "n"),
        ("[οôöÔÖ]", "o"),
        ("[Ωω]", "oh"),
        ("[πΠ]", "p"),
        ("[Ψψ]", "ps"),
        ("[ρΡ]", "r"),
        ("[σςΣ]", "s"),
        ("[τ]", "t"),
        ("[υûùüΥÛÜ]", "u"),
        ("[ξΞ]", "x"),
        ("[ζΖ]", "z"),
    )
]
_UNSAFE_RUN = re.compile(r"[^A-Za-z0-9_.]+")
SLUG_RE = re.compile(r"^c\d+_[A-Za-z0-9_.]{0,%d}$" % SLUG_MAX_LENGTH)


class SlugCache:
    """Title -> slug memo with the counter used to prefix new slugs.

    One instance is normally shared for the life of the process; the lock makes
    it safe to use from request threads.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._slugs: Dict[str, str] = {}
        self._counter = 0

    def get_or_create(self, key: str, make: Callable[[int], str]) -> str:
        with self._lock:
            got = self._slugs.get(key)
            if got is not None:
                return got
            slug = make(self._counter)
            self._counter += 1
            self._slugs[key] = slug
            return slug

    def __len__(self) -> int:
        return len(self._slugs)


def cut_filename(name: str, max_length: int = SLUG_MAX_LENGTH) -> str:
    """Keep the last ``max_length`` characters so a trailing suffix survives."""
    if len(name) > max_length:
        return name[-max_length:]
    return name


def transliterate(text: str) -> str:
    for pattern, repl in _TRANSLITERATION:
        text = pattern.sub(repl, text)
    return _UNSAFE_RUN.sub("_", text)


def encode_slug(title: str, cache: SlugCache) -> str:
    key = title.replace(" ", "_")

    def make(num: int) -> str:
        return f"c{num}_" + cut_filename(transliterate(key))

    return cache.get_or_create(key, make)


def remove_file(path: str) -> None:
    """Delete ``path``. Errors (missing file, permissions) are raised to the caller."""
    os.remove(path)
    logger.debug("Removed %s", path)


@dataclass
class TempArtifact:
    """An intermediate file owned by one conversion job.

    Used as a context manager it is released on every way out of the block.
    """

    path: str
    job: ConversionJob
    state: ArtifactState = ArtifactState.CREATED

    def persist(self) -> None:
        if self.state is not ArtifactState.CREATED:
            raise RuntimeError(f"artifact {self.path} is already {self.state.value}")
        self.state = ArtifactState.PERSISTED

    def release(self) -> None:
        if self.state is ArtifactState.DELETED:
            return
        was_persisted = self.state is ArtifactState.PERSISTED
        self.state = ArtifactState.DELETED
        if was_persisted:
            remove_file(self.path)

    def __enter__(self) -> "TempArtifact":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if exc_type is None:
            self.release()
            return False
        try:
            self.release()
        except OSError:
            # the job's own error is the one worth reporting
            logger.warning("Could not remove intermediate file %s", self.path, exc_info=True)
        return False


class TempFileAllocator:
    def __init__(
        self,
        directory: str,
        *,
        cache: Optional[SlugCache] = None,
        exists: Callable[[str], bool] = os.path.exists,
        max_attempts: int = MAX_ATTEMPTS,
    ):
        self.directory = directory
        self.cache = cache if cache is not None else SlugCache()
        self._exists = exists
        self.max_attempts = max_attempts

    def encode_slug(self, title: str) -> str:
        return encode_slug(title, self.cache)

    def build_temporary_file_name(self, title: str, extension: str) -> str:
        slug = self.encode_slug(title)
        pid = os.getpid()
        for _ in range(self.max_attempts):
            name = f"ws-{slug}-{pid}{random.randint(0, 2**31 - 1)}.{extension}"
            path = os.path.join(self.directory, name)
            if not self._exists(path):
                return path
        raise ResourceExhausted(
            f"Unable to create temporary file for {title!r} after {self.max_attempts} attempts"
        )

    def artifact(self, title: str, job: ConversionJob, extension: Optional[str] = None) -> TempArtifact:
        path = self.build_temporary_file_name(title, extension or job.source_format)
        return TempArtifact(path=path, job=job)
