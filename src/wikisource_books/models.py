from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Dict

# Parameters sent to the content API. Kept as a plain dict so continuation
# keys from the server can be merged in between rounds.
ApiQuery = Dict[str, Any]


@dataclass
class Document:
    title: str
    lang: str
    content: str  # xhtml produced by a ContentSource


@dataclass(frozen=True)
class FormatConfig:
    extension: str
    mime_type: str
    parameters: str  # space separated ebook-convert options


class JobState(str, enum.Enum):
    BUILDING = "building"
    PERSISTED = "persisted"
    CONVERTING = "converting"
    DONE = "done"
    FAILED = "failed"


class ArtifactState(str, enum.Enum):
    CREATED = "created"
    PERSISTED = "persisted"
    DELETED = "deleted"


@dataclass
class ConversionJob:
    format_key: str
    parameters: str
    timeout: float
    source_format: str = "epub"
    state: JobState = JobState.BUILDING

