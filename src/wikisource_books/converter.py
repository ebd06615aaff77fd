"""Export through Calibre's ``ebook-convert``.

The document is first built as an EPUB by a ContainerBuilder, moved to a temp
path owned by the job, converted, and the EPUB is removed whatever happens.
"""
from __future__ import annotations

import logging
import os
import shutil
import signal
import subprocess
from typing import Dict, List, Optional

from .builder import ContainerBuilder
from .config import Settings
from .exceptions import ConversionError, InvalidFormat
from .models import ConversionJob, Document, FormatConfig, JobState
from .tempfiles import TempFileAllocator, remove_file

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 120.0

_PDF = "--page-breaks-before / --paper-size {size} --margin-bottom {b} --margin-top {t} --margin-left {s} --margin-right {s} --pdf-page-numbers --preserve-cover-aspect-ratio"

FORMATS: Dict[str, FormatConfig] = {
    "htmlz": FormatConfig("htmlz", "application/zip", "--page-breaks-before /"),
    "mobi": FormatConfig("mobi", "application/x-mobipocket-ebook", "--page-breaks-before /"),
    "pdf-a4": FormatConfig("pdf", "application/pdf", _PDF.format(size="a4", b=48, t=60, s=36)),
    "pdf-a5": FormatConfig("pdf", "application/pdf", _PDF.format(size="a5", b=32, t=40, s=24)),
    "pdf-a6": FormatConfig("pdf", "application/pdf", _PDF.format(size="a6", b=16, t=20, s=12)),
    "pdf-letter": FormatConfig("pdf", "application/pdf", _PDF.format(size="letter", b=48, t=60, s=36)),
    "rtf": FormatConfig("rtf", "application/rtf", "--page-breaks-before /"),
    "txt": FormatConfig("txt", "text/plain", "--page-breaks-before /"),
}

# older names still accepted from links in the wild
ALIASES: Dict[str, str] = {
    "odt": "rtf",
    "pdf": "pdf-a4",
    "xhtml": "htmlz",
}


def canonical_format(key: str) -> str:
    key = ALIASES.get(key, key)
    if key not in FORMATS:
        raise InvalidFormat(key)
    return key


def select_format(key: str) -> FormatConfig:
    return FORMATS[canonical_format(key)]


def get_extension(key: str) -> str:
    return select_format(key).extension


def get_mime_type(key: str) -> str:
    return select_format(key).mime_type


def supported_formats() -> List[str]:
    return list(FORMATS)


def _as_text(data) -> str:
    if data is None:
        return ""
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace")
    return data


def _kill(proc: subprocess.Popen) -> None:
    # ebook-convert forks helpers; take the whole process group down
    if hasattr(os, "killpg"):
        try:
            os.killpg(proc.pid, signal.SIGKILL)
            return
        except ProcessLookupError:
            return
    proc.kill()


def run_converter(command: List[str], timeout: float) -> None:
    logger.debug("Running %s (timeout %ss)", " ".join(command), timeout)
    try:
        proc = subprocess.Popen(
            command,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            start_new_session=True,
        )
    except OSError as e:
        raise ConversionError(f"could not start {command[0]}: {e}") from e
    with proc:
        try:
            stdout, stderr = proc.communicate(timeout=timeout)
        except subprocess.TimeoutExpired:
            _kill(proc)
            stdout, stderr = proc.communicate()
            raise ConversionError(_as_text(stderr), timed_out=True)
    if proc.returncode != 0:
        raise ConversionError(_as_text(stderr) or _as_text(stdout), returncode=proc.returncode)


class ConversionOrchestrator:
    def __init__(
        self,
        builder: ContainerBuilder,
        allocator: TempFileAllocator,
        *,
        tool_path: str = "ebook-convert",
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self.builder = builder
        self.allocator = allocator
        self.tool_path = tool_path
        self.timeout = timeout
        self.last_job: Optional[ConversionJob] = None

    @classmethod
    def from_settings(
        cls,
        builder: ContainerBuilder,
        settings: Settings,
        *,
        allocator: Optional[TempFileAllocator] = None,
    ) -> "ConversionOrchestrator":
        if allocator is None:
            allocator = TempFileAllocator(settings.ensure_temp_dir())
        return cls(builder, allocator, tool_path=settings.ebook_convert, timeout=settings.exec_timeout)

    def create(self, document: Document, format_key: str) -> str:
        """Convert ``document`` and return the path of the produced file.

        The caller owns the returned file. The intermediate EPUB never
        outlives this call.
        """
        key = canonical_format(format_key)
        config = FORMATS[key]
        job = ConversionJob(format_key=key, parameters=config.parameters, timeout=self.timeout)
        self.last_job = job

        output_path = self.allocator.build_temporary_file_name(document.title, config.extension)
        artifact = self.allocator.artifact(document.title, job)
        try:
            container = self.builder.create(document)
        except Exception:
            job.state = JobState.FAILED
            raise
        try:
            shutil.move(container, artifact.path)
        except OSError:
            job.state = JobState.FAILED
            logger.warning("Could not move container %s to %s", container, artifact.path)
            raise
        artifact.persist()
        job.state = JobState.PERSISTED

        try:
            with artifact:
                job.state = JobState.CONVERTING
                command = [self.tool_path, artifact.path, output_path, *config.parameters.split()]
                try:
                    run_converter(command, job.timeout)
                except ConversionError as e:
                    job.state = JobState.FAILED
                    logger.warning("Conversion of %r to %s failed: %s", document.title, key, e)
                    self._discard(output_path)
                    raise
                job.state = JobState.DONE
        except OSError:
            # converted, but the intermediate file is stuck: the output is not handed out
            job.state = JobState.FAILED
            self._discard(output_path)
            raise
        logger.info("Converted %r to %s: %s", document.title, key, output_path)
        return output_path

    def get_extension(self, format_key: str) -> str:
        return get_extension(format_key)

    def get_mime_type(self, format_key: str) -> str:
        return get_mime_type(format_key)

    @staticmethod
    def _discard(path: str) -> None:
        if not os.path.exists(path):
            return
        try:
            remove_file(path)
        except OSError:
            logger.warning("Could not remove partial output %s", path, exc_info=True)
