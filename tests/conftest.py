import stat

import pytest

from wikisource_books import TempFileAllocator


class FileBuilder:
    """Stand-in EPUB builder writing the document content to a file."""

    def __init__(self, directory, fail=False):
        self.directory = directory
        self.fail = fail
        self.calls = 0

    def create(self, document):
        self.calls += 1
        if self.fail:
            raise RuntimeError("builder failed")
        path = self.directory / f"built-{self.calls}.epub"
        path.write_text(document.content, encoding="utf-8")
        return str(path)


@pytest.fixture
def make_tool(tmp_path):
    """Write an executable shell script acting as ebook-convert."""

    def make(body, name="ebook-convert"):
        bindir = tmp_path / "bin"
        bindir.mkdir(exist_ok=True)
        tool = bindir / name
        tool.write_text("#!/bin/sh\n" + body + "\n", encoding="utf-8")
        tool.chmod(tool.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return str(tool)

    return make


@pytest.fixture
def work_dir(tmp_path):
    d = tmp_path / "work"
    d.mkdir()
    return d


@pytest.fixture
def allocator(work_dir):
    return TempFileAllocator(str(work_dir))


@pytest.fixture
def builder(tmp_path):
    d = tmp_path / "builder"
    d.mkdir()
    return FileBuilder(d)
