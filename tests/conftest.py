"""Shared fixtures for cpignore tests."""

from __future__ import annotations

import io
from pathlib import Path
from typing import List, Tuple

import pytest

from cpignore.report import Reporter
from cpignore.sinks import OutputSink


class RecordingSink(OutputSink):
    """Sink that remembers what it was given instead of writing anything."""

    def __init__(self, fail_on: Tuple[str, ...] = ()) -> None:
        super().__init__(Path("unused"), Reporter(io.StringIO()))
        self.written: List[str] = []
        self.fail_on = fail_on
        self.finished = 0

    def write(self, relative: Path, source: Path) -> bool:
        name = relative.as_posix()
        if name in self.fail_on:
            return False
        self.written.append(name)
        return True

    def finish(self) -> None:
        self.finished += 1


@pytest.fixture
def stream() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def reporter(stream: io.StringIO) -> Reporter:
    return Reporter(stream, verbose=True, color=False)


@pytest.fixture
def sample_tree(tmp_path: Path) -> Path:
    """foo.txt + bar.log + a .gitignore excluding *.log."""
    src = tmp_path / "src"
    src.mkdir()
    (src / "foo.txt").write_text("hello", encoding="utf-8")
    (src / "bar.log").write_text("noise", encoding="utf-8")
    (src / ".gitignore").write_text("*.log\n", encoding="utf-8")
    return src
