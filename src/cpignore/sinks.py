"""
Output sinks: where the walker puts each file it keeps.
"""

from __future__ import annotations

import os
import shutil
import time
import zipfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from .core import ArchiveWriteError, OutputError
from .report import Reporter

ARCHIVE_EXTENSIONS = (".zip",)


def is_archive_path(path: Path) -> bool:
    return Path(path).suffix.lower() in ARCHIVE_EXTENSIONS


class OutputSink(ABC):
    """Receives files by relative path.

    ``write`` returns ``False`` for a recovered failure and raises for a fatal
    one. ``finish`` is called once after the last ``write``; ``abort`` is
    called instead when the run dies part-way.
    """

    def __init__(self, destination: Path, reporter: Optional[Reporter] = None) -> None:
        self.destination = Path(destination)
        self.reporter = reporter or Reporter()
        self.finished = False

    def prepare(self) -> None:
        """Create whatever the destination needs before the first write."""

    @abstractmethod
    def write(self, relative: Path, source: Path) -> bool: ...

    def finish(self) -> None:
        self.finished = True

    def abort(self) -> None:
        pass


class DirectorySink(OutputSink):
    """Copies file contents into a directory tree rooted at *destination*."""

    def prepare(self) -> None:
        try:
            self.destination.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise OutputError(f"Could not create directory '{self.destination}': {e}")
        self.reporter.info(f"Created destination directory {self.destination}")

    def write(self, relative: Path, source: Path) -> bool:
        target = self.destination / relative
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            self.reporter.warn(f"Could not create directory '{target.parent}': {e}")
            return False
        try:
            # content only; mode and timestamps are not carried over
            shutil.copyfile(source, target)
        except OSError as e:
            self.reporter.warn(f"Could not copy {source}: {e}")
            return False
        return True


class ArchiveSink(OutputSink):
    """Writes each file as a deflated entry of one zip archive.

    Entries are appended in the order they are written. The archive is opened
    by ``prepare`` and closed exactly once by ``finish`` or ``abort``.
    """

    compression = zipfile.ZIP_DEFLATED

    def __init__(self, destination: Path, reporter: Optional[Reporter] = None) -> None:
        super().__init__(destination, reporter)
        self._zip: Optional[zipfile.ZipFile] = None
        self.entries = 0

    def prepare(self) -> None:
        try:
            self.destination.parent.mkdir(parents=True, exist_ok=True)
            self._zip = zipfile.ZipFile(self.destination, "w", compression=self.compression)
        except OSError as e:
            raise OutputError(f"Could not create archive '{self.destination}': {e}")
        self.reporter.info(f"Writing archive {self.destination}")

    def write(self, relative: Path, source: Path) -> bool:
        if self._zip is None:
            raise ArchiveWriteError(f"Archive '{self.destination}' is not open")
        arcname = Path(relative).as_posix()
        try:
            fh = open(source, "rb")
        except OSError as e:
            raise ArchiveWriteError(f"Could not open {source} for compressing: {e}")

        info = zipfile.ZipInfo(arcname, date_time=time.localtime()[:6])
        info.compress_type = self.compression
        with fh:
            try:
                info.file_size = os.fstat(fh.fileno()).st_size
                with self._zip.open(info, "w", force_zip64=True) as entry:
                    shutil.copyfileobj(fh, entry)
            except (OSError, RuntimeError) as e:
                raise ArchiveWriteError(f"Could not add {arcname} to archive: {e}")
        self.entries += 1
        return True

    def finish(self) -> None:
        super().finish()
        if self._zip is None:
            return
        zf, self._zip = self._zip, None
        try:
            zf.close()
        except OSError as e:
            raise ArchiveWriteError(f"Could not finalize archive '{self.destination}': {e}")
        self.reporter.info(f"Archive closed with {self.entries} entries")

    def abort(self) -> None:
        """Close and remove a half-written archive."""
        if self._zip is not None:
            zf, self._zip = self._zip, None
            try:
                zf.close()
            except (OSError, ValueError) as e:
                self.reporter.debug(f"Ignoring close failure on abort: {e}")
        try:
            self.destination.unlink()
        except FileNotFoundError:
            return
        except OSError as e:
            self.reporter.warn(f"Could not remove partial archive '{self.destination}': {e}")
            return
        self.reporter.warn(f"Removed partial archive {self.destination}")


def open_sink(destination: Path, reporter: Optional[Reporter] = None) -> OutputSink:
    """Pick the sink for *destination* by its extension and prepare it."""
    if is_archive_path(destination):
        sink: OutputSink = ArchiveSink(destination, reporter)
    else:
        sink = DirectorySink(destination, reporter)
    sink.prepare()
    return sink
