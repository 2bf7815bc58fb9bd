"""
Core logic for cpignore: ignore matching, path helpers and the tree walk.
"""

from __future__ import annotations

import os
import sys
from collections import deque
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Deque, Iterable, List, Optional, Tuple

from .report import Reporter

if TYPE_CHECKING:  # pragma: no cover
    from .sinks import OutputSink

try:
    import pathspec  # type: ignore
except ImportError:  # pragma: no cover
    sys.stderr.write(
        "Error: 'pathspec' library is required. Install via 'pip install pathspec'.\n"
    )
    sys.exit(1)

IGNORE_FILENAME = ".gitignore"


# Exceptions
class CpignoreError(Exception):
    """Base exception for cpignore errors."""


class InvalidRootError(CpignoreError):
    """Raised when the source directory is missing or cannot be listed."""


class DestinationExistsError(CpignoreError):
    """Raised when the destination exists and overwriting was not requested."""


class IgnoreFileError(CpignoreError):
    """Raised when an ignore file cannot be read or holds a malformed pattern."""


class OutputError(CpignoreError):
    """Raised when the destination cannot be prepared or written."""


class ArchiveWriteError(OutputError):
    """Raised when an archive entry or the archive itself cannot be written."""


class WalkError(CpignoreError):
    """Raised when the traversal cannot continue."""


# Ignore matching
def _read_patterns(path: Path) -> List[str]:
    try:
        with path.open("r", encoding="utf-8") as fh:
            return [line.rstrip("\n") for line in fh]
    except (OSError, UnicodeDecodeError) as e:
        raise IgnoreFileError(f"Could not read ignore file '{path}': {e}")


class IgnoreMatcher:
    """Compiled gitignore patterns anchored at *root*.

    Later patterns override earlier ones, ``!pattern`` re-includes a path and
    ``dir/`` patterns only apply to directories.
    """

    def __init__(self, root: Path, patterns: Iterable[str] = ()) -> None:
        self.root = Path(root)
        lines = list(patterns)
        try:
            self.spec = pathspec.GitIgnoreSpec.from_lines(lines)
        except ValueError as e:
            raise IgnoreFileError(f"Malformed ignore pattern: {e}")
        self.pattern_count = len(self.spec.patterns)

    @classmethod
    def empty(cls, root: Path) -> "IgnoreMatcher":
        """A matcher that never ignores anything."""
        return cls(root, [])

    def match(self, path: Path, is_dir: bool) -> bool:
        """Return ``True`` if *path* is ignored."""
        rel = relative_path(path, self.root)
        if rel is None:
            rel = relative_path(canonical(path), canonical(self.root))
        if rel is None or rel == Path("."):
            return False
        key = rel.as_posix()
        if not is_dir:
            return self.spec.match_file(key)
        result = self.spec.check_file(key + "/")
        if not result.include:
            return False
        # "dir/**" excludes the contents, not the directory, so later
        # negations may still re-include files below it
        deciding = self.spec.patterns[result.index]
        return not str(getattr(deciding, "pattern", "")).strip().endswith("/**")


def load_extra_patterns(config_path: Path) -> List[str]:
    """Read newline-separated patterns from *config_path*, skipping comments."""
    if not config_path.exists():
        raise IgnoreFileError(f"Pattern file '{config_path}' does not exist")
    if not config_path.is_file():
        raise IgnoreFileError(f"'{config_path}' is not a file")
    return [
        ln.strip()
        for ln in _read_patterns(config_path)
        if ln.strip() and not ln.lstrip().startswith("#")
    ]


def load_ignore_matcher(
    root: Path,
    filename: str = IGNORE_FILENAME,
    extra_patterns: Iterable[str] = (),
) -> Optional[IgnoreMatcher]:
    """Compile ``root/filename`` plus *extra_patterns* into a matcher.

    Returns ``None`` when there is nothing to match against, i.e. the ignore
    file is absent and no extra patterns were given.
    """
    extra = list(extra_patterns)
    ignore_path = Path(root) / filename
    if ignore_path.is_file():
        lines = _read_patterns(ignore_path)
    elif extra:
        lines = []
    else:
        return None
    return IgnoreMatcher(root, lines + extra)


# Path helpers
def relative_path(full_path: Path, base: Path) -> Optional[Path]:
    """Lexical path of *full_path* below *base*, or ``None`` if it is not below."""
    try:
        return Path(full_path).relative_to(base)
    except ValueError:
        return None


def canonical(path: Path) -> Path:
    """Absolute form of *path* with symlinks and ``..`` resolved."""
    return Path(path).resolve()


# Traversal
@dataclass
class CopyStats:
    copied: int = 0
    ignored: int = 0
    skipped_paths: List[str] = field(default_factory=list)

    @property
    def skipped(self) -> int:
        return len(self.skipped_paths)


class TreeWalker:
    """Breadth-first walk of *source* feeding non-ignored files to *sink*.

    The walker owns its worklist. Directories are listed in enqueue order, so
    a level is fully enumerated before the next one begins. The sink is
    finished exactly once, after the worklist is drained.
    """

    def __init__(
        self,
        source: Path,
        sink: "OutputSink",
        matcher: Optional[IgnoreMatcher] = None,
        destination: Optional[Path] = None,
        reporter: Optional[Reporter] = None,
    ) -> None:
        self.source = Path(source)
        self.sink = sink
        self.matcher = matcher if matcher is not None else IgnoreMatcher.empty(self.source)
        self.destination = canonical(destination) if destination is not None else None
        self.reporter = reporter or Reporter()
        self.stats = CopyStats()

    def run(self) -> CopyStats:
        queue: Deque[Path] = deque([self.source])
        while queue:
            directory = queue.popleft()
            if self._is_destination(directory):
                self.reporter.debug(f"Skipping destination {directory}")
                continue
            for child, is_dir in self._list(directory):
                if self.matcher.match(child, is_dir):
                    self.stats.ignored += 1
                    self.reporter.debug(f"Ignored {child}")
                elif is_dir:
                    queue.append(child)
                else:
                    self._copy(child)
        self.sink.finish()
        return self.stats

    def _skip(self, path: Path, msg: str) -> None:
        self.stats.skipped_paths.append(str(path))
        self.reporter.warn(msg)

    def _is_destination(self, directory: Path) -> bool:
        if self.destination is None:
            return False
        try:
            return canonical(directory) == self.destination
        except (OSError, RuntimeError) as e:
            self._skip(directory, f"Could not resolve {directory}: {e}")
            return True

    def _list(self, directory: Path) -> List[Tuple[Path, bool]]:
        try:
            with os.scandir(directory) as it:
                entries = sorted(it, key=lambda e: e.name)
        except OSError as e:
            if directory == self.source:
                raise WalkError(f"Could not read directory '{directory}': {e}")
            self._skip(directory, f"Could not read directory {directory}: {e}")
            return []

        self.reporter.debug(f"Reading {directory}")
        children: List[Tuple[Path, bool]] = []
        for entry in entries:
            child = directory / entry.name
            try:
                is_dir = entry.is_dir(follow_symlinks=False)
                if not is_dir and entry.is_symlink() and entry.is_dir():
                    self._skip(child, f"Not following directory symlink {child}")
                    continue
            except OSError as e:
                self._skip(child, f"Could not determine type of {child}: {e}")
                continue
            children.append((child, is_dir))
        return children

    def _copy(self, path: Path) -> None:
        if self.destination is not None and path.name == self.destination.name:
            try:
                is_destination = canonical(path) == self.destination
            except (OSError, RuntimeError) as e:
                self._skip(path, f"Could not resolve {path}: {e}")
                return
            if is_destination:
                self.reporter.debug(f"Skipping destination file {path}")
                return
        rel = relative_path(path, self.source)
        if rel is None:
            self._skip(path, f"Could not compute relative path of {path}")
            return
        if self.sink.write(rel, path):
            self.stats.copied += 1
            self.reporter.debug(f"Copied {rel.as_posix()}")
        else:
            self.stats.skipped_paths.append(str(path))
