"""
cpignore - copy a directory tree with its ignore-file applied.

This package walks a source directory breadth-first, filters entries through
the root ``.gitignore`` (gitignore semantics via :mod:`pathspec`), and writes
every remaining file either into a destination directory or into a zip
archive.
"""

__version__ = "0.1.0"
__author__ = "cpignore Team"

from .core import (  # noqa: E402
    ArchiveWriteError,
    CopyStats,
    CpignoreError,
    DestinationExistsError,
    IgnoreFileError,
    IgnoreMatcher,
    InvalidRootError,
    OutputError,
    TreeWalker,
    WalkError,
    canonical,
    load_extra_patterns,
    load_ignore_matcher,
    relative_path,
)
from .report import Reporter  # noqa: E402
from .sinks import ArchiveSink, DirectorySink, OutputSink, open_sink  # noqa: E402

__all__ = [
    "__version__",
    "ArchiveSink",
    "ArchiveWriteError",
    "CopyStats",
    "CpignoreError",
    "DestinationExistsError",
    "DirectorySink",
    "IgnoreFileError",
    "IgnoreMatcher",
    "InvalidRootError",
    "OutputError",
    "OutputSink",
    "Reporter",
    "TreeWalker",
    "WalkError",
    "canonical",
    "load_extra_patterns",
    "load_ignore_matcher",
    "open_sink",
    "relative_path",
]
