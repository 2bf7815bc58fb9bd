"""
CLI entrypoint for cpignore.
"""
import argparse
import shutil
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from colorama import just_fix_windows_console

from . import __version__
from .core import (
    IGNORE_FILENAME,
    CopyStats,
    CpignoreError,
    DestinationExistsError,
    InvalidRootError,
    OutputError,
    TreeWalker,
    canonical,
    load_extra_patterns,
    load_ignore_matcher,
)
from .report import Reporter
from .sinks import open_sink

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_SKIPPED = 3


def _parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="cpi",
        description="Copy files with ignore-files applied.",
        epilog="Examples: cpi . ./dest    cpi . ./dest.zip",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    p.add_argument("src", type=Path, help="Source directory path")
    p.add_argument(
        "dest",
        type=Path,
        help="Destination directory path, or zip file name if it ends with .zip",
    )
    p.add_argument(
        "--no-gitignore",
        dest="gitignore",
        action="store_false",
        help=f"Disable using the {IGNORE_FILENAME} file for excluding",
    )
    p.add_argument(
        "-f", "--force", action="store_true", help="Overwrite destination if it exists"
    )
    p.add_argument(
        "--config",
        type=Path,
        help="Path to a file with extra ignore patterns (one per line)",
    )
    p.add_argument(
        "--strict",
        action="store_true",
        help=f"Exit with status {EXIT_SKIPPED} if any file had to be skipped",
    )
    p.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return p.parse_args(argv)


def prepare_destination(source: Path, dest: Path, force: bool, reporter: Reporter) -> None:
    """Refuse or clear an existing *dest*."""
    if not dest.exists() and not dest.is_symlink():
        return
    if not force:
        raise DestinationExistsError(f"'{dest}' already exists (use --force to overwrite)")
    dest_real = canonical(dest)
    if dest_real == canonical(source) or dest_real in canonical(source).parents:
        raise OutputError(f"Refusing to remove '{dest}': it contains the source directory")
    try:
        if dest.is_dir() and not dest.is_symlink():
            shutil.rmtree(dest)
            reporter.info(f"Removed existing directory {dest}")
        else:
            dest.unlink()
            reporter.info(f"Removed existing file {dest}")
    except OSError as e:
        raise OutputError(f"Could not remove '{dest}': {e}")


def copy_tree(
    source: Path,
    dest: Path,
    *,
    use_gitignore: bool = True,
    force: bool = False,
    extra_patterns: Sequence[str] = (),
    reporter: Optional[Reporter] = None,
) -> CopyStats:
    """Validate, prepare *dest*, walk *source* once and finalize the sink."""
    reporter = reporter or Reporter()
    if not source.exists():
        raise InvalidRootError(f"'{source}' does not exist")
    if not source.is_dir():
        raise InvalidRootError(f"'{source}' is not a directory")

    prepare_destination(source, dest, force, reporter)

    matcher = None
    if use_gitignore:
        if not (source / IGNORE_FILENAME).is_file():
            reporter.warn(f"Cannot find {IGNORE_FILENAME} file")
        matcher = load_ignore_matcher(source, extra_patterns=extra_patterns)
        if matcher is not None:
            reporter.info(f"Ignore filtering enabled ({matcher.pattern_count} patterns)")

    sink = open_sink(dest, reporter)
    walker = TreeWalker(source, sink, matcher=matcher, destination=dest, reporter=reporter)
    try:
        stats = walker.run()
    except CpignoreError:
        # a failed finish leaves the archive as written
        if not sink.finished:
            sink.abort()
        raise
    reporter.success(
        f"Done → {dest}. {stats.copied} copied, "
        f"{stats.ignored} ignored, {stats.skipped} skipped."
    )
    return stats


def main(argv: Optional[List[str]] = None) -> None:
    just_fix_windows_console()
    reporter = Reporter()
    try:
        ns = _parse_args(argv)
        reporter.verbose = ns.verbose

        extra: List[str] = []
        if ns.config and ns.gitignore:
            extra = load_extra_patterns(ns.config)
            reporter.info(f"Loaded extra patterns from {ns.config}")

        stats = copy_tree(
            ns.src,
            ns.dest,
            use_gitignore=ns.gitignore,
            force=ns.force,
            extra_patterns=extra,
            reporter=reporter,
        )
        if ns.strict and stats.skipped:
            reporter.error(f"{stats.skipped} entries were skipped")
            sys.exit(EXIT_SKIPPED)

    except CpignoreError as e:
        reporter.error(str(e))
        sys.exit(EXIT_FAILURE)
    except KeyboardInterrupt:
        print("\nCancelled.", file=sys.stderr)
        sys.exit(EXIT_FAILURE)
    except Exception as e:
        reporter.error(f"Unexpected error: {e}")
        sys.exit(EXIT_FAILURE)


if __name__ == "__main__":
    main()
