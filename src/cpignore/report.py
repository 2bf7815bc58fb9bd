"""
Diagnostic output for cpignore.

A :class:`Reporter` is handed to the walker and the sinks instead of writing
to a process-wide logger, so every component can be exercised against an
in-memory stream.
"""

from __future__ import annotations

import sys
from typing import Optional, TextIO

from colorama import Fore, Style

PREFIX = "[cpi]"


class Reporter:
    """Prefixed, optionally coloured messages on a text stream."""

    def __init__(
        self,
        stream: Optional[TextIO] = None,
        verbose: bool = False,
        color: Optional[bool] = None,
    ) -> None:
        self.stream = stream if stream is not None else sys.stderr
        self.verbose = verbose
        if color is None:
            isatty = getattr(self.stream, "isatty", None)
            color = bool(isatty and isatty())
        self.color = color

    def _emit(self, msg: str, tint: str = "") -> None:
        if self.color and tint:
            msg = tint + msg + Style.RESET_ALL
        print(msg, file=self.stream)

    def debug(self, msg: str) -> None:
        if self.verbose:
            self._emit(f"{PREFIX}   {msg}", Style.DIM)

    def info(self, msg: str) -> None:
        if self.verbose:
            self._emit(f"{PREFIX} {msg}")

    def warn(self, msg: str) -> None:
        self._emit(f"{PREFIX} ! {msg}", Fore.YELLOW)

    def error(self, msg: str) -> None:
        self._emit(f"Error: {msg}", Fore.RED)

    def success(self, msg: str) -> None:
        if self.verbose:
            self._emit(f"{PREFIX} {msg}", Fore.GREEN)
