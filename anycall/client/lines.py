"""Prompted line input, shared by interactive use and piped scripts."""

import io
import logging
from collections.abc import Iterable
from typing import TextIO

from rich.console import Console

logger = logging.getLogger(__name__)


class LineStream:
    """Reads exactly one line per prompt.

    End of input reads as a blank line, which closes every open collection
    and omits every remaining argument, so building always terminates.
    """

    def __init__(self, stream: TextIO, console: Console | None = None, *, echo: bool = False) -> None:
        self._stream = stream
        self._console = console
        self._echo = echo
        self.lines_read = 0
        self.exhausted = False

    @classmethod
    def from_lines(cls, lines: Iterable[str], console: Console | None = None) -> "LineStream":
        return cls(io.StringIO("".join(f"{line}\n" for line in lines)), console)

    def report(self, message: str) -> None:
        """Print a progress line next to the prompts, if there is a console."""
        if self._console:
            self._console.print(message, markup=False, highlight=False)

    def prompt(self, message: str) -> str:
        """Show ``message`` and read the answer, without its line ending."""
        if self._console:
            self._console.print(message, end="", markup=False, highlight=False)

        line = self._stream.readline()
        if not line:
            if not self.exhausted:
                logger.debug("Input exhausted after %d lines", self.lines_read)
            self.exhausted = True
        else:
            self.lines_read += 1
        line = line.rstrip("\r\n")

        if self._console and (self._echo or self.exhausted):
            self._console.print(line, markup=False, highlight=False)
        return line
