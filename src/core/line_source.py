"""
Line sources for the listing parser.

A line source is any object with a ``read_line()`` method returning the
next line of text, or ``None`` once the input is exhausted. Returned
lines may keep their trailing newline and padding. Read failures are
raised by the source itself (usually ``OSError``) and are not caught by
the parser.
"""

import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Iterable, Iterator, Optional, Protocol, Union


class LineSource(Protocol):
    """Interface consumed by the parser."""

    def read_line(self) -> Optional[str]:
        ...


class BufLineReader:
    """Reads lines from a text stream such as an open file or sys.stdin."""

    def __init__(self, stream):
        self._stream = stream
        self._exhausted = False

    def read_line(self) -> Optional[str]:
        if self._exhausted:
            return None
        line = self._stream.readline()
        if line == '':
            self._exhausted = True
            return None
        return line


class IterLineReader:
    """Reads lines from any iterable of strings."""

    def __init__(self, lines: Iterable[str]):
        self._lines: Iterator[str] = iter(lines)
        self._exhausted = False

    def read_line(self) -> Optional[str]:
        if self._exhausted:
            return None
        try:
            return next(self._lines)
        except StopIteration:
            self._exhausted = True
            return None


@contextmanager
def open_line_source(path: Union[str, Path], encoding: str = 'utf-8'):
    """
    Open a listing file as a line source.

    ``-`` selects standard input, which is left open on exit.

    Args:
        path: Path to the listing file, or '-'
        encoding: Text encoding of the file

    Yields:
        BufLineReader over the opened stream
    """
    if str(path) == '-':
        yield BufLineReader(sys.stdin)
        return

    with open(path, 'r', encoding=encoding) as f:
        yield BufLineReader(f)
