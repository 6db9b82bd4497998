"""Streaming parser for per-base depth text (``samtools depth`` format).

Each non-blank line carries three whitespace-separated fields:
chromosome name, 1-based position and depth.  Records are yielded one at
a time so no input is ever held in memory.
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from typing import IO, Iterable, Iterator, Union

logger = logging.getLogger(__name__)


class SourceIOError(RuntimeError):
    """Failure to read from a record source (file, pipe or alignment)."""


class MalformedRecordError(ValueError):
    """An input line that does not parse into ``chrom pos depth``."""

    def __init__(self, line_no: int, line: str, reason: str) -> None:
        self.line_no = line_no
        self.line = line
        super().__init__(f"Malformed depth record at line {line_no} ({reason}): {line!r}")


@dataclass(frozen=True)
class PositionRecord:
    """Depth observed at a single reference position."""

    chrom: str
    pos: int
    depth: int


def parse_depth_line(line: str, line_no: int = 0) -> PositionRecord:
    """Parse one ``chrom pos depth`` line.

    Raises :class:`MalformedRecordError` if the line does not hold exactly
    three fields or if position/depth are not non-negative integers.
    """
    text = line.rstrip("\n\r")
    parts = text.split()
    if len(parts) != 3:
        raise MalformedRecordError(line_no, text, f"expected 3 fields, got {len(parts)}")
    chrom, pos_str, depth_str = parts
    try:
        pos = int(pos_str)
        depth = int(depth_str)
    except ValueError:
        raise MalformedRecordError(line_no, text, "position and depth must be integers") from None
    if pos < 0 or depth < 0:
        raise MalformedRecordError(line_no, text, "position and depth must be >= 0")
    return PositionRecord(chrom, pos, depth)


def iter_depth_lines(lines: Iterable[str]) -> Iterator[PositionRecord]:
    """Yield a record for each non-blank line of *lines*."""
    for line_no, line in enumerate(lines, 1):
        if not line.strip():
            continue
        yield parse_depth_line(line, line_no)


def stream_depth_records(source: Union[str, IO[str]]) -> Iterator[PositionRecord]:
    """Yield records from a depth file path, ``"-"`` for stdin, or an open handle."""
    if not isinstance(source, str):
        yield from _read_handle(source, getattr(source, "name", "<stream>"))
        return

    if source == "-":
        logger.debug("Reading depth records from stdin")
        yield from _read_handle(sys.stdin, "stdin")
        return

    logger.debug("Reading depth records from %s", source)
    try:
        fh = open(source)
    except OSError as exc:
        raise SourceIOError(f"Cannot read depth input {source}: {exc}") from exc
    with fh:
        yield from _read_handle(fh, source)


def _read_handle(fh: IO[str], name: str) -> Iterator[PositionRecord]:
    try:
        yield from iter_depth_lines(fh)
    except (OSError, UnicodeDecodeError) as exc:
        raise SourceIOError(f"Error while reading {name}: {exc}") from exc
