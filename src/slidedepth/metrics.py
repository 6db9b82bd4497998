"""Running depth sums for the windowed aggregator.

Three small mutable structures carry all state between records:

- :class:`Accumulator` — sums since the start of the current chromosome.
- :class:`BoundaryBuffer` — the accumulator snapshot at the last window
  boundary plus the index of the window that starts there.
- :class:`GrandTotal` — sums over all finished chromosomes.

Window statistics are always a difference between the first two, so no
per-base data is ever stored.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

from slidedepth import TOTAL_LABEL
from slidedepth.records import PositionRecord


class DegenerateWindowError(ArithmeticError):
    """A window with no covered nucleotides, whose mean depth is undefined."""

    def __init__(self, chrom: str, label: Union[int, str]) -> None:
        self.chrom = chrom
        self.label = label
        super().__init__(
            f"Cannot compute mean depth for {chrom} window {label}: "
            "window contains no covered nucleotides"
        )


@dataclass
class Accumulator:
    """Cumulative depth, covered-nucleotide count and last position of a chromosome."""

    chrom: str
    depth: int = 0
    nuc: int = 0
    pos: int = 0

    @classmethod
    def from_record(cls, record: PositionRecord) -> "Accumulator":
        return cls(chrom=record.chrom, depth=record.depth, nuc=1, pos=record.pos)

    def add(self, record: PositionRecord) -> None:
        """Add a record of the current chromosome."""
        self.depth += record.depth
        self.nuc += 1
        self.pos = record.pos


@dataclass
class BoundaryBuffer:
    """Accumulator values at the previous window boundary."""

    depth: int = 0
    nuc: int = 0
    pos: int = 0
    index: int = 1

    def advance(self, acc: Accumulator) -> None:
        """Move the boundary to *acc* and start the next window."""
        self.depth = acc.depth
        self.nuc = acc.nuc
        self.pos = acc.pos
        self.index += 1

    def reset(self) -> None:
        self.depth = 0
        self.nuc = 0
        self.pos = 0
        self.index = 1


@dataclass
class GrandTotal:
    """Sums over every finished chromosome."""

    depth: int = 0
    nuc: int = 0
    pos: int = 0

    def add(self, acc: Accumulator) -> None:
        self.depth += acc.depth
        self.nuc += acc.nuc
        # Span is counted as the last position seen, as reported per chromosome.
        self.pos += acc.pos

    def as_accumulator(self) -> Accumulator:
        return Accumulator(chrom=TOTAL_LABEL, depth=self.depth, nuc=self.nuc, pos=self.pos)


@dataclass(frozen=True)
class WindowRecord:
    """One emitted window (or total) line."""

    chrom: str
    label: Union[int, str]
    depth: int
    nuc: int
    pos: int

    @property
    def mean_depth(self) -> float:
        return self.depth / self.nuc


def window_record(
    acc: Accumulator,
    buf: Optional[BoundaryBuffer],
    final: bool = False,
) -> WindowRecord:
    """Build the record for the window ending at *acc*.

    With *final* set (and no buffer) the accumulator's totals are reported
    under the ``TOTAL`` label; otherwise the deltas since *buf* are
    reported under the buffer's window index.
    """
    if final or buf is None:
        record = WindowRecord(acc.chrom, TOTAL_LABEL, acc.depth, acc.nuc, acc.pos)
    else:
        record = WindowRecord(
            acc.chrom,
            buf.index,
            acc.depth - buf.depth,
            acc.nuc - buf.nuc,
            acc.pos - buf.pos,
        )
    if record.nuc == 0:
        raise DegenerateWindowError(record.chrom, record.label)
    return record
