"""Window boundary policies.

A policy decides, after each record has been added to the accumulator,
whether the current window is complete.  One policy object is chosen per
run from :class:`WindowMode`; policies hold no state of their own.
"""

from __future__ import annotations

import enum

from slidedepth.metrics import Accumulator, BoundaryBuffer


class WindowMode(str, enum.Enum):
    """How a chromosome is partitioned into windows."""

    POSITION = "position"  # reference span
    MAPPED = "mapped"  # covered (mapped) nucleotides
    DISABLED = "disabled"  # whole chromosome only


class WindowPolicy:
    """Base policy: never close a window mid-chromosome."""

    mode = WindowMode.DISABLED

    def __init__(self, window_size: int) -> None:
        if window_size < 1:
            raise ValueError(f"window size must be a positive integer, got {window_size}")
        self.window_size = window_size

    def should_close(self, acc: Accumulator, buf: BoundaryBuffer) -> bool:
        return False

    def __repr__(self) -> str:
        return f"{type(self).__name__}(window_size={self.window_size})"


class PositionSpanPolicy(WindowPolicy):
    """Close once the reference span since the boundary reaches the window size."""

    mode = WindowMode.POSITION

    def should_close(self, acc: Accumulator, buf: BoundaryBuffer) -> bool:
        return acc.pos - buf.pos >= self.window_size


class MappedNucleotidePolicy(WindowPolicy):
    """Close once the covered nucleotides since the boundary reach the window size.

    Suited to sparse data such as RAD-seq, where long uncovered stretches
    would otherwise produce near-empty position windows.
    """

    mode = WindowMode.MAPPED

    def should_close(self, acc: Accumulator, buf: BoundaryBuffer) -> bool:
        return acc.nuc - buf.nuc >= self.window_size


class DisabledPolicy(WindowPolicy):
    """Compact mode: one summary per chromosome."""


_POLICIES = {
    WindowMode.POSITION: PositionSpanPolicy,
    WindowMode.MAPPED: MappedNucleotidePolicy,
    WindowMode.DISABLED: DisabledPolicy,
}


def select_policy(mode: WindowMode, window_size: int) -> WindowPolicy:
    """Return the policy implementing *mode*."""
    try:
        cls = _POLICIES[WindowMode(mode)]
    except ValueError:
        raise ValueError(f"Unknown window mode: {mode}") from None
    return cls(window_size)
