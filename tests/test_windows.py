"""Tests for window boundary policies."""

import pytest

from slidedepth.metrics import Accumulator, BoundaryBuffer
from slidedepth.windows import (
    DisabledPolicy,
    MappedNucleotidePolicy,
    PositionSpanPolicy,
    WindowMode,
    select_policy,
)


def _acc(nuc, pos):
    return Accumulator("chr1", depth=nuc * 10, nuc=nuc, pos=pos)


class TestSelectPolicy:
    @pytest.mark.parametrize(
        "mode, cls",
        [
            (WindowMode.POSITION, PositionSpanPolicy),
            (WindowMode.MAPPED, MappedNucleotidePolicy),
            (WindowMode.DISABLED, DisabledPolicy),
            ("mapped", MappedNucleotidePolicy),
        ],
    )
    def test_mode_to_policy(self, mode, cls):
        policy = select_policy(mode, 100)
        assert isinstance(policy, cls)
        assert policy.window_size == 100

    def test_unknown_mode(self):
        with pytest.raises(ValueError):
            select_policy("sliding", 100)

    def test_window_size_must_be_positive(self):
        with pytest.raises(ValueError):
            select_policy(WindowMode.POSITION, 0)


class TestPositionSpanPolicy:
    def test_closes_at_span(self):
        policy = PositionSpanPolicy(2)
        buf = BoundaryBuffer()
        assert policy.should_close(_acc(2, 2), buf)
        assert not policy.should_close(_acc(1, 1), buf)

    def test_uses_span_not_count(self):
        # 3 covered positions spread over 1000 bp
        policy = PositionSpanPolicy(500)
        buf = BoundaryBuffer(depth=10, nuc=1, pos=10, index=1)
        assert policy.should_close(_acc(3, 1010), buf)


class TestMappedNucleotidePolicy:
    def test_closes_at_count(self):
        policy = MappedNucleotidePolicy(3)
        buf = BoundaryBuffer(depth=0, nuc=2, pos=50, index=2)
        assert not policy.should_close(_acc(4, 100000), buf)
        assert policy.should_close(_acc(5, 100001), buf)


class TestDisabledPolicy:
    def test_never_closes(self):
        policy = DisabledPolicy(1)
        assert not policy.should_close(_acc(10**6, 10**9), BoundaryBuffer())

    def test_is_pure(self):
        policy = PositionSpanPolicy(2)
        acc, buf = _acc(2, 2), BoundaryBuffer()
        policy.should_close(acc, buf)
        assert (acc.nuc, acc.pos, buf.index) == (2, 2, 1)
