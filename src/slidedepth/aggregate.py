"""Single-pass windowed depth aggregation.

Consumes :class:`~slidedepth.records.PositionRecord` objects grouped by
chromosome and in ascending position order, and writes one line per
closed window, one ``TOTAL`` line per chromosome change and a final
``TOTAL TOTAL`` grand total.  Memory use is constant: only the current
accumulator, the last boundary snapshot and the grand total are kept.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional

from slidedepth import DEFAULT_WINDOW_SIZE
from slidedepth.metrics import (
    Accumulator,
    BoundaryBuffer,
    GrandTotal,
    WindowRecord,
    window_record,
)
from slidedepth.output import OutputSink, format_record, make_sink
from slidedepth.records import PositionRecord
from slidedepth.windows import WindowMode, select_policy

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AggregationOptions:
    """Run configuration, fixed for the whole stream."""

    window_size: int = DEFAULT_WINDOW_SIZE
    mode: WindowMode = WindowMode.POSITION
    coverage: bool = False
    split_files: bool = False
    input_name: str = "stdin"
    out_dir: str = "."

    def __post_init__(self) -> None:
        if isinstance(self.window_size, bool) or not isinstance(self.window_size, int):
            raise ValueError(f"window size must be an integer, got {self.window_size!r}")
        if self.window_size < 1:
            raise ValueError(f"window size must be a positive integer, got {self.window_size}")
        object.__setattr__(self, "mode", WindowMode(self.mode))


@dataclass
class AggregationSummary:
    """What a run consumed and wrote."""

    n_records: int = 0
    n_chromosomes: int = 0
    n_lines: int = 0
    grand_total: GrandTotal = field(default_factory=GrandTotal)
    output_paths: list[str] = field(default_factory=list)


class WindowAggregator:
    """Stateful aggregator; feed records with :meth:`add`, then call :meth:`finish`."""

    def __init__(self, options: AggregationOptions, sink: OutputSink) -> None:
        self.options = options
        self.sink = sink
        self.policy = select_policy(options.mode, options.window_size)
        self.acc: Optional[Accumulator] = None
        self.buf = BoundaryBuffer()
        self.total = GrandTotal()
        self.summary = AggregationSummary(grand_total=self.total)
        logger.info("Window policy: %r", self.policy)

    def add(self, record: PositionRecord) -> None:
        self.summary.n_records += 1
        acc = self.acc
        if acc is None:
            self._start_chromosome(record)
            return
        if record.chrom != acc.chrom:
            self._switch_chromosome(record)
            return

        acc.add(record)
        if self.policy.should_close(acc, self.buf):
            self._emit(window_record(acc, self.buf))
            self.buf.advance(acc)

    def finish(self) -> AggregationSummary:
        """Flush the last chromosome and write the grand total."""
        acc = self.acc
        if acc is None:
            logger.warning("No depth records in input; nothing written.")
            return self.summary

        # Compact mode never moves the boundary, so the pending window is
        # the whole chromosome.
        final = self.policy.mode is WindowMode.DISABLED
        self._emit(window_record(acc, self.buf, final=final))
        self.total.add(acc)
        self.sink.close_target()
        self._emit(window_record(self.total.as_accumulator(), None, final=True))

        self.summary.output_paths = list(self.sink.paths)
        logger.info(
            "Aggregated %d records over %d chromosome(s); %d line(s) written",
            self.summary.n_records,
            self.summary.n_chromosomes,
            self.summary.n_lines,
        )
        return self.summary

    def _start_chromosome(self, record: PositionRecord) -> None:
        self.acc = Accumulator.from_record(record)
        self.buf.reset()
        self.summary.n_chromosomes += 1
        self.sink.open_target(record.chrom)

    def _switch_chromosome(self, record: PositionRecord) -> None:
        acc = self.acc
        assert acc is not None
        logger.debug("Chromosome %s finished (%d positions); next: %s", acc.chrom, acc.nuc, record.chrom)
        self._emit(window_record(acc, None, final=True))
        self.total.add(acc)
        self._start_chromosome(record)

    def _emit(self, record: WindowRecord) -> None:
        self.sink.write(format_record(record, self.options.coverage))
        self.summary.n_lines += 1


def aggregate_depth(
    records: Iterable[PositionRecord],
    options: Optional[AggregationOptions] = None,
    sink: Optional[OutputSink] = None,
) -> AggregationSummary:
    """Aggregate *records* into window lines written to *sink*.

    Parameters
    ----------
    records : iterable of PositionRecord
        Sorted by position within each chromosome; chromosomes contiguous.
    options : AggregationOptions or None
        Defaults to 5000 bp position windows on stdout.
    sink : OutputSink or None
        Built from *options* when omitted.

    Returns
    -------
    AggregationSummary

    Raises
    ------
    DegenerateWindowError
        If a window to be reported has no covered nucleotides.
    SinkIOError, SourceIOError, MalformedRecordError
        Propagated from the sink and the record source.  Any open
        per-chromosome file is closed before the error propagates.
    """
    if options is None:
        options = AggregationOptions()
    if sink is None:
        sink = make_sink(options.split_files, options.input_name, options.out_dir)

    with sink:
        aggregator = WindowAggregator(options, sink)
        for record in records:
            aggregator.add(record)
        return aggregator.finish()
