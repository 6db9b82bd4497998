"""Tests for line formatting and output sinks."""

import io
import os

import pytest

from slidedepth.metrics import WindowRecord
from slidedepth.output import (
    SinkIOError,
    SplitFileSink,
    StreamSink,
    format_record,
    make_sink,
)


class TestFormatRecord:
    def test_three_columns(self):
        rec = WindowRecord("chr1", 1, depth=11, nuc=2, pos=2)
        assert format_record(rec) == "chr1\t1\t5.500"

    def test_total_label(self):
        rec = WindowRecord("chr1", "TOTAL", depth=18, nuc=3, pos=3)
        assert format_record(rec) == "chr1\tTOTAL\t6.000"

    def test_coverage_columns(self):
        rec = WindowRecord("scaf_9", 4, depth=10, nuc=3, pos=7)
        assert format_record(rec, coverage=True) == "scaf_9\t4\t3.333\t3\t7"

    def test_three_decimals_rounding(self):
        rec = WindowRecord("chr1", 1, depth=2, nuc=3, pos=3)
        assert format_record(rec) == "chr1\t1\t0.667"


class TestStreamSink:
    def test_writes_lines(self):
        buf = io.StringIO()
        with StreamSink(buf) as sink:
            sink.open_target("chr1")
            sink.write("a")
            sink.close_target()
            sink.write("b")
        assert buf.getvalue() == "a\nb\n"
        assert sink.paths == []


class TestSplitFileSink:
    def test_one_file_per_chromosome(self, tmp_output_dir):
        stream = io.StringIO()
        with SplitFileSink("sample.bam", out_dir=str(tmp_output_dir), stream=stream) as sink:
            sink.open_target("chr1")
            sink.write("chr1 line")
            sink.open_target("chr2")  # closes chr1
            sink.write("chr2 line")
            sink.close_target()
            sink.write("grand total")

        chr1 = tmp_output_dir / "chr1_sample.bam.depth"
        chr2 = tmp_output_dir / "chr2_sample.bam.depth"
        assert chr1.read_text() == "chr1 line\n"
        assert chr2.read_text() == "chr2 line\n"
        assert stream.getvalue() == "grand total\n"
        assert sink.paths == [str(chr1), str(chr2)]

    def test_closed_when_block_raises(self, tmp_output_dir):
        sink = SplitFileSink("x", out_dir=str(tmp_output_dir), stream=io.StringIO())
        with pytest.raises(KeyError):
            with sink:
                sink.open_target("chr1")
                raise KeyError("boom")
        assert sink.current_path == ""

    def test_unwritable_target(self, tmp_path):
        sink = SplitFileSink("x", out_dir=str(tmp_path / "missing_dir"))
        with pytest.raises(SinkIOError) as exc_info:
            sink.open_target("chr1")
        assert exc_info.value.path == os.path.join(str(tmp_path / "missing_dir"), "chr1_x.depth")


class TestMakeSink:
    def test_selects_split(self, tmp_output_dir):
        assert isinstance(make_sink(True, "in.bam", str(tmp_output_dir)), SplitFileSink)

    def test_selects_stream(self):
        buf = io.StringIO()
        sink = make_sink(False, "in.bam", stream=buf)
        assert isinstance(sink, StreamSink)
        assert sink.stream is buf
