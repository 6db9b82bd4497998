"""Output sinks and line formatting for window records.

Two sinks are provided:

- :class:`StreamSink` — every line goes to one shared stream (stdout).
- :class:`SplitFileSink` — each chromosome's lines go to
  ``<out_dir>/<chrom>_<input_name>.depth``; lines written while no
  chromosome file is open (the grand total) go to the shared stream.

Per-chromosome files are scoped: :meth:`OutputSink.open_target` closes
any file still open before opening the next, and leaving the sink's
``with`` block closes the last one.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import IO, Optional

from slidedepth.metrics import WindowRecord

logger = logging.getLogger(__name__)


class SinkIOError(RuntimeError):
    """Failure to open, write or close an output target."""

    def __init__(self, path: str, exc: BaseException) -> None:
        self.path = path
        super().__init__(f"Output error on {path}: {exc}")


def format_record(record: WindowRecord, coverage: bool = False) -> str:
    """Format *record* as a tab-separated line (without newline).

    Columns: chromosome, window label, mean depth (3 decimals) and, with
    *coverage*, covered nucleotides and position span.
    """
    fields = [record.chrom, str(record.label), f"{record.mean_depth:.3f}"]
    if coverage:
        fields.append(str(record.nuc))
        fields.append(str(record.pos))
    return "\t".join(fields)


class OutputSink:
    """Base sink writing to a single shared stream."""

    def __init__(self, stream: Optional[IO[str]] = None) -> None:
        self.stream = stream if stream is not None else sys.stdout
        self.paths: list[str] = []

    @property
    def name(self) -> str:
        return getattr(self.stream, "name", "<stream>")

    def open_target(self, chrom: str) -> None:
        """Start output for *chrom*."""

    def close_target(self) -> None:
        """Finish output for the current chromosome."""

    def write(self, line: str) -> None:
        try:
            self.stream.write(line + "\n")
        except OSError as exc:
            raise SinkIOError(self.name, exc) from exc

    def close(self) -> None:
        self.close_target()
        try:
            self.stream.flush()
        except OSError as exc:
            raise SinkIOError(self.name, exc) from exc

    def __enter__(self) -> "OutputSink":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            self.close()
        else:
            # Keep the original error; only release file handles.
            try:
                self.close_target()
            except SinkIOError as close_exc:
                logger.warning("%s", close_exc)


class StreamSink(OutputSink):
    """All records on one stream."""


class SplitFileSink(OutputSink):
    """One ``<chrom>_<input_name>.depth`` file per chromosome."""

    def __init__(
        self,
        input_name: str,
        out_dir: str = ".",
        stream: Optional[IO[str]] = None,
    ) -> None:
        super().__init__(stream)
        self.input_name = input_name
        self.out_dir = out_dir
        self._handle: Optional[IO[str]] = None
        self._path: str = ""

    @property
    def current_path(self) -> str:
        """Path of the open chromosome file, or "" when none is open."""
        return self._path

    def target_path(self, chrom: str) -> str:
        return os.path.join(self.out_dir, f"{chrom}_{self.input_name}.depth")

    def open_target(self, chrom: str) -> None:
        self.close_target()
        path = self.target_path(chrom)
        try:
            self._handle = open(path, "w")
        except OSError as exc:
            raise SinkIOError(path, exc) from exc
        self._path = path
        self.paths.append(path)
        logger.debug("Opened %s", path)

    def close_target(self) -> None:
        if self._handle is None:
            return
        handle, path = self._handle, self._path
        self._handle = None
        self._path = ""
        try:
            handle.close()
        except OSError as exc:
            raise SinkIOError(path, exc) from exc
        logger.debug("Closed %s", path)

    def write(self, line: str) -> None:
        if self._handle is None:
            super().write(line)
            return
        try:
            self._handle.write(line + "\n")
        except OSError as exc:
            raise SinkIOError(self._path, exc) from exc


def make_sink(
    split_files: bool,
    input_name: str,
    out_dir: str = ".",
    stream: Optional[IO[str]] = None,
) -> OutputSink:
    """Return the sink matching the *split_files* setting."""
    if split_files:
        return SplitFileSink(input_name, out_dir=out_dir, stream=stream)
    return StreamSink(stream)
