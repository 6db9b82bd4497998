"""Depth record producers: ``samtools depth`` and pysam pileups.

Both engines yield :class:`~slidedepth.records.PositionRecord` objects
lazily, in the alignment file's sort order, so the aggregator never holds
more than one record at a time.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
from typing import Iterator, Optional

import pysam

from slidedepth.records import PositionRecord, SourceIOError, iter_depth_lines, stream_depth_records

logger = logging.getLogger(__name__)

ALIGNMENT_SUFFIXES = (".bam", ".cram")

# pileup otherwise stops counting reads at 8000 per column
MAX_PILEUP_DEPTH = 2**31 - 1


def select_engine(engine: str) -> str:
    """Resolve an engine name to a concrete engine.

    Parameters
    ----------
    engine : str
        One of ``"auto"``, ``"samtools"``, ``"pysam"``.

    Returns
    -------
    str
        ``"samtools"`` or ``"pysam"``.

    Raises
    ------
    RuntimeError
        If samtools is requested but not on ``PATH``, or the name is unknown.
    """
    if engine == "samtools":
        if shutil.which("samtools"):
            return "samtools"
        raise RuntimeError("samtools not found on PATH. Install it or use --engine pysam.")

    if engine == "pysam":
        return "pysam"

    if engine != "auto":
        raise RuntimeError(f"Unknown engine: {engine}")

    if shutil.which("samtools"):
        logger.info("Auto-selected engine: samtools")
        return "samtools"
    logger.info("samtools not on PATH; auto-selected engine: pysam")
    return "pysam"


def is_alignment_file(path: str) -> bool:
    return path.lower().endswith(ALIGNMENT_SUFFIXES)


# ---------------------------------------------------------------------------
# samtools depth engine
# ---------------------------------------------------------------------------


def stream_samtools_depth(
    bam_path: str,
    reference: Optional[str] = None,
) -> Iterator[PositionRecord]:
    """Stream ``samtools depth`` output as records.

    Raises :class:`SourceIOError` if samtools cannot be started or exits
    with a non-zero status.  The subprocess is terminated if the consumer
    stops iterating early.
    """
    cmd = ["samtools", "depth", bam_path]
    if reference:
        cmd.extend(["--reference", reference])

    logger.info("Running: %s", " ".join(cmd))
    try:
        proc = subprocess.Popen(
            cmd,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            bufsize=1,  # line-buffered
        )
    except OSError as exc:
        raise SourceIOError(f"Cannot run samtools depth: {exc}") from exc

    assert proc.stdout is not None
    finished = False
    try:
        yield from iter_depth_lines(proc.stdout)
        finished = True
    finally:
        if not finished and proc.poll() is None:
            proc.terminate()
        proc.stdout.close()
        stderr_output = proc.stderr.read() if proc.stderr else ""
        if proc.stderr:
            proc.stderr.close()
        proc.wait()

    if proc.returncode != 0:
        raise SourceIOError(
            f"samtools depth exited with code {proc.returncode}: {stderr_output.strip()}"
        )


# ---------------------------------------------------------------------------
# pysam engine
# ---------------------------------------------------------------------------


def stream_pysam_depth(
    bam_path: str,
    reference: Optional[str] = None,
) -> Iterator[PositionRecord]:
    """Compute per-base depth in-process from pileup columns.

    Positions are reported 1-based, as ``samtools depth`` does, and
    columns with no aligned bases are skipped.  The file must be indexed
    (see :func:`ensure_index`).  Unmapped, secondary,
    QC-failed and duplicate reads are excluded by the pileup defaults;
    base quality is not filtered.
    """
    try:
        af = pysam.AlignmentFile(bam_path, reference_filename=reference)
    except (OSError, ValueError) as exc:
        raise SourceIOError(f"Cannot open alignment file {bam_path}: {exc}") from exc

    with af:
        try:
            for column in af.pileup(
                max_depth=MAX_PILEUP_DEPTH,
                min_base_quality=0,
                ignore_overlaps=False,
                ignore_orphans=False,
            ):
                depth = column.get_num_aligned()
                if depth == 0:
                    continue
                yield PositionRecord(column.reference_name, column.reference_pos + 1, depth)
        except (OSError, ValueError) as exc:
            raise SourceIOError(f"Error while reading {bam_path}: {exc}") from exc


# ---------------------------------------------------------------------------
# Source selection
# ---------------------------------------------------------------------------


def open_record_source(
    input_path: str,
    engine: str = "auto",
    reference: Optional[str] = None,
    no_index: bool = False,
) -> Iterator[PositionRecord]:
    """Return the record stream for *input_path*.

    Alignment files (``.bam``/``.cram``) are run through an engine;
    anything else, including ``"-"`` for stdin, is read as depth text.
    """
    if input_path == "-" or not is_alignment_file(input_path):
        return stream_depth_records(input_path)

    resolved = select_engine(engine)
    if resolved == "samtools":
        return stream_samtools_depth(input_path, reference=reference)
    ensure_index(input_path, no_index=no_index)
    return stream_pysam_depth(input_path, reference=reference)


def input_display_name(input_path: str) -> str:
    """Name used in per-chromosome output file names."""
    if input_path == "-":
        return "stdin"
    return os.path.basename(input_path)


def ensure_index(bam_path: str, no_index: bool = False) -> None:
    """Ensure the BAM/CRAM file has an index.

    Creates one with ``pysam.index`` if missing and *no_index* is False.
    Raises SourceIOError if the index is missing and *no_index* is True.
    """
    for suffix in (".bai", ".csi", ".crai"):
        if os.path.exists(bam_path + suffix):
            return
    # Also check path without extension + suffix (e.g. sample.bam → sample.bai)
    base, _ = os.path.splitext(bam_path)
    for suffix in (".bai", ".csi", ".crai"):
        if os.path.exists(base + suffix):
            return

    if no_index:
        raise SourceIOError(
            f"Index not found for '{bam_path}' and --no-index prevents creation. "
            f"Create it manually: samtools index {bam_path}"
        )

    logger.info("Creating index for %s ...", bam_path)
    try:
        pysam.index(bam_path)
    except pysam.SamtoolsError as exc:
        raise SourceIOError(f"Indexing {bam_path} failed: {exc}") from exc
    logger.info("Index created for %s", bam_path)
