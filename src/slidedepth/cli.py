"""CLI entry point for slidedepth.

Orchestrates: argument parsing → input validation → record source
selection → windowed aggregation → summary.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from typing import Optional

from slidedepth import DEFAULT_WINDOW_SIZE, __version__
from slidedepth.aggregate import AggregationOptions, aggregate_depth
from slidedepth.engines import input_display_name, is_alignment_file, open_record_source
from slidedepth.metrics import DegenerateWindowError
from slidedepth.output import SinkIOError
from slidedepth.records import MalformedRecordError, SourceIOError
from slidedepth.windows import WindowMode

logger = logging.getLogger("slidedepth")


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="slidedepth",
        description=(
            "slidedepth — Read depth over windows of chromosomes/scaffolds.\n\n"
            "Takes a sorted BAM/CRAM (or precomputed 'samtools depth' output) and\n"
            "reports mean read depth per window and per chromosome/scaffold, in\n"
            "the order they appear in the input. Windows are either stretches of\n"
            "the reference (default, suited to resequencing data) or stretches of\n"
            "mapped nucleotides (--mapped, suited to RAD data). Long unmapped\n"
            "stretches are not split into separate windows."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Output columns (4 and 5 only with --coverage):\n"
            "  1  chromosome/scaffold name\n"
            "  2  window number within the chromosome ('TOTAL' = whole chromosome)\n"
            "  3  mean read depth\n"
            "  4  number of covered nucleotides\n"
            "  5  number of nucleotides spanned\n\n"
            "Examples:\n"
            "  slidedepth sample.bam\n"
            "  slidedepth -w 10000 --coverage sample.bam\n"
            "  slidedepth --mapped -w 500 radseq.bam\n"
            "  samtools depth sample.bam | slidedepth --compact -\n"
        ),
    )

    parser.add_argument("--version", action="version", version=f"slidedepth {__version__}")

    # ── Positional ──
    parser.add_argument(
        "input",
        help="Sorted BAM/CRAM file, a 'samtools depth' text file, or '-' for stdin.",
    )

    # ── Window options ──
    win = parser.add_argument_group("Window options")
    win.add_argument(
        "-w", "--windowsize",
        type=int,
        default=DEFAULT_WINDOW_SIZE,
        metavar="INT",
        help=f"Size of the discrete windows (default: {DEFAULT_WINDOW_SIZE}).",
    )
    mode = win.add_mutually_exclusive_group()
    mode.add_argument(
        "-m", "--mapped",
        action="store_true",
        help="Partition chromosomes by mapped nucleotides instead of reference span.",
    )
    mode.add_argument(
        "-c", "--compact",
        action="store_true",
        help="Do not partition; only report whole chromosomes/scaffolds.",
    )

    # ── Output options ──
    out = parser.add_argument_group("Output options")
    out.add_argument(
        "--coverage",
        action="store_true",
        help="Add covered-nucleotide and spanned-nucleotide columns.",
    )
    out.add_argument(
        "-f", "--splitfile",
        action="store_true",
        help=(
            "Write each chromosome/scaffold to its own file named "
            "<chr>_<input>.depth (many scaffolds means many files)."
        ),
    )
    out.add_argument(
        "--out-dir",
        metavar="DIR",
        default=".",
        help="Directory for --splitfile outputs (default: current directory).",
    )

    # ── Engine options ──
    eng = parser.add_argument_group("Engine options")
    eng.add_argument(
        "--engine",
        choices=["auto", "samtools", "pysam"],
        default="auto",
        help="Depth engine for BAM/CRAM input (default: auto).",
    )
    eng.add_argument(
        "--reference",
        metavar="FASTA",
        default=None,
        help="Reference FASTA for CRAM decoding.",
    )
    eng.add_argument(
        "--no-index",
        action="store_true",
        help="Do not create a .bai/.csi/.crai index if missing (pysam engine).",
    )

    # ── General ──
    gen = parser.add_argument_group("General")
    gen.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase logging verbosity (can repeat: -vv).",
    )
    gen.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress all non-error output to stderr.",
    )

    return parser


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def _validate_args(args: argparse.Namespace) -> None:
    """Validate CLI arguments; exit with a clear error on failure."""
    if args.input != "-" and not os.path.isfile(args.input):
        _error(f"{args.input} is not a file", code=1)

    if args.windowsize < 1:
        _error("--windowsize must be >= 1.", code=1)

    if args.splitfile and not os.path.isdir(args.out_dir):
        _error(f"Output directory not found: {args.out_dir}", code=1)

    if args.input.lower().endswith(".cram") and args.reference is None:
        if not os.environ.get("REF_PATH") and not os.environ.get("REF_CACHE"):
            _error(
                "CRAM input requires --reference <fasta> or REF_PATH/REF_CACHE environment variable.",
                code=1,
            )


def _error(message: str, code: int = 1) -> None:
    """Print an error to stderr and exit."""
    print(f"[slidedepth] ERROR: {message}", file=sys.stderr)
    sys.exit(code)


def _window_mode(args: argparse.Namespace) -> WindowMode:
    if args.compact:
        return WindowMode.DISABLED
    if args.mapped:
        return WindowMode.MAPPED
    return WindowMode.POSITION


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------


def main(argv: Optional[list[str]] = None) -> None:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    # ── Logging setup ──
    if args.quiet:
        log_level = logging.ERROR
    elif args.verbose >= 2:
        log_level = logging.DEBUG
    elif args.verbose == 1:
        log_level = logging.INFO
    else:
        log_level = logging.WARNING

    logging.basicConfig(
        level=log_level,
        format="[slidedepth] %(levelname)s: %(message)s",
        stream=sys.stderr,
    )

    # ── Validate ──
    _validate_args(args)

    options = AggregationOptions(
        window_size=args.windowsize,
        mode=_window_mode(args),
        coverage=args.coverage,
        split_files=args.splitfile,
        input_name=input_display_name(args.input),
        out_dir=args.out_dir,
    )
    if is_alignment_file(args.input):
        logger.info("Reading alignments from %s", args.input)
    logger.info(
        "Window mode: %s, size %d%s",
        options.mode.value,
        options.window_size,
        ", one file per chromosome" if options.split_files else "",
    )

    # ── Select source ──
    try:
        records = open_record_source(
            args.input,
            engine=args.engine,
            reference=args.reference,
            no_index=args.no_index,
        )
    except RuntimeError as exc:
        _error(str(exc), code=2)
        return

    # ── Aggregate ──
    try:
        summary = aggregate_depth(records, options)
    except MalformedRecordError as exc:
        _error(str(exc), code=3)
        return
    except DegenerateWindowError as exc:
        _error(str(exc), code=4)
        return
    except SinkIOError as exc:
        _error(str(exc), code=5)
        return
    except SourceIOError as exc:
        _error(str(exc), code=2)
        return

    if summary.output_paths:
        logger.info("Wrote %d per-chromosome file(s) to %s", len(summary.output_paths), args.out_dir)


if __name__ == "__main__":
    main()
