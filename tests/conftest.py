"""Shared pytest fixtures for slidedepth tests."""

import os

import pysam
import pytest

from slidedepth.records import PositionRecord

# Reads are (contig index, 0-based start, length); all fully matched.
#
# Resulting 1-based depth:
#   chr1: 1-5 → 1, 6-10 → 2, 11-15 → 1, 21-30 → 1  (25 positions, depth sum 30)
#   chr2: 101-110 → 1                               (10 positions, depth sum 10)
SYNTHETIC_READS = [
    (0, 0, 10),
    (0, 5, 10),
    (0, 20, 10),
    (1, 100, 10),
]


def _write_synthetic_bam(path: str, index: bool = True, reads=SYNTHETIC_READS) -> str:
    unsorted = path + ".unsorted.bam"
    header = {
        "HD": {"VN": "1.6", "SO": "coordinate"},
        "SQ": [{"SN": "chr1", "LN": 1000}, {"SN": "chr2", "LN": 1000}],
        "RG": [{"ID": "rg1", "SM": "SYNTH_SAMPLE", "PL": "ILLUMINA"}],
    }

    with pysam.AlignmentFile(unsorted, "wb", header=header) as outf:
        for i, (tid, start, length) in enumerate(reads):
            a = pysam.AlignedSegment()
            a.query_name = f"read_{i:04d}"
            a.query_sequence = "A" * length
            a.flag = 0
            a.reference_id = tid
            a.reference_start = start
            a.mapping_quality = 60
            a.cigar = [(0, length)]
            a.query_qualities = pysam.qualitystring_to_array("I" * length)
            a.set_tag("RG", "rg1")
            outf.write(a)

    pysam.sort("-o", path, unsorted)
    if index:
        pysam.index(path)
    os.remove(unsorted)
    return path


@pytest.fixture(scope="session")
def synthetic_bam(tmp_path_factory):
    """Sorted, indexed BAM with reads on chr1 and chr2 (see SYNTHETIC_READS)."""
    tmp_dir = tmp_path_factory.mktemp("data")
    return _write_synthetic_bam(str(tmp_dir / "sample.bam"))


@pytest.fixture
def unindexed_bam(tmp_path):
    """Same reads as synthetic_bam, sorted but without an index."""
    return _write_synthetic_bam(str(tmp_path / "noindex.bam"), index=False)


@pytest.fixture
def example_records():
    """Three chr1 positions followed by one chr2 position."""
    return [
        PositionRecord("chr1", 1, 5),
        PositionRecord("chr1", 2, 6),
        PositionRecord("chr1", 3, 7),
        PositionRecord("chr2", 1, 10),
    ]


@pytest.fixture
def depth_file(tmp_path):
    """samtools-depth text for example_records."""
    path = tmp_path / "sample.depth.txt"
    path.write_text(
        "chr1\t1\t5\n"
        "chr1\t2\t6\n"
        "chr1\t3\t7\n"
        "chr2\t1\t10\n"
    )
    return str(path)


@pytest.fixture
def tmp_output_dir(tmp_path):
    """Provide a temporary directory for output files."""
    out = tmp_path / "out"
    out.mkdir()
    return out


@pytest.fixture(scope="session")
def deep_bam(tmp_path_factory):
    """9000 identical 10 bp reads on chr1:1-10, deeper than pysam's default pileup cap."""
    tmp_dir = tmp_path_factory.mktemp("deep")
    return _write_synthetic_bam(str(tmp_dir / "deep.bam"), reads=[(0, 0, 10)] * 9000)
