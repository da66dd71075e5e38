import gzip
import os

import pytest

from slxpipe.errors import DependencyNotMetError
from slxpipe.pipeline import fastq


def _write_chunk(fname, records):
    with gzip.open(fname, "wt") as out_handle:
        for name, filtered in records:
            out_handle.write("@%s %s:%s:0:ACGT\nACGTACGT\n+\nIIIIIIII\n"
                             % (name, 1 if "R1" in fname else 2, "Y" if filtered else "N"))


@pytest.fixture
def paired_dir(tmpdir):
    for read in [1, 2]:
        _write_chunk(str(tmpdir.join("NA12878_ACGT_L001_R%s_001.fastq.gz" % read)),
                     [("r1", False), ("r2", True)])
        _write_chunk(str(tmpdir.join("NA12878_ACGT_L001_R%s_002.fastq.gz" % read)),
                     [("r3", False)])
    return str(tmpdir)


def test_build_sequences_drops_filtered_reads(paired_dir):
    metrics = fastq.build_sequences(paired_dir, "D0U0MACXX-1-ID01")
    assert metrics[1] == {"raw_reads": 3, "pf_reads": 2}
    with open(fastq.sequence_file(paired_dir, "D0U0MACXX-1-ID01", 2)) as in_handle:
        names = [x.split()[0] for x in in_handle if x.startswith("@")]
    assert names == ["@r1", "@r3"]


def test_pf_metrics_written_and_read(paired_dir):
    fastq.build_sequences(paired_dir, "D0U0MACXX-1-ID01")
    metrics = fastq.read_pf_metrics(paired_dir)
    assert metrics[2] == {"raw_reads": "3", "pf_reads": "2", "percent_pf_reads": "66.67"}


def test_paired_requires_read2(tmpdir):
    _write_chunk(str(tmpdir.join("x_R1_001.fastq.gz")), [("r1", False)])
    with pytest.raises(DependencyNotMetError):
        fastq.build_sequences(str(tmpdir), "D0U0MACXX-2", fastq.PAIRED)
    metrics = fastq.build_sequences(str(tmpdir), "D0U0MACXX-2", fastq.FRAGMENT)
    assert list(metrics) == [1]
    assert not os.path.exists(fastq.sequence_file(str(tmpdir), "D0U0MACXX-2", 2))


def test_no_chunks(tmpdir):
    with pytest.raises(DependencyNotMetError):
        fastq.build_sequences(str(tmpdir), "D0U0MACXX-2", fastq.FRAGMENT)


def test_missing_metrics_are_empty(tmpdir):
    assert fastq.read_pf_metrics(str(tmpdir)) == {}


def test_blank_line_between_records_keeps_reads(tmpdir):
    with gzip.open(str(tmpdir.join("x_R1_001.fastq.gz")), "wt") as out_handle:
        out_handle.write("@r1 1:N:0:A\nACGT\n+\nIIII\n\n@r2 1:N:0:A\nACGT\n+\nIIII\n")
    metrics = fastq.build_sequences(str(tmpdir), "D0U0MACXX-2", fastq.FRAGMENT)
    assert metrics[1] == {"raw_reads": 2, "pf_reads": 2}


def test_truncated_record_raises(tmpdir):
    with gzip.open(str(tmpdir.join("x_R1_001.fastq.gz")), "wt") as out_handle:
        out_handle.write("@r1 1:N:0:A\nACGT\n+\nIIII\n@r2 1:N:0:A\nACGT\n+\nII\n")
    with pytest.raises(DependencyNotMetError) as excinfo:
        fastq.build_sequences(str(tmpdir), "D0U0MACXX-2", fastq.FRAGMENT)
    assert "x_R1_001.fastq.gz" in str(excinfo.value)
