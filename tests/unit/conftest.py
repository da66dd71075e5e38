"""Pytest fixtures and test helper functions"""

import os

import pytest

from slxpipe.distributed.scheduler import JobScheduler
from slxpipe.pipeline.params import AnalysisParams

FC_NAME = "120418_SN1055_0105_BD0U0MACXX"
LIMS_NAME = "D0U0MACXX"

FC_DEFINITION = """<?xml version="1.0"?>
<FCInfo Name="{fc_name}" NumCycles="101+7+101" Type="{fc_type}">
  <LaneBarcodeList>
    <LaneBarcode Name="1-ID01" />
    <LaneBarcode Name="1-ID02" />
    <LaneBarcode Name="2" />
  </LaneBarcodeList>
  <LaneBarcodeInfo>
    <LaneBarcode ID="1-ID01" ReferencePath="/ref/hg19.fa" Sample="NA12878" Library="LIB1"
                 ChipDesign="exome" />
    <LaneBarcode ID="1-ID02" ReferencePath="sequence" Sample="NA12891" Library="LIB2" />
    <LaneBarcode ID="2" ReferencePath="/ref/phix.fa" Sample="PHIX" Library="" />
  </LaneBarcodeInfo>
</FCInfo>
"""


class FakeExecutor(object):
    """Record batch submissions and answer with increasing job IDs.

    `fail_at` makes the nth submission (1-based) exit non-zero.
    """
    def __init__(self, first_id=1000, fail_at=None, output="{job_id}.sched01\n"):
        self.calls = []
        self.next_id = first_id
        self.fail_at = fail_at
        self.output = output

    def __call__(self, cl, stdin):
        self.calls.append((cl, stdin))
        if self.fail_at is not None and len(self.calls) == self.fail_at:
            return 1, "ERROR: cannot submit job\n"
        job_id = str(self.next_id)
        self.next_id += 1
        return 0, self.output.format(job_id=job_id)

    @property
    def submitted(self):
        """Standard input (the job command) of each submission."""
        return [stdin for _, stdin in self.calls]


@pytest.fixture
def executor():
    return FakeExecutor()


@pytest.fixture
def scheduler(executor):
    return JobScheduler("moab", executor)


@pytest.fixture
def config(tmpdir):
    root_dir = tmpdir.mkdir("sequencers")
    return {"slxpipe_system": "/etc/slxpipe/slxpipe_system.yaml",
            "sequencers": {"root_dir": str(root_dir)},
            "scheduler": {"type": "moab", "default_queue": "normal", "casava_queue": "high"},
            "program": {"slxpipe": "/usr/local/bin/slxpipe.py",
                        "bwa": "/opt/bwa/bwa",
                        "lims_dir": "/opt/lims",
                        "picard_dir": "/opt/picard",
                        "analyzer_dir": "/opt/analyzer"},
            "email": {"errors": ["ops@example.com"], "results": ["results@example.com"]}}


def _make_flowcell(config, fc_name=FC_NAME, instrument="SN1055", fc_type="paired"):
    """Create an instrument copy of a flowcell with its definition file.
    """
    fc_dir = os.path.join(config["sequencers"]["root_dir"], instrument, fc_name)
    bc_dir = os.path.join(fc_dir, "Data", "Intensities", "BaseCalls")
    os.makedirs(bc_dir)
    with open(os.path.join(bc_dir, "FCDefinition.xml"), "w") as out_handle:
        out_handle.write(FC_DEFINITION.format(fc_name=fc_name, fc_type=fc_type))
    return fc_dir


def _make_work_dir(path, reference_path="/ref/hg19.fa", seq_files=2, **kwargs):
    """Analysis directory with parameters and sequence files for alignment stages.
    """
    work_dir = str(path)
    if not os.path.exists(work_dir):
        os.makedirs(work_dir)
    fc_barcode = kwargs.pop("fc_barcode", "%s-1-ID01" % LIMS_NAME)
    AnalysisParams(reference_path=reference_path, fc_barcode=fc_barcode,
                   sample_name=kwargs.pop("sample_name", "NA12878"),
                   base_qual_format=kwargs.pop("base_qual_format", "PHRED+33"),
                   **kwargs).write(work_dir)
    for read in range(1, seq_files + 1):
        with open(os.path.join(work_dir, "%s_%s_sequence.txt" % (fc_barcode, read)), "w") as out:
            out.write("@r1\nACGT\n+\nIIII\n")
    return work_dir


@pytest.fixture
def flowcell_dir(config):
    return _make_flowcell(config)


@pytest.fixture
def make_flowcell():
    return _make_flowcell


@pytest.fixture
def make_work_dir():
    return _make_work_dir
