import os

import pytest

from slxpipe.errors import DependencyNotMetError
from slxpipe.illumina import demultiplex, samplesheet

FC_NAME = "120418_SN1055_0105_BD0U0MACXX"


@pytest.fixture
def sample_sheet(flowcell_dir):
    ss_csv = os.path.join(flowcell_dir, "Data", "Intensities", "BaseCalls", samplesheet.SAMPLE_SHEET)
    with open(ss_csv, "w") as out_handle:
        out_handle.write(",".join(samplesheet.HEADER) + "\n")
    return ss_csv


def test_configures_then_fans_out_lanes(sample_sheet, flowcell_dir, config, scheduler, executor,
                                        mocker):
    run = mocker.patch("slxpipe.illumina.demultiplex.do.run")
    result = demultiplex.run_bcl2fastq(FC_NAME, config, scheduler, use_bases_mask="Y101,I6n,Y101")
    cmd = run.call_args[0][0]
    assert cmd[0] == "configureBclToFastq.pl"
    assert cmd[cmd.index("--output-dir") + 1] == os.path.join(flowcell_dir, "Results")
    assert cmd[cmd.index("--use-bases-mask") + 1] == "Y101,I6n,Y101"
    make = result.handles[0]
    assert len(result.handles) == 4
    make_cl, make_cmd = executor.calls[0]
    assert make_cmd == "make -j8"
    assert "nodes=1:ppn=8,mem=28000mb" in make_cl
    assert make_cl[make_cl.index("-q") + 1] == "high"
    lane_cmds = executor.submitted[1:]
    assert [x.split()[-1] for x in lane_cmds] == ["1-ID01", "1-ID02", "2"]
    for cl, cmd in executor.calls[1:]:
        assert "depend=afterok:%s" % make.job_id in cl
        assert cl[cl.index("-q") + 1] == "normal"
        assert " lane %s " % FC_NAME in cmd


def test_existing_makefile_is_reused(sample_sheet, flowcell_dir, config, scheduler, mocker):
    os.makedirs(os.path.join(flowcell_dir, "Results"))
    open(os.path.join(flowcell_dir, "Results", "Makefile"), "w").close()
    run = mocker.patch("slxpipe.illumina.demultiplex.do.run")
    demultiplex.run_bcl2fastq(FC_NAME, config, scheduler)
    assert not run.called


def test_requires_sample_sheet(flowcell_dir, config, scheduler, executor, mocker):
    run = mocker.patch("slxpipe.illumina.demultiplex.do.run")
    with pytest.raises(DependencyNotMetError):
        demultiplex.run_bcl2fastq(FC_NAME, config, scheduler)
    assert not run.called
    assert executor.calls == []
