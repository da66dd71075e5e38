import os

import pytest

from slxpipe.distributed.job import JobHandle
from slxpipe.errors import ConfigurationError, DependencyNotMetError
from slxpipe.pipeline import merge


@pytest.fixture
def lane_dirs(tmpdir):
    dirs = []
    for name in ["Sample_D0U0MACXX-1-ID01", "Sample_C0JUKACXX-3-ID01"]:
        d = tmpdir.mkdir(name)
        d.join("%s_marked.bam" % name.replace("Sample_", "")).write("bam")
        dirs.append(str(d))
    return dirs


@pytest.fixture
def out_dir(tmpdir):
    return str(tmpdir.mkdir("merged"))


def test_submits_single_whole_node_job(lane_dirs, out_dir, config, scheduler, executor):
    result = merge.submit_merge("NA12878", lane_dirs, out_dir, config, scheduler)
    assert not result.skipped
    assert len(result.handles) == 1
    assert len(executor.calls) == 1
    cl, command = executor.calls[0]
    assert "nodes=1:ppn=8,mem=28000mb" in cl
    assert cl[cl.index("-q") + 1] == "normal"
    assert command.startswith("/usr/local/bin/slxpipe.py --config "
                              "/etc/slxpipe/slxpipe_system.yaml mergebams NA12878 %s" % out_dir)
    for d in lane_dirs:
        assert os.path.join(d, "%s_marked.bam" % os.path.basename(d)[len("Sample_"):]) in command


def test_waits_on_alignment_jobs(lane_dirs, out_dir, config, scheduler, executor):
    after = [JobHandle("processBam", "77"), JobHandle("processBam", "78")]
    merge.submit_merge("NA12878", lane_dirs, out_dir, config, scheduler, depends_on=after)
    cl, _ = executor.calls[0]
    assert "depend=afterok:77:78" in cl


def test_one_input_is_not_enough(lane_dirs, out_dir, config, scheduler, executor):
    with pytest.raises(DependencyNotMetError) as excinfo:
        merge.submit_merge("NA12878", lane_dirs[:1], out_dir, config, scheduler)
    assert "at least two files required" in str(excinfo.value)
    assert executor.calls == []


def test_missing_input_directory(lane_dirs, out_dir, config, scheduler, executor, tmpdir):
    with pytest.raises(DependencyNotMetError):
        merge.submit_merge("NA12878", lane_dirs + [str(tmpdir.join("missing"))], out_dir,
                           config, scheduler)
    assert executor.calls == []


@pytest.mark.parametrize('num_bams', [0, 2])
def test_exactly_one_bam_per_directory(num_bams, lane_dirs, out_dir, config, scheduler,
                                       executor, tmpdir):
    extra = tmpdir.mkdir("Sample_extra")
    for i in range(num_bams):
        extra.join("extra%s_marked.bam" % i).write("bam")
    with pytest.raises(DependencyNotMetError) as excinfo:
        merge.submit_merge("NA12878", lane_dirs + [str(extra)], out_dir, config, scheduler)
    assert "exactly one bam expected" in str(excinfo.value)
    assert executor.calls == []


def test_output_directory_must_exist(lane_dirs, config, scheduler, executor, tmpdir):
    with pytest.raises(ConfigurationError):
        merge.submit_merge("NA12878", lane_dirs, str(tmpdir.join("nowhere")), config, scheduler)
    assert executor.calls == []


def test_merge_bams_runs_picard_then_statistics(mocker, out_dir, config):
    run = mocker.patch("slxpipe.pipeline.merge.do.run")
    final = merge.merge_bams("NA12878", out_dir, ["/a/1_marked.bam", "/b/2_marked.bam"], config)
    assert final == os.path.join(out_dir, "NA12878_final.bam")
    cmds = [c[0][0] for c in run.call_args_list]
    assert len(cmds) == 3
    assert cmds[0][3].endswith("MergeSamFiles.jar")
    assert "I=/a/1_marked.bam" in cmds[0] and "I=/b/2_marked.bam" in cmds[0]
    assert cmds[1][3].endswith("MarkDuplicates.jar")
    assert "I=%s" % os.path.join(out_dir, "NA12878_merged.bam") in cmds[1]
    assert cmds[2][3].endswith("BAMAnalyzer.jar")
