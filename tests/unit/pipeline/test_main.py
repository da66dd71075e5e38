import pytest

from slxpipe.errors import DependencyNotMetError
from slxpipe.pipeline import main


@pytest.fixture
def system_yaml(tmpdir):
    out_file = tmpdir.join("slxpipe_system.yaml")
    out_file.write("log_dir: %s\nsequencers:\n  root_dir: %s\n"
                   % (tmpdir.join("log"), tmpdir.mkdir("sequencers")))
    return str(out_file)


def test_config_precedes_subcommand():
    args = main.parse_cl_args(["--config", "/etc/slxpipe.yaml", "lane",
                               "120418_SN1055_0105_BD0U0MACXX", "1-ID01"])
    assert args.config == "/etc/slxpipe.yaml"
    assert args.subcommand == "lane"
    assert args.lane_barcode == "1-ID01"


@pytest.mark.parametrize('in_args', [
    ["detect"],
    ["preprocess", "FC", "build_sample_sheet"],
    ["bcl2fastq", "FC"],
    ["postsequence", "--workdir", "/tmp"],
    ["buildfastq", "D0U0MACXX-2", "--mode", "fragment"],
    ["align", "--workdir", "/tmp"],
    ["postalign", "x.sam", "x_marked.bam"],
    ["merge", "NA12878", "/out", "/a", "/b", "--after", "12", "--after", "13"],
    ["mergebams", "NA12878", "/out", "/a.bam", "/b.bam"],
    ["upload", "SEQUENCE_FINISHED"],
    ["clean"],
])
def test_every_stage_has_a_subcommand(in_args):
    args = main.parse_cl_args(in_args)
    assert args.subcommand == in_args[0]
    assert callable(args.func)


def test_stage_failure_is_reported(system_yaml, mocker):
    report = mocker.patch("slxpipe.pipeline.main.notify.report_error")
    mocker.patch("slxpipe.pipeline.main.preprocess.run",
                 side_effect=DependencyNotMetError("Did not find path for flowcell FC"))
    assert main.run_cmd(["--config", system_yaml, "preprocess", "FC"]) == 1
    config, subject, detail = report.call_args[0]
    assert "preprocess" in subject and "FC" in subject
    assert detail == "Did not find path for flowcell FC"
    assert report.call_args[1]["fc_barcode"] == "FC"


def test_missing_config_is_reported(tmpdir, mocker):
    report = mocker.patch("slxpipe.pipeline.main.notify.report_error")
    mocker.patch("slxpipe.pipeline.main.setup_local_logging")
    assert main.run_cmd(["--config", str(tmpdir.join("missing.yaml")), "clean"]) == 1
    assert report.called


def test_successful_stage(system_yaml, mocker):
    run = mocker.patch("slxpipe.pipeline.main.machine.check_and_dispatch", return_value=None)
    assert main.run_cmd(["--config", system_yaml, "detect"]) == 0
    assert run.called


def test_unexpected_error_is_reported_and_raised(system_yaml, mocker):
    report = mocker.patch("slxpipe.pipeline.main.notify.report_error")
    mocker.patch("slxpipe.pipeline.main.clean.find_flowcells", side_effect=OSError("disk full"))
    with pytest.raises(OSError):
        main.run_cmd(["--config", system_yaml, "clean"])
    config, subject, detail = report.call_args[0]
    assert "clean" in subject
    assert "disk full" in detail
