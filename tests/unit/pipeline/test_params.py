import os

import pytest

from slxpipe.errors import ConfigurationError
from slxpipe.pipeline import params
from slxpipe.pipeline.params import AnalysisParams


def test_defaults():
    p = AnalysisParams()
    assert p.reference_path == params.NO_REFERENCE
    assert not p.needs_alignment
    assert p.filter_phix is False
    assert p.scheduler_queue == "normal"


def test_write_and_read_back(tmpdir):
    p = AnalysisParams(reference_path="/ref/hg19.fa", library_name="LIB1", sample_name="NA12878",
                       chip_design="exome", rg_pu_field="1055_20120418_D0U0MACXX-1-ID01",
                       fc_barcode="D0U0MACXX-1-ID01", base_qual_format="PHRED+33",
                       scheduler_queue="hptest")
    out_file = p.write(str(tmpdir))
    assert os.path.basename(out_file) == params.PARAMS_FILE
    with open(out_file) as in_handle:
        lines = in_handle.read().splitlines()
    assert lines[0] == "SCHEMA_VERSION=1"
    assert "FILTER_PHIX=false" in lines
    assert AnalysisParams.read(str(tmpdir)) == p


def test_missing_values_are_not_written():
    lines = AnalysisParams(fc_barcode="D0U0MACXX-2").to_lines()
    assert not [x for x in lines if x.startswith("LIBRARY_NAME")]


@pytest.mark.parametrize(('val', 'expected'), [
    ('true', True),
    ('TRUE', True),
    ('1', True),
    ('no', False),
    ('false', False),
])
def test_boolean_parsing(val, expected):
    p = AnalysisParams.from_lines(["SCHEMA_VERSION=1", "FILTER_PHIX=%s" % val])
    assert p.filter_phix is expected


@pytest.mark.parametrize('lines', [
    ["REFERENCE_PATH=/ref/hg19.fa"],
    ["SCHEMA_VERSION=2", "REFERENCE_PATH=/ref/hg19.fa"],
    ["SCHEMA_VERSION=1", "REFERENCE_PATH /ref/hg19.fa"],
    ["SCHEMA_VERSION=1", "SEQUENCER=SN1055"],
    ["SCHEMA_VERSION=1", "FILTER_PHIX=maybe"],
    ["SCHEMA_VERSION=1", "BASE_QUAL_FORMAT=SOLEXA"],
])
def test_invalid_parameter_files(lines):
    with pytest.raises(ConfigurationError):
        AnalysisParams.from_lines(lines)


def test_blank_and_comment_lines_ignored():
    p = AnalysisParams.from_lines(["# written by lane", "", "SCHEMA_VERSION=1",
                                   "REFERENCE_PATH=/ref/phix.fa"])
    assert p.needs_alignment


def test_empty_reference_means_no_alignment():
    p = AnalysisParams.from_lines(["SCHEMA_VERSION=1", "REFERENCE_PATH="])
    assert p.reference_path == "sequence"


def test_unknown_keyword_rejected():
    with pytest.raises(ConfigurationError):
        AnalysisParams(sequencer="SN1055")


def test_read_missing_file(tmpdir):
    with pytest.raises(ConfigurationError):
        AnalysisParams.read(str(tmpdir))
