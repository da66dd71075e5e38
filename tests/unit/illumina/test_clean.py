import os
import time

import pytest

from slxpipe.illumina import clean, machine


@pytest.fixture
def fc_dir(config):
    fc_dir = os.path.join(config["sequencers"]["root_dir"], "SN1055",
                          "120418_SN1055_0105_BD0U0MACXX")
    for d in ["Data/Intensities/L001/C1.1", "Data/Intensities/BaseCalls/L001",
              "Thumbnail_Images/L001"]:
        os.makedirs(os.path.join(fc_dir, d))
    for f in ["Data/Intensities/s_1_1101_pos.txt", "Data/Intensities/BaseCalls/s_1_1101.filter",
              "Data/Intensities/BaseCalls/SampleSheet.csv", machine.COPY_MARKER]:
        open(os.path.join(fc_dir, f), "w").close()
    return fc_dir


def test_available_after_minimum_age(fc_dir):
    now = time.time()
    assert not clean.is_available_for_cleaning(fc_dir, now=now)
    assert clean.is_available_for_cleaning(fc_dir, now=now + clean.MIN_AGE + 1)


def test_find_flowcells_uses_configured_age(fc_dir, config):
    config["cleaning"] = {"min_age": 0}
    assert clean.find_flowcells(config) == [fc_dir]


def test_clean_removes_intermediates_only(fc_dir):
    removed = clean.clean_flowcell(fc_dir)
    assert len(removed) == 5
    assert not os.path.exists(os.path.join(fc_dir, "Thumbnail_Images"))
    assert not os.path.exists(os.path.join(fc_dir, "Data", "Intensities", "L001"))
    assert os.path.exists(os.path.join(fc_dir, "Data", "Intensities", "BaseCalls",
                                       "SampleSheet.csv"))
    assert not clean.is_available_for_cleaning(fc_dir, min_age=0)
