"""Utilities to locate flowcells copied from the sequencers and name them for LIMS.
"""
import collections
import glob
import os
import re
from xml.etree import ElementTree

from slxpipe.errors import ConfigurationError, DependencyNotMetError
from slxpipe.pipeline import config_utils

DEFINITION_FILE = "FCDefinition.xml"
BASECALLS_SUBDIR = os.path.join("Data", "Intensities", "BaseCalls")

# ## Names

def get_lims_name(fc_name):
    """Reduce a full flowcell directory name to the name LIMS knows it by.

    Keeps the trailing alphanumeric token, drops an `FC` prefix, then the one
    leading letter HiSeq flowcells carry for their slot (A or B).
    """
    match = re.search(r"([a-zA-Z0-9-]+)$", fc_name or "")
    if not match:
        raise ConfigurationError("Could not determine LIMS name for flowcell %s" % fc_name)
    lims_name = match.group(1)
    if lims_name.startswith("FC"):
        lims_name = lims_name[2:]
    return re.sub(r"^[a-zA-Z]", "", lims_name, count=1)

def get_fc_barcode(fc_name, lane_barcode):
    """Flowcell barcode for a lane barcode: the name LIMS uses for the event.
    """
    return "%s-%s" % (get_lims_name(fc_name), lane_barcode)

def get_pu_field(fc_name, lane_barcode):
    """Platform unit for the BAM read group: machine_20YYMMDD_fcBarcode.
    """
    date = re.search(r"^(\d+)_", fc_name)
    machine = re.search(r"[A-Za-z0-9-]+", re.sub(r"^\d+_", "", fc_name))
    if not date or not machine:
        raise ConfigurationError("Flowcell name %s is not in date_machine_..._flowcell form"
                                 % fc_name)
    return "%s_20%s_%s" % (machine.group(0).replace("SN", "700"), date.group(1),
                           get_fc_barcode(fc_name, lane_barcode))

def lane_number(lane_barcode):
    return re.match(r"^\d", str(lane_barcode)).group(0)

def barcode_tag(lane_barcode):
    """Index tag of a lane barcode (`ID05` in `3-ID05`), empty when not multiplexed.
    """
    return re.sub(r"^\d-?", "", str(lane_barcode))

# ## Locations

def find_fc_path(fc_name, config):
    """Search the directories sequencers copy into for the named flowcell.
    """
    root_dir = config_utils.instrument_root(config)
    found = None
    for instrument_dir in sorted(glob.glob(os.path.join(root_dir, "*"))):
        test_dir = os.path.join(instrument_dir, fc_name)
        if os.path.isdir(test_dir):
            found = test_dir
    if found is None:
        raise DependencyNotMetError("Did not find path for flowcell %s under %s"
                                    % (fc_name, root_dir))
    return found

def get_basecalls_dir(fc_dir):
    bc_dir = os.path.join(fc_dir, BASECALLS_SUBDIR)
    if not os.path.isdir(bc_dir):
        raise DependencyNotMetError("Did not find base calls directory for flowcell %s" % fc_dir)
    return bc_dir

def get_results_dir(fc_dir):
    """Top level directory CASAVA writes its conversion output to.
    """
    return os.path.join(fc_dir, "Results")

def get_project_dir(fc_dir, fc_name):
    return os.path.join(get_results_dir(fc_dir), "Project_%s" % fc_name)

def get_analysis_dir(fc_dir, fc_name, fc_barcode):
    """Per lane barcode directory holding FASTQ chunks and analysis outputs.
    """
    return os.path.join(get_project_dir(fc_dir, fc_name), "Sample_%s" % fc_barcode)

def find_sequence_files(work_dir):
    """Sorted *_sequence.txt files in a directory, falling back to bzipped ones.
    """
    files = sorted(glob.glob(os.path.join(work_dir, "*_sequence.txt")))
    if not files:
        files = sorted(glob.glob(os.path.join(work_dir, "*_sequence.txt.bz2")))
    return files

def get_rta_version(fc_dir):
    """Real time analysis version from runParameters.xml or the netcopy marker.
    """
    run_params = os.path.join(fc_dir, "runParameters.xml")
    if os.path.exists(run_params):
        node = ElementTree.parse(run_params).getroot().find("Setup/RTAVersion")
        return node.text.strip() if node is not None and node.text else None
    netcopy = os.path.join(fc_dir, "Basecalling_Netcopy_complete.txt")
    if os.path.exists(netcopy):
        with open(netcopy) as in_handle:
            for line in in_handle:
                match = re.search(r"Illumina\s+RTA\s+(\S+)", line)
                if match:
                    return match.group(1)
    return None

# ## Flowcell definition

LaneInfo = collections.namedtuple("LaneInfo", ["lane_barcode", "reference_path", "sample",
                                               "library", "chip_design", "fc_type",
                                               "read_length"])

def _read_definition(fc_defn):
    if not os.path.exists(fc_defn):
        raise DependencyNotMetError("Missing flowcell definition %s" % fc_defn)
    try:
        root = ElementTree.parse(fc_defn).getroot()
    except ElementTree.ParseError as e:
        raise ConfigurationError("Could not parse flowcell definition %s: %s" % (fc_defn, e))
    if root.tag != "FCInfo":
        raise ConfigurationError("%s is not a flowcell definition: root is %s" % (fc_defn, root.tag))
    return root

def get_lane_barcodes(fc_defn):
    """Lane barcodes listed in a flowcell definition, in file order.
    """
    root = _read_definition(fc_defn)
    return [x.get("Name") for x in root.findall("LaneBarcodeList/LaneBarcode") if x.get("Name")]

def get_lane_info(fc_defn, lane_barcode):
    """Analysis details for one lane barcode from a flowcell definition.
    """
    root = _read_definition(fc_defn)
    num_cycles = re.search(r"\d+", root.get("NumCycles") or "")
    read_length = int(num_cycles.group(0)) - 1 if num_cycles else 0
    for lane in root.findall("LaneBarcodeInfo/LaneBarcode"):
        if lane.get("ID") == str(lane_barcode):
            return LaneInfo(str(lane_barcode), lane.get("ReferencePath") or "sequence",
                            lane.get("Sample") or None, lane.get("Library") or None,
                            lane.get("ChipDesign") or None, root.get("Type") or "",
                            read_length)
    raise ConfigurationError("Lane barcode %s not found in %s" % (lane_barcode, fc_defn))
