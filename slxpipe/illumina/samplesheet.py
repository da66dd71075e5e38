"""Write the CASAVA SampleSheet.csv and barcode definitions for a flowcell.

Both are built from the lane barcodes listed in the flowcell definition and
written to the flowcell's BaseCalls directory for bcl2fastq demultiplexing.
"""
import csv
import os

from slxpipe import utils
from slxpipe.errors import ConfigurationError, DependencyNotMetError
from slxpipe.illumina import flowcell
from slxpipe.log import logger

SAMPLE_SHEET = "SampleSheet.csv"
BARCODE_DEFN = "barcode_definition.txt"
HEADER = ["flowcell", "lane", "sample", "reference", "index", "description",
          "control", "recipe", "operator", "project"]

# ## Create samplesheets

def from_flowcell(fc_name, bc_dir, lane_barcodes):
    """Convert lane barcodes of a flowcell into a samplesheet for demultiplexing.
    """
    if not lane_barcodes:
        raise DependencyNotMetError("No lane barcodes found for flowcell %s" % fc_name)
    barcodes = read_barcode_defn(bc_dir)
    out_file = os.path.join(bc_dir, SAMPLE_SHEET)
    with open(out_file, "w") as out_handle:
        writer = csv.writer(out_handle, lineterminator="\n")
        writer.writerow(HEADER)
        for lane_barcode in lane_barcodes:
            writer.writerow(_lane_barcode_to_ss(fc_name, lane_barcode, barcodes))
    logger.info("Wrote sample sheet for %s with %s lane barcodes" % (fc_name, len(lane_barcodes)))
    return out_file

def _lane_barcode_to_ss(fc_name, lane_barcode, barcodes):
    tag = flowcell.barcode_tag(lane_barcode)
    if tag and tag not in barcodes:
        raise ConfigurationError("No sequence defined for barcode %s of %s" % (tag, fc_name))
    return [fc_name, flowcell.lane_number(lane_barcode),
            flowcell.get_fc_barcode(fc_name, lane_barcode), "sequence",
            barcodes.get(tag, ""), "desc", "n", "r1", "fiona", fc_name]

# ## Barcode definitions

def write_barcode_defn(bc_dir, lane_barcodes, label_file):
    """Copy sequences for the barcode tags used on this flowcell.

    Shorter tags are padded with CTC when lengths differ by three, so all
    index sequences demultiplex with the same length. Returns None when no
    lane is multiplexed.
    """
    tags = sorted(set(flowcell.barcode_tag(x) for x in lane_barcodes if "ID" in x))
    if not tags:
        logger.info("No multiplexed lanes; not writing barcode definitions")
        return None
    if not label_file or not os.path.exists(label_file):
        raise ConfigurationError("Barcode label file not found: %s" % label_file)
    labels = _read_barcode_file(label_file)
    missing = [t for t in tags if t not in labels]
    if missing:
        raise ConfigurationError("Barcode tags missing from %s: %s" % (label_file, ", ".join(missing)))
    lengths = [len(labels[t]) for t in tags]
    padding = "CTC" if max(lengths) - min(lengths) == 3 else ""
    out_file = os.path.join(bc_dir, BARCODE_DEFN)
    with open(out_file, "w") as out_handle:
        for tag in tags:
            seq = labels[tag] + (padding if len(labels[tag]) == min(lengths) else "")
            out_handle.write("%s,%s\n" % (tag, seq))
    return out_file

def read_barcode_defn(bc_dir):
    defn_file = os.path.join(bc_dir, BARCODE_DEFN)
    if utils.file_exists(defn_file):
        return _read_barcode_file(defn_file)
    return {}

def _read_barcode_file(in_file):
    out = {}
    with open(in_file) as in_handle:
        for parts in csv.reader(in_handle):
            if len(parts) >= 2 and parts[0].strip():
                out[parts[0].strip()] = parts[1].strip()
    return out
