"""Prepare a newly copied flowcell for analysis and start BCL conversion.
"""
import os

from slxpipe import utils
from slxpipe.errors import ConfigurationError
from slxpipe.illumina import demultiplex, flowcell, samplesheet
from slxpipe.log import logger
from slxpipe.pipeline import shared
from slxpipe.pipeline.lims import LimsClient

BUILD_FC_DEFN = "build_fc_defn"
UPLOAD_START_DATE = "upload_start_date"
BUILD_BARCODE_DEFN = "build_barcode_defn"
BUILD_SAMPLE_SHEET = "build_sample_sheet"
RUN_NEXT_STEP = "run_next_step"
ALL = "all"
ACTIONS = [BUILD_FC_DEFN, UPLOAD_START_DATE, BUILD_BARCODE_DEFN, BUILD_SAMPLE_SHEET,
           RUN_NEXT_STEP]

def run(fc_name, actions, config, scheduler=None, lims=None):
    """Run preparation actions for a flowcell in their pipeline order.
    """
    unknown = set(actions) - set(ACTIONS + [ALL])
    if unknown:
        raise ConfigurationError("Unknown preprocess actions: %s" % ", ".join(sorted(unknown)))
    actions = ACTIONS if ALL in actions else [a for a in ACTIONS if a in actions]
    fc_dir = flowcell.find_fc_path(fc_name, config)
    bc_dir = flowcell.get_basecalls_dir(fc_dir)
    fc_defn = os.path.join(bc_dir, flowcell.DEFINITION_FILE)
    out = None
    for action in actions:
        logger.info("Flowcell %s: %s" % (fc_name, action))
        if action == BUILD_FC_DEFN:
            shared.require_file(fc_defn, "flowcell definition from LIMS")
        elif action == UPLOAD_START_DATE:
            (lims or LimsClient.from_config(config)).upload_start_date(fc_name)
        elif action == BUILD_BARCODE_DEFN:
            samplesheet.write_barcode_defn(bc_dir, flowcell.get_lane_barcodes(fc_defn),
                                           utils.get_in(config, ("barcodes", "label_file")))
        elif action == BUILD_SAMPLE_SHEET:
            samplesheet.from_flowcell(fc_name, bc_dir, flowcell.get_lane_barcodes(fc_defn))
        elif action == RUN_NEXT_STEP:
            out = demultiplex.run_bcl2fastq(fc_name, config, scheduler)
    return out

def add_subparser(subparsers):
    parser = subparsers.add_parser("preprocess", help="Prepare a flowcell for analysis.")
    parser.add_argument("fc_name", help="Full flowcell directory name")
    parser.add_argument("actions", nargs="*", default=[ALL],
                        help="Preparation steps to run: %s (default: all)" % ", ".join(ACTIONS))
    parser.set_defaults(func=lambda args, config: run(args.fc_name, args.actions, config))
    return parser
