"""Remove intensity and base call intermediates from analysed flowcells.

Only flowcells converted with CASAVA 1.8 are handled. A flowcell becomes
available once its copy marker is older than the configured minimum age and
intensity lane directories are still present.
"""
import glob
import os

from slxpipe import utils
from slxpipe.illumina import machine
from slxpipe.log import logger
from slxpipe.pipeline import config_utils

MIN_AGE = 1728000

_CLEAN_PATTERNS = [os.path.join("Data", "Intensities", "*_pos.txt"),
                   os.path.join("Data", "Intensities", "L00*"),
                   os.path.join("Data", "Intensities", "BaseCalls", "*.filter"),
                   os.path.join("Data", "Intensities", "BaseCalls", "*_qseq.txt"),
                   os.path.join("Data", "Intensities", "BaseCalls", "L00*"),
                   "Thumbnail_Images"]

def is_available_for_cleaning(fc_dir, min_age=MIN_AGE, now=None):
    marker = os.path.join(fc_dir, machine.COPY_MARKER)
    if not os.path.exists(marker) or utils.file_age(marker, now) < min_age:
        return False
    return len(glob.glob(os.path.join(fc_dir, "Data", "Intensities", "L00*"))) > 0

def find_flowcells(config, now=None):
    """Flowcell directories under every instrument that can be cleaned.
    """
    min_age = utils.get_in(config, ("cleaning", "min_age"), MIN_AGE)
    root_dir = config_utils.instrument_root(config)
    out = []
    for instrument_dir in sorted(glob.glob(os.path.join(root_dir, "*"))):
        for fc_dir in sorted(glob.glob(os.path.join(instrument_dir, "*"))):
            if os.path.isdir(fc_dir) and is_available_for_cleaning(fc_dir, min_age, now):
                out.append(fc_dir)
    return out

def clean_flowcell(fc_dir):
    """Delete intermediate files, returning what was removed.
    """
    removed = []
    if os.path.exists(os.path.join(fc_dir, "Data")) or \
       os.path.exists(os.path.join(fc_dir, "Thumbnail_Images")):
        for pattern in _CLEAN_PATTERNS:
            removed += utils.remove_glob(os.path.join(fc_dir, pattern))
    logger.info("Cleaned %s: removed %s intermediate entries" % (fc_dir, len(removed)))
    return removed

def add_subparser(subparsers):
    parser = subparsers.add_parser("clean", help="List or clean flowcell intermediates.")
    parser.add_argument("fc_dirs", nargs="*",
                        help="Flowcell directories to clean. Lists candidates when empty.")
    parser.set_defaults(func=_clean_cmd)
    return parser

def _clean_cmd(args, config):
    if not args.fc_dirs:
        for fc_dir in find_flowcells(config):
            print(fc_dir)
    for fc_dir in args.fc_dirs:
        clean_flowcell(fc_dir)
