"""Detect flowcells the sequencers have finished copying and start their analysis.

Runs periodically from cron. A filesystem lock keeps a single detector
running; the per-instrument done list keeps each flowcell from starting
twice.
"""
import glob
import os

from slxpipe import utils
from slxpipe.distributed.lock import Lock, acquired
from slxpipe.illumina import flowcell
from slxpipe.log import logger
from slxpipe.pipeline import config_utils

DONE_LIST = "done_list.txt"
COPY_MARKER = ".rsync_finished"
RTA_MARKER = "RTAComplete.txt"
NETCOPY_MARKERS = ["Basecalling_Netcopy_complete.txt",
                   "Basecalling_Netcopy_complete_READ1.txt",
                   "Basecalling_Netcopy_complete_READ2.txt"]
MIN_MARKER_AGE = 3600
SKIP_PATTERNS = ["SN601"]

# ## Periodic detection

def check_and_dispatch(config, lock, dispatch):
    """Scan instrument directories and dispatch every newly ready flowcell.

    `dispatch` is called with the flowcell name once it is recorded in the
    done list. Returns the dispatched flowcell names, or None if another
    detector holds the lock.
    """
    with acquired(lock) as have_lock:
        if not have_lock:
            logger.info("Another detector holds %s; exiting" % lock.path)
            return None
        started = []
        for instrument_dir in _get_instrument_dirs(config):
            logger.debug("Checking for new flowcells in %s" % instrument_dir)
            done_list = os.path.join(instrument_dir, _get_detector_opt(config, "done_list", DONE_LIST))
            reported = _read_reported(done_list)
            for fc_dir in _find_unprocessed(instrument_dir, reported):
                if is_ready(fc_dir, config):
                    fc_name = os.path.basename(fc_dir)
                    _update_reported(done_list, fc_name)
                    logger.info("Starting analysis for flowcell %s" % fc_name)
                    dispatch(fc_name)
                    started.append(fc_name)
        return started

def get_lock(config):
    lock_file = _get_detector_opt(config, "lock_file",
                                  os.path.join(config_utils.instrument_root(config),
                                               "lock_detect.lock"))
    return Lock(lock_file)

def _get_detector_opt(config, key, default):
    val = utils.get_in(config, ("detector", key))
    return default if val is None else val

def _get_instrument_dirs(config):
    root_dir = config_utils.instrument_root(config)
    for dname in sorted(glob.glob(os.path.join(root_dir, "*"))):
        if os.path.isdir(dname):
            yield dname

def _find_unprocessed(instrument_dir, reported):
    for dname in sorted(glob.glob(os.path.join(instrument_dir, "*"))):
        if os.path.isdir(dname) and os.path.basename(dname) not in reported:
            yield dname

# ## Readiness

def is_ready(fc_dir, config=None, now=None):
    """Determine if a flowcell has been completely copied from the sequencer.

    Instruments writing RTAComplete.txt get a copy marker added, so they are
    picked up on the next pass. RTA 1.9 flowcells are ready once all netcopy
    markers exist and the main one has aged.
    """
    config = config or {}
    fc_name = os.path.basename(fc_dir)
    if os.path.exists(os.path.join(fc_dir, COPY_MARKER)):
        return True
    for pattern in _get_detector_opt(config, "skip_patterns", SKIP_PATTERNS):
        if pattern in fc_name:
            logger.info("Flowcell %s is not configured for automatic analysis" % fc_name)
            return False
    if os.path.exists(os.path.join(fc_dir, RTA_MARKER)):
        utils.touch(os.path.join(fc_dir, COPY_MARKER))
        return False
    rta_version = flowcell.get_rta_version(fc_dir)
    if rta_version and rta_version.startswith("1.9"):
        logger.debug("Flowcell with RTA version 1.9 found: %s" % fc_name)
        if all(os.path.exists(os.path.join(fc_dir, x)) for x in NETCOPY_MARKERS):
            min_age = _get_detector_opt(config, "min_marker_age", MIN_MARKER_AGE)
            return utils.file_age(os.path.join(fc_dir, NETCOPY_MARKERS[0]), now) >= min_age
    return False

# ## Flat file of processed flowcells

def _read_reported(done_list):
    """Retrieve flowcells previously started, creating the list if missing.
    """
    reported = set()
    if os.path.exists(done_list):
        with open(done_list) as in_handle:
            for line in in_handle:
                if line.strip():
                    reported.add(line.strip())
    else:
        utils.touch(done_list)
    return reported

def _update_reported(done_list, fc_name):
    with open(done_list, "a") as out_handle:
        out_handle.write("%s\n" % fc_name)

# ## Command line

def add_subparser(subparsers):
    """Add command line arguments for periodic flowcell detection.
    """
    parser = subparsers.add_parser("detect", help="Start analysis of newly copied flowcells.")
    parser.add_argument("--lock", help="Lock file path, overriding the configured detector lock.")
    parser.set_defaults(func=_detect_cmd)
    return parser

def _detect_cmd(args, config):
    from slxpipe.pipeline import preprocess
    lock = Lock(args.lock) if args.lock else get_lock(config)
    check_and_dispatch(config, lock,
                       lambda fc_name: preprocess.run(fc_name, [preprocess.ALL], config))
