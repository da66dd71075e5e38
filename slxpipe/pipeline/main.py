"""Main entry point for running pipeline stages from the command line.

Every stage is a subcommand; batch jobs submitted by one stage invoke the
next through this same entry point, so each runs as its own process.
"""
import argparse
import os
import sys
import traceback

from slxpipe.errors import PipelineError
from slxpipe.illumina import clean, demultiplex, machine
from slxpipe.log import logger, setup_local_logging
from slxpipe.ngsalign import bwa, postalign
from slxpipe.pipeline import config_utils, fastq, lane, lims, merge, notify, preprocess, version
from slxpipe.pipeline.params import AnalysisParams

SUB_CMDS = [machine.add_subparser,
            preprocess.add_subparser,
            demultiplex.add_subparser,
            lane.add_subparser,
            fastq.add_subparser,
            bwa.add_subparser,
            postalign.add_subparser,
            merge.add_subparser,
            lims.add_subparser,
            clean.add_subparser]

def parse_cl_args(in_args):
    description = "Automated analysis of Illumina flowcells on a batch cluster."
    parser = argparse.ArgumentParser(description=description)
    parser.add_argument("--version", action="version", version="slxpipe %s" % version.__version__)
    parser.add_argument("--config",
                        help=("System YAML configuration. Defaults to $%s or %s in the "
                              "working directory" % (config_utils.CONFIG_ENV,
                                                     config_utils.DEFAULT_CONFIG)))
    subparsers = parser.add_subparsers(dest="subcommand", help="Pipeline stage to run")
    subparsers.required = True
    for add_subparser in SUB_CMDS:
        add_subparser(subparsers)
    return parser.parse_args(in_args)

def run_cmd(in_args=None):
    """Run a pipeline stage, reporting failures by email.

    Expected pipeline errors exit with status 1; anything else is reported
    and re-raised.
    """
    args = parse_cl_args(sys.argv[1:] if in_args is None else in_args)
    config = {}
    handler = None
    try:
        config, _ = config_utils.load_system_config(args.config)
        handler = setup_local_logging(config)
        args.func(args, config)
    except PipelineError as e:
        if handler is None:
            handler = setup_local_logging(config)
        logger.error("%s failed: %s" % (args.subcommand, e))
        notify.report_error(config, _error_subject(args), str(e),
                            fc_barcode=_error_fc_barcode(args),
                            work_dir=getattr(args, "workdir", None))
        return 1
    except Exception:
        if handler is None:
            handler = setup_local_logging(config)
        logger.exception("%s failed unexpectedly" % args.subcommand)
        notify.report_error(config, _error_subject(args), traceback.format_exc(),
                            fc_barcode=_error_fc_barcode(args),
                            work_dir=getattr(args, "workdir", None))
        raise
    finally:
        if handler is not None:
            handler.pop_application()
            handler.close()
    return 0

def _error_subject(args):
    target = _error_fc_barcode(args) or getattr(args, "sample_name", None)
    return "Error in slxpipe %s%s" % (args.subcommand, " for %s" % target if target else "")

def _error_fc_barcode(args):
    for attr in ["fc_barcode", "fc_name"]:
        if getattr(args, attr, None):
            return getattr(args, attr)
    work_dir = getattr(args, "workdir", None)
    if work_dir:
        try:
            return AnalysisParams.read(os.path.abspath(work_dir)).fc_barcode
        except PipelineError:
            return None
    return None
