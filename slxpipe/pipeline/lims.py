"""Report flowcell and lane status to the LIMS through its command line scripts.

The LIMS is only reachable through perl scripts taking positional arguments.
Their output carries either an error marker or a success marker; an error
marker counts as a failure even when the script exits zero.
"""
import os
import re
from xml.etree import ElementTree

from slxpipe import utils
from slxpipe.errors import ConfigurationError, DependencyNotMetError, ExternalToolError
from slxpipe.illumina import flowcell
from slxpipe.log import logger
from slxpipe.pipeline import config_utils, fastq
from slxpipe.pipeline.params import AnalysisParams
from slxpipe.provenance import do

SEQUENCE_FINISHED = "SEQUENCE_FINISHED"
ANALYSIS_FINISHED = "ANALYSIS_FINISHED"
PIPELINE_VERSION = "casava1.8"

LANE_STATUS_SCRIPT = "setIlluminaLaneStatus.pl"
START_DATE_SCRIPT = "setFlowCellAnalysisStartDate.pl"
ALIGNMENT_METRICS_FILE = "BAMAnalysisInfo.xml"


class LimsClient(object):
    """Run LIMS scripts with `perl <lims_dir>/<script> args...`.

    `runner` executes a command list and returns its output; it defaults to
    the logged external command runner.
    """
    def __init__(self, lims_dir, perl="perl", runner=None):
        if not lims_dir:
            raise ConfigurationError("LIMS script directory not configured (program: lims_dir)")
        self.lims_dir = lims_dir
        self.perl = perl
        self._runner = runner or _run_lims_cmd

    @classmethod
    def from_config(cls, config, runner=None):
        return cls(utils.get_in(config, ("program", "lims_dir")),
                   config_utils.get_program("perl", config), runner)

    def call(self, script, *args):
        """Run a LIMS script, returning its output when it reports no error.
        """
        cmd = [self.perl, os.path.join(self.lims_dir, script)] + [str(x) for x in args]
        output = self._runner(cmd)
        if is_error(output):
            raise ExternalToolError("LIMS script %s reported an error for %s"
                                    % (script, " ".join(str(x) for x in args)), cmd, output)
        if is_success(output):
            logger.info("LIMS %s succeeded for %s" % (script, " ".join(str(x) for x in args)))
        return output

    def upload_start_date(self, fc_name):
        return self.call(START_DATE_SCRIPT, flowcell.get_lims_name(fc_name))

    def upload_lane_status(self, fields):
        return self.call(LANE_STATUS_SCRIPT, *fields)

def _run_lims_cmd(cmd):
    try:
        return do.run(cmd, "LIMS: %s" % os.path.basename(cmd[1]), log_error=False)
    except ExternalToolError as e:
        if is_error(e.output):
            return e.output
        raise

def is_error(output):
    return bool(output) and re.search("error", output, re.IGNORECASE) is not None

def is_success(output):
    return bool(output) and re.search("success", output, re.IGNORECASE) is not None

# ## Result strings for lane status uploads

def _pairs(vals):
    out = []
    for key, val in vals:
        out += [key, "0" if val in [None, ""] else str(val)]
    return out

def sequence_finished_fields(fc_barcode, read, metrics=None):
    """Lane status fields once FASTQ files for a lane barcode are built.
    """
    metrics = metrics or {}
    fields = [fc_barcode, SEQUENCE_FINISHED, "READ", str(read)]
    fields += _pairs([("PERCENT_PHASING", metrics.get("phasing")),
                      ("PERCENT_PREPHASING", metrics.get("prephasing")),
                      ("PERCENT_PF_READS", metrics.get("percent_pf_reads")),
                      ("FIRST_CYCLE_INT_PF", metrics.get("first_cycle_int")),
                      ("PERCENT_INTENSITY_AFTER_20_CYCLES_PF", metrics.get("percent_int_after_20"))])
    fields += ["PIPELINE_VERSION", PIPELINE_VERSION]
    if str(read) == "1":
        fields += _pairs([("LANE_YIELD_MBASES", metrics.get("yield_mbases")),
                          ("RAW_READS", metrics.get("raw_reads")),
                          ("PF_READS", metrics.get("pf_reads")),
                          ("PERCENT_PERFECT_INDEX", metrics.get("percent_perfect_index")),
                          ("PERCENT_1MISMATCH_INDEX", metrics.get("percent_1mismatch_index")),
                          ("PERCENT_Q30_BASES", metrics.get("percent_q30_bases")),
                          ("MEAN_QUAL_SCORE", metrics.get("mean_qual_score"))])
    return fields

def analysis_finished_fields(fc_barcode, read, reference_path, results_path, metrics=None):
    """Lane status fields once alignment results for a lane barcode are ready.
    """
    metrics = metrics or {}
    fields = [fc_barcode, ANALYSIS_FINISHED, "READ", str(read)]
    fields += _pairs([("PERCENT_ALIGN_PF", metrics.get("percent_aligned")),
                      ("PERCENT_ERROR_RATE_PF", metrics.get("percent_error", 100))])
    fields += ["REFERENCE_PATH", reference_path or "none", "RESULTS_PATH", results_path,
               "PIPELINE_VERSION", PIPELINE_VERSION]
    return fields

def upload_results(stage, work_dir, config, client=None, metrics=None):
    """Upload lane status for each read of the lane barcode analysed in work_dir.
    """
    if stage not in (SEQUENCE_FINISHED, ANALYSIS_FINISHED):
        raise ConfigurationError("Unknown LIMS upload stage %s" % stage)
    params = AnalysisParams.read(work_dir)
    if not params.fc_barcode:
        raise ConfigurationError("Flowcell barcode missing from analysis parameters in %s" % work_dir)
    client = client or LimsClient.from_config(config)
    if metrics is None:
        metrics = (fastq.read_pf_metrics(work_dir) if stage == SEQUENCE_FINISHED
                   else read_alignment_metrics(work_dir))
    reads = [1, 2] if len(flowcell.find_sequence_files(work_dir)) > 1 else [1]
    outputs = []
    for read in reads:
        if stage == SEQUENCE_FINISHED:
            fields = sequence_finished_fields(params.fc_barcode, read, metrics.get(read))
        else:
            fields = analysis_finished_fields(params.fc_barcode, read, params.reference_path,
                                              os.path.abspath(work_dir), metrics.get(read))
        outputs.append(client.upload_lane_status(fields))
    return outputs

def read_alignment_metrics(work_dir):
    """Percent aligned and mismatch rate per read from BAMAnalysisInfo.xml.
    """
    in_file = os.path.join(work_dir, ALIGNMENT_METRICS_FILE)
    if not os.path.exists(in_file):
        raise DependencyNotMetError("Did not find alignment metrics %s" % in_file)
    out = {}
    for aln in ElementTree.parse(in_file).getroot().iter("AlignmentResults"):
        read = re.search(r"(\d+)$", aln.get("ReadType", ""))
        info = aln.find("ReadInfo")
        if read and info is not None:
            out[int(read.group(1))] = {"percent_aligned": info.get("PercentMapped"),
                                       "percent_error": info.get("PercentMismatch")}
    return out

# ## Command line

def add_subparser(subparsers):
    parser = subparsers.add_parser("upload", help="Upload lane status for a lane barcode to LIMS.")
    parser.add_argument("stage", choices=[SEQUENCE_FINISHED, ANALYSIS_FINISHED],
                        help="Pipeline stage to report")
    parser.add_argument("--workdir", default=os.getcwd(),
                        help="Lane barcode analysis directory")
    parser.set_defaults(func=_upload_cmd)
    return parser

def _upload_cmd(args, config):
    upload_results(args.stage, args.workdir, config)
