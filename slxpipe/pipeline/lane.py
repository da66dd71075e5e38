"""Start analysis of a single lane barcode once its FASTQ chunks are converted.

The lane stage records analysis parameters for later stages and submits the
sequence build, followed by the post-sequence stage which reports to LIMS
and hands off to alignment.
"""
import glob
import os
import shutil

from slxpipe import utils
from slxpipe.distributed.scheduler import JobScheduler
from slxpipe.errors import DependencyNotMetError
from slxpipe.illumina import flowcell
from slxpipe.log import logger
from slxpipe.ngsalign import bwa
from slxpipe.pipeline import config_utils, fastq, lims, shared
from slxpipe.pipeline.params import AnalysisParams

BUILD_MEMORY = 16000
BUILD_CORES = 2
POST_SEQUENCE_MEMORY = 8000
POST_SEQUENCE_CORES = 1

def process_lane(fc_name, lane_barcode, config, scheduler=None, queue=None):
    """Write analysis parameters and submit sequence building for a lane barcode.
    """
    scheduler = scheduler or JobScheduler.from_config(config)
    queue = queue or config_utils.default_queue(config)
    fc_barcode = flowcell.get_fc_barcode(fc_name, lane_barcode)
    fc_dir = flowcell.find_fc_path(fc_name, config)
    work_dir = _check_analysis_dir(flowcell.get_analysis_dir(fc_dir, fc_name, fc_barcode))
    fc_defn = os.path.join(flowcell.get_basecalls_dir(fc_dir), flowcell.DEFINITION_FILE)
    info = flowcell.get_lane_info(shared.require_file(fc_defn, "flowcell definition"),
                                  lane_barcode)
    params = AnalysisParams(reference_path=info.reference_path, library_name=info.library,
                            sample_name=info.sample, filter_phix=False,
                            chip_design=info.chip_design,
                            rg_pu_field=flowcell.get_pu_field(fc_name, lane_barcode),
                            fc_barcode=fc_barcode, base_qual_format="PHRED+33",
                            scheduler_queue=queue)
    params.write(work_dir)
    logger.info("Lane barcode %s: %s flowcell, reference %s" % (fc_barcode, info.fc_type,
                                                                params.reference_path))
    build = scheduler.submit_job("%s_BuildSequences" % fc_barcode,
                                 shared.stage_cmd(config, "buildfastq", fc_barcode, "--workdir", work_dir,
                                                  "--mode", _build_mode(info.fc_type)),
                                 memory=BUILD_MEMORY, cores=BUILD_CORES, queue=queue,
                                 work_dir=work_dir)
    post = scheduler.submit_job("%s_post_sequence" % fc_barcode,
                                shared.stage_cmd(config, "postsequence", "--workdir", work_dir),
                                depends_on=[build], memory=POST_SEQUENCE_MEMORY,
                                cores=POST_SEQUENCE_CORES, queue=queue, work_dir=work_dir)
    return shared.Runnable([build, post])

def _build_mode(fc_type):
    return fastq.FRAGMENT if (fc_type or "").lower() == fastq.FRAGMENT else fastq.PAIRED

def _check_analysis_dir(work_dir):
    if not os.path.isdir(work_dir) or not os.access(work_dir, os.R_OK | os.W_OK):
        raise DependencyNotMetError("Analysis directory %s does not exist or has "
                                    "incorrect permissions" % work_dir)
    return work_dir

def post_sequence(work_dir, config, scheduler=None, lims_client=None):
    """Report built sequences to LIMS, then start sequence analysis and alignment.
    """
    scheduler = scheduler or JobScheduler.from_config(config)
    params = AnalysisParams.read(work_dir)
    seq_files = bwa.get_read_files(work_dir)
    analyzer_cmd = _sequence_analysis_cmd(seq_files, config)
    lims.upload_results(lims.SEQUENCE_FINISHED, work_dir, config, lims_client)
    analyzer = scheduler.submit_job("%s_SequenceAnalysis" % params.fc_barcode, analyzer_cmd,
                                    memory=POST_SEQUENCE_MEMORY, cores=POST_SEQUENCE_CORES,
                                    queue=config_utils.default_queue(config), work_dir=work_dir)
    result = bwa.align_lane(work_dir, config, scheduler)
    _stash_casava_fastq(work_dir)
    return shared.Runnable((analyzer,) + tuple(result.handles))

def _sequence_analysis_cmd(seq_files, config):
    analyzer_dir = config_utils.get_required(config, ["program", "analyzer_dir"],
                                             "directory of analyzer jars")
    return "%s -Xmx8G -jar %s %s" % (config_utils.get_program("java", config),
                                     os.path.join(analyzer_dir, "SequenceAnalyzer.jar"),
                                     " ".join(os.path.basename(x) for x in seq_files))

def _stash_casava_fastq(work_dir):
    """Move CASAVA FASTQ chunks out of the analysis directory.
    """
    chunks = glob.glob(os.path.join(work_dir, "*.fastq.gz"))
    if chunks:
        out_dir = utils.safe_makedir(os.path.join(work_dir, "casava_fastq"))
        for fname in chunks:
            shutil.move(fname, out_dir)

def add_subparser(subparsers):
    parser = subparsers.add_parser("lane", help="Start analysis of a lane barcode.")
    parser.add_argument("fc_name", help="Full flowcell directory name")
    parser.add_argument("lane_barcode", help="Lane barcode, for example 1-ID01")
    parser.add_argument("--queue", help="Scheduler queue for the lane analysis jobs")
    parser.set_defaults(func=lambda args, config: process_lane(args.fc_name, args.lane_barcode,
                                                               config, queue=args.queue))
    parser = subparsers.add_parser("postsequence",
                                   help="Report built sequences and start alignment.")
    parser.add_argument("--workdir", default=os.getcwd(), help="Lane barcode analysis directory")
    parser.set_defaults(func=lambda args, config: post_sequence(args.workdir, config))
    return parser
