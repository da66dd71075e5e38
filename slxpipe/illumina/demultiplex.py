"""Demultiplex and fastq conversion from Illumina output directories.

Uses CASAVA's configureBclToFastq.pl to write a Makefile into the flowcell
Results directory, then runs make as a whole node batch job. Every lane
barcode gets its own analysis job waiting on the conversion.
"""
import os

from slxpipe.distributed import job
from slxpipe.distributed.scheduler import JobScheduler
from slxpipe.illumina import flowcell, samplesheet
from slxpipe.log import logger
from slxpipe.pipeline import config_utils, shared
from slxpipe.provenance import do

def run_bcl2fastq(fc_name, config, scheduler=None, use_bases_mask=None):
    """Convert BCL files for a flowcell and fan out per lane barcode analysis.
    """
    scheduler = scheduler or JobScheduler.from_config(config)
    fc_dir = flowcell.find_fc_path(fc_name, config)
    bc_dir = flowcell.get_basecalls_dir(fc_dir)
    ss_csv = shared.require_file(os.path.join(bc_dir, samplesheet.SAMPLE_SHEET),
                                 "sample sheet for %s" % fc_name)
    lane_barcodes = flowcell.get_lane_barcodes(os.path.join(bc_dir, flowcell.DEFINITION_FILE))
    output_dir = flowcell.get_results_dir(fc_dir)
    if not os.path.exists(os.path.join(output_dir, "Makefile")):
        cmd = [config_utils.get_program("bcl2fastq", config),
               "--input-dir", bc_dir, "--output-dir", output_dir, "--sample-sheet", ss_csv,
               "--mismatches", "1", "--ignore-missing-stats", "--ignore-missing-bcl"]
        if use_bases_mask:
            cmd += ["--use-bases-mask", use_bases_mask]
        do.run(cmd, "Configure BCL to FASTQ conversion: %s" % fc_name)
    queue = config_utils.casava_queue(config)
    make_handle = scheduler.submit_job(
        "%s_BclToFastQ" % fc_name,
        "%s -j%s" % (config_utils.get_program("make", config), job.WholeNode(queue).cores),
        whole_node=queue, work_dir=output_dir)
    handles = [make_handle]
    for lane_barcode in lane_barcodes:
        handles.append(scheduler.submit_job("%s_%s_lane" % (fc_name, lane_barcode),
                                            shared.stage_cmd(config, "lane", fc_name, lane_barcode),
                                            depends_on=[make_handle],
                                            queue=config_utils.default_queue(config),
                                            work_dir=output_dir))
    logger.info("Flowcell %s: BCL conversion job %s with %s lane analyses"
                % (fc_name, make_handle.job_id, len(lane_barcodes)))
    return shared.Runnable(handles)

def add_subparser(subparsers):
    parser = subparsers.add_parser("bcl2fastq", help="Convert BCL files of a flowcell to FASTQ.")
    parser.add_argument("fc_name", help="Full flowcell directory name")
    parser.add_argument("--use-bases-mask", help="Custom bases mask for the conversion")
    parser.set_defaults(func=lambda args, config: run_bcl2fastq(args.fc_name, config,
                                                                use_bases_mask=args.use_bases_mask))
    return parser
