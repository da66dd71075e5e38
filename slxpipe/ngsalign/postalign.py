"""Post-alignment processing of a lane barcode's BAM file.

Runs inside the whole node job submitted after BWA: sorting, duplicate
marking, alignment statistics, then the LIMS upload, cleanup, compression
of sequence files and the result email.
"""
import glob
import os

from slxpipe import utils
from slxpipe.log import logger
from slxpipe.pipeline import config_utils, lims, notify, shared
from slxpipe.pipeline.params import AnalysisParams
from slxpipe.provenance import do

MAP_STATS = "BWA_Map_Stats.txt"

def picard_cmd(tool, args, config):
    """Java command line for a Picard tool jar with shared options.
    """
    opts = config_utils.picard_options(config)
    picard_dir = config_utils.get_required(config, ["program", "picard_dir"],
                                           "directory of Picard jars")
    return ([config_utils.get_program("java", config), opts["max_heap"], "-jar",
             os.path.join(picard_dir, "%s.jar" % tool)] + list(args) + opts["extra"])

def bam_analyzer_cmd(in_bam, work_dir, config):
    analyzer_dir = config_utils.get_required(config, ["program", "analyzer_dir"],
                                             "directory of analyzer jars")
    return [config_utils.get_program("java", config),
            config_utils.picard_options(config)["max_heap"], "-jar",
            os.path.join(analyzer_dir, "BAMAnalyzer.jar"), "I=%s" % in_bam,
            "O=%s" % os.path.join(work_dir, MAP_STATS),
            "X=%s" % os.path.join(work_dir, lims.ALIGNMENT_METRICS_FILE)]

def sam_to_marked_bam(sam_file, out_bam, work_dir, config):
    """Sort aligned reads into a BAM, mark duplicates and gather statistics.
    """
    sam_file = os.path.join(work_dir, sam_file)
    out_bam = os.path.join(work_dir, out_bam)
    sorted_bam = "%s_sorted.bam" % utils.splitext_plus(out_bam)[0].replace("_marked", "")
    do.run(picard_cmd("SortSam", ["I=%s" % sam_file, "O=%s" % sorted_bam, "SO=coordinate"],
                      config), "Sort alignments: %s" % sam_file, [do.file_nonempty(sorted_bam)],
           cwd=work_dir)
    do.run(picard_cmd("MarkDuplicates", ["I=%s" % sorted_bam, "O=%s" % out_bam, "AS=true",
                                         "M=%s.dup_metrics" % utils.splitext_plus(out_bam)[0]],
                      config), "Mark duplicates: %s" % out_bam, [do.file_nonempty(out_bam)],
           cwd=work_dir)
    do.run(bam_analyzer_cmd(out_bam, work_dir, config), "Alignment statistics: %s" % out_bam,
           cwd=work_dir)
    return out_bam

def process_bam(sam_file, out_bam, work_dir, config, lims_client=None):
    """Finish a lane barcode after alignment.
    """
    params = AnalysisParams.read(work_dir)
    shared.require_file(os.path.join(work_dir, sam_file), "aligned reads from BWA")
    logger.info("Processing alignments for %s" % params.fc_barcode)
    out_bam = sam_to_marked_bam(sam_file, out_bam, work_dir, config)
    lims.upload_results(lims.ANALYSIS_FINISHED, work_dir, config, lims_client)
    clean_intermediates(work_dir)
    zip_sequence_files(work_dir, config)
    email_results(work_dir, params, config)
    return out_bam

def clean_intermediates(work_dir):
    removed = []
    for pattern in ["*.sam", "*.sai", "*_sorted.bam"]:
        removed += utils.remove_glob(os.path.join(work_dir, pattern))
    logger.debug("Removed intermediate files: %s" % ", ".join(os.path.basename(x) for x in removed))
    return removed

def zip_sequence_files(work_dir, config):
    seq_files = sorted(glob.glob(os.path.join(work_dir, "*_sequence.txt")))
    if seq_files:
        do.run([config_utils.get_program("bzip2", config)] + seq_files,
               "Compress sequence files in %s" % work_dir)
    return seq_files

def email_results(work_dir, params, config):
    subject = "Illumina Alignment Results : Flowcell %s" % (params.fc_barcode or "unknown")
    if params.library_name:
        subject += " Library : %s" % params.library_name
    stats_file = os.path.join(work_dir, MAP_STATS)
    text = []
    if os.path.exists(stats_file):
        with open(stats_file) as in_handle:
            text.append(in_handle.read())
    for uniq_file in glob.glob(os.path.join(work_dir, "*_uniqueness.txt")):
        with open(uniq_file) as in_handle:
            text.append(in_handle.read())
    text.append("Results path : %s" % os.path.abspath(work_dir))
    return notify.report_results(config, subject, "\n\n".join(text),
                                 glob.glob(os.path.join(work_dir, "*.png")))

def add_subparser(subparsers):
    parser = subparsers.add_parser("postalign", help="Process BWA output for a lane barcode.")
    parser.add_argument("sam_file", help="SAM file written by bwa sampe/samse")
    parser.add_argument("out_bam", help="Final duplicate marked BAM file")
    parser.add_argument("--workdir", default=os.getcwd(), help="Lane barcode analysis directory")
    parser.set_defaults(func=lambda args, config: process_bam(args.sam_file, args.out_bam,
                                                              args.workdir, config))
    return parser
