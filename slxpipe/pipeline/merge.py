"""Merge duplicate marked BAMs of one sample from multiple lane barcodes.

The driver validates every input synchronously and then submits a single
whole node job; the job merges, re-marks duplicates and gathers statistics
in the output directory.
"""
import glob
import os

from slxpipe.distributed.job import JobHandle
from slxpipe.distributed.scheduler import JobScheduler
from slxpipe.errors import ConfigurationError, DependencyNotMetError
from slxpipe.log import logger
from slxpipe.ngsalign import postalign
from slxpipe.pipeline import config_utils, shared
from slxpipe.provenance import do

def find_bams_to_merge(input_dirs):
    """Marked BAM for each input directory; exactly one is expected in each.
    """
    if not input_dirs or len(input_dirs) < 2:
        raise DependencyNotMetError("Cannot merge: at least two files required, found %s: %s"
                                    % (len(input_dirs or []), ", ".join(input_dirs or [])))
    bams = []
    for dname in input_dirs:
        if not os.path.exists(dname):
            raise DependencyNotMetError("Specified directory path %s does not exist" % dname)
        found = sorted(glob.glob(os.path.join(dname, "*_marked.bam")))
        if len(found) != 1:
            raise DependencyNotMetError("Cannot merge: exactly one bam expected in %s, found %s"
                                        % (dname, len(found)))
        bams.append(os.path.abspath(found[0]))
    return bams

def _check_out_dir(out_dir):
    if not out_dir or not os.path.isdir(out_dir) or not os.access(out_dir, os.W_OK):
        raise ConfigurationError("Output directory %s does not exist or is not writable" % out_dir)
    return os.path.abspath(out_dir)

def submit_merge(sample_name, input_dirs, out_dir, config, scheduler=None, depends_on=None):
    """Validate inputs then submit the merge job for a sample.

    depends_on holds handles of the alignment jobs producing the inputs.
    """
    if not sample_name:
        raise ConfigurationError("Sample name not specified for merge")
    bams = find_bams_to_merge(input_dirs)
    out_dir = _check_out_dir(out_dir)
    scheduler = scheduler or JobScheduler.from_config(config)
    handle = scheduler.submit_job("Merge_%s" % sample_name,
                                  shared.stage_cmd(config, "mergebams", sample_name, out_dir, *bams),
                                  depends_on=depends_on,
                                  whole_node=config_utils.default_queue(config),
                                  work_dir=out_dir)
    logger.info("Merging %s BAMs for sample %s as job %s" % (len(bams), sample_name, handle.job_id))
    return shared.Runnable([handle])

def merge_bams(sample_name, out_dir, bams, config):
    """Merge, mark duplicates and gather statistics. Runs inside the merge job.
    """
    merged = os.path.join(out_dir, "%s_merged.bam" % sample_name)
    final = os.path.join(out_dir, "%s_final.bam" % sample_name)
    do.run(postalign.picard_cmd("MergeSamFiles", ["I=%s" % x for x in bams] +
                                ["O=%s" % merged, "USE_THREADING=true", "AS=true"], config),
           "Merge BAMs for %s" % sample_name, [do.file_nonempty(merged)], cwd=out_dir)
    do.run(postalign.picard_cmd("MarkDuplicates", ["I=%s" % merged, "O=%s" % final, "AS=true",
                                                   "M=%s.dup_metrics" % final[:-len(".bam")]],
                                config),
           "Mark duplicates for %s" % sample_name, [do.file_nonempty(final)], cwd=out_dir)
    do.run(postalign.bam_analyzer_cmd(final, out_dir, config),
           "Alignment statistics for %s" % sample_name, cwd=out_dir)
    return final

def add_subparser(subparsers):
    parser = subparsers.add_parser("merge", help="Submit a merge of BAMs for one sample.")
    parser.add_argument("sample_name", help="Name of the sample, used as output prefix")
    parser.add_argument("out_dir", help="Directory to write the merged BAM to")
    parser.add_argument("input_dirs", nargs="+",
                        help="Analysis directories each holding one *_marked.bam")
    parser.add_argument("--after", action="append", default=[],
                        help="Batch job ID that must succeed before merging. Can repeat.")
    parser.set_defaults(func=lambda args, config: submit_merge(
        args.sample_name, args.input_dirs, args.out_dir, config,
        depends_on=[JobHandle("after_%s" % x, x) for x in args.after]))
    parser = subparsers.add_parser("mergebams", help="Merge BAMs now; run by the merge job.")
    parser.add_argument("sample_name")
    parser.add_argument("out_dir")
    parser.add_argument("bams", nargs="+")
    parser.set_defaults(func=lambda args, config: merge_bams(args.sample_name, args.out_dir,
                                                             args.bams, config))
    return parser
