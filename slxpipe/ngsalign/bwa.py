"""Next-gen alignments with BWA (http://bio-bwa.sourceforge.net/)

Reads are aligned per read with `bwa aln`, each on a whole node, then
combined with `sampe` (paired) or `samse` (fragment) once every aln job
finishes. A BAM processing job follows the combining job.
"""
import datetime
import os

from slxpipe.distributed import job
from slxpipe.distributed.scheduler import JobScheduler
from slxpipe.errors import ConfigurationError, DependencyNotMetError
from slxpipe.illumina import flowcell
from slxpipe.log import logger
from slxpipe.pipeline import config_utils, shared
from slxpipe.pipeline.params import AnalysisParams

UNZIP_MEMORY = 2000

def get_read_files(work_dir):
    """One (fragment) or two (paired) sequence files for a lane barcode.
    """
    seq_files = flowcell.find_sequence_files(work_dir)
    if not seq_files:
        raise DependencyNotMetError("Could not find sequence files in directory %s" % work_dir)
    elif len(seq_files) > 2:
        raise DependencyNotMetError("More than two sequence files detected in directory %s: %s"
                                    % (work_dir, ", ".join(os.path.basename(x) for x in seq_files)))
    return seq_files

def align_lane(work_dir, config, scheduler=None):
    """Submit alignment of the sequence files in work_dir.

    Returns Skipped when the lane barcode has no reference to align to.
    """
    params = AnalysisParams.read(work_dir)
    if not params.needs_alignment:
        logger.info("%s: no alignment to perform since reference is %s"
                    % (params.fc_barcode, params.reference_path))
        return shared.Skipped("reference is %s" % params.reference_path)
    if not params.fc_barcode:
        raise ConfigurationError("Flowcell barcode must be specified in %s" % work_dir)
    seq_files = get_read_files(work_dir)
    scheduler = scheduler or JobScheduler.from_config(config)
    queue = params.scheduler_queue
    names = {"fc_barcode": params.fc_barcode,
             "sam": "%s.sam" % params.fc_barcode,
             "bam": "%s_marked.bam" % params.fc_barcode}
    prev = []
    zipped = [x for x in seq_files if x.endswith(".bz2")]
    if zipped:
        prev = [scheduler.submit_job("%s_unzip_sequences" % params.fc_barcode,
                                     "%s %s" % (config_utils.get_program("bunzip2", config),
                                                " ".join(zipped)),
                                     memory=UNZIP_MEMORY, cores=1, queue=queue, work_dir=work_dir)]
        seq_files = [x[:-len(".bz2")] if x.endswith(".bz2") else x for x in seq_files]
    sai_files = ["%s.sai" % x for x in seq_files]
    aln_jobs = []
    for i, (seq_file, sai_file) in enumerate(zip(seq_files, sai_files)):
        aln_jobs.append(scheduler.submit_job("%s_aln_read%s" % (params.fc_barcode, i + 1),
                                             _aln_cmd(seq_file, sai_file, params, queue, config),
                                             depends_on=prev, whole_node=queue,
                                             work_dir=work_dir))
    if len(seq_files) == 2:
        combine = scheduler.submit_job("%s_bwa_sampe" % params.fc_barcode,
                                       _sampe_cmd(seq_files, sai_files, names["sam"], params,
                                                  config),
                                       depends_on=aln_jobs, whole_node=queue, work_dir=work_dir)
    else:
        combine = scheduler.submit_job("%s_bwa_samse" % params.fc_barcode,
                                       _samse_cmd(seq_files[0], sai_files[0], names["sam"],
                                                  params, config),
                                       depends_on=aln_jobs, whole_node=queue, work_dir=work_dir)
    process = scheduler.submit_job("%s_processBam" % params.fc_barcode,
                                   shared.stage_cmd(config, "postalign", names["sam"],
                                                    names["bam"], "--workdir", work_dir),
                                   depends_on=[combine], whole_node=queue, work_dir=work_dir)
    return shared.Runnable(prev + aln_jobs + [combine, process])

def _aln_cmd(seq_file, sai_file, params, queue, config):
    """BWA aln using every core of the reserved node.
    """
    cmd = [config_utils.get_program("bwa", config), "aln", "-t", str(job.WholeNode(queue).cores)]
    if params.base_qual_format == "PHRED+64":
        cmd.append("-I")
    cmd += [params.reference_path, os.path.basename(seq_file), ">", os.path.basename(sai_file)]
    return " ".join(cmd)

def _sampe_cmd(seq_files, sai_files, sam_file, params, config):
    bwa = config_utils.get_program("bwa", config)
    return "{bwa} sampe -P -r '{rg}' {ref} {sai1} {sai2} {seq1} {seq2} > {sam}".format(
        bwa=bwa, rg=get_rg_info(params), ref=params.reference_path,
        sai1=os.path.basename(sai_files[0]), sai2=os.path.basename(sai_files[1]),
        seq1=os.path.basename(seq_files[0]), seq2=os.path.basename(seq_files[1]), sam=sam_file)

def _samse_cmd(seq_file, sai_file, sam_file, params, config):
    bwa = config_utils.get_program("bwa", config)
    return "{bwa} samse -r '{rg}' {ref} {sai} {seq} > {sam}".format(
        bwa=bwa, rg=get_rg_info(params), ref=params.reference_path,
        sai=os.path.basename(sai_file), seq=os.path.basename(seq_file), sam=sam_file)

def get_rg_info(params, now=None):
    """Read group header line, escaped for bwa's -r option.
    """
    now = now or datetime.datetime.now()
    parts = ["@RG", "ID:0", "SM:%s" % (params.sample_name or params.fc_barcode)]
    if params.library_name:
        parts.append("LB:%s" % params.library_name)
    parts += ["PU:%s" % (params.rg_pu_field or params.fc_barcode), "CN:BCM",
              "DT:%s" % now.strftime("%Y-%m-%dT%H:%M:%S"), "PL:Illumina"]
    return r"\t".join(parts)

def add_subparser(subparsers):
    parser = subparsers.add_parser("align", help="Submit BWA alignment of a lane barcode.")
    parser.add_argument("--workdir", default=os.getcwd(), help="Lane barcode analysis directory")
    parser.set_defaults(func=lambda args, config: align_lane(args.workdir, config))
    return parser
