"""Build per read sequence files from CASAVA FASTQ chunks.

Reads failing the instrument's purity filter (flag Y in the header comment)
are dropped; counts before and after filtering go to SequencePFMetrics.metrics.
"""
import glob
import gzip
import os
import re

from Bio.SeqIO.QualityIO import FastqGeneralIterator

from slxpipe.errors import DependencyNotMetError
from slxpipe.log import logger

PF_METRICS_FILE = "SequencePFMetrics.metrics"
FRAGMENT = "fragment"
PAIRED = "paired"

def sequence_file(work_dir, fc_barcode, read):
    return os.path.join(work_dir, "%s_%s_sequence.txt" % (fc_barcode, read))

def find_chunks(work_dir, read):
    """CASAVA FASTQ chunks for a read, sorted by segment number.
    """
    return sorted(glob.glob(os.path.join(work_dir, "*_R%s_*.fastq.gz" % read)))

def build_sequences(work_dir, fc_barcode, mode=PAIRED):
    """Write purity filtered sequence files and their metrics in work_dir.
    """
    read1 = find_chunks(work_dir, 1)
    read2 = find_chunks(work_dir, 2)
    if not read1:
        raise DependencyNotMetError("Did not find any fastq files for read 1 in %s" % work_dir)
    if mode.lower() != FRAGMENT and not read2:
        raise DependencyNotMetError("Did not find any fastq files for read 2 for paired-end "
                                    "flowcell in %s" % work_dir)
    metrics = {}
    for read, chunks in [(1, read1), (2, read2)]:
        if chunks:
            out_file = sequence_file(work_dir, fc_barcode, read)
            metrics[read] = _filter_chunks(chunks, out_file)
            logger.info("%s read %s: %s of %s reads passed filter"
                        % (fc_barcode, read, metrics[read]["pf_reads"], metrics[read]["raw_reads"]))
    write_pf_metrics(os.path.join(work_dir, PF_METRICS_FILE), metrics)
    return metrics

def _filter_chunks(chunks, out_file):
    total = 0
    passed = 0
    with open(out_file, "w") as out_handle:
        for chunk in chunks:
            with gzip.open(chunk, "rt") as in_handle:
                try:
                    for title, seq, qual in FastqGeneralIterator(in_handle):
                        total += 1
                        if not _failed_filter(title):
                            passed += 1
                            out_handle.write("@%s\n%s\n+\n%s\n" % (title, seq, qual))
                except ValueError as e:
                    raise DependencyNotMetError("Malformed fastq chunk %s: %s" % (chunk, e))
    return {"raw_reads": total, "pf_reads": passed}

def _failed_filter(title):
    """CASAVA 1.8 headers carry read:filtered:control:index after the read name.
    """
    return re.search(r"\s\d:Y:", title) is not None

# ## Metrics

def write_pf_metrics(out_file, metrics):
    with open(out_file, "w") as out_handle:
        for read in sorted(metrics):
            vals = metrics[read]
            pct = 100.0 * vals["pf_reads"] / vals["raw_reads"] if vals["raw_reads"] else 0.0
            out_handle.write("Read Type : Read %s\n" % read)
            out_handle.write("Total Reads : %s\n" % vals["raw_reads"])
            out_handle.write("Total Filtered Reads : %s\n" % vals["pf_reads"])
            out_handle.write("Percent Reads Passed Filter : %.2f\n\n" % pct)
    return out_file

def read_pf_metrics(work_dir):
    """Read purity filter metrics by read number, empty when not yet built.
    """
    in_file = os.path.join(work_dir, PF_METRICS_FILE)
    out = {}
    if not os.path.exists(in_file):
        return out
    keys = {"Total Reads": "raw_reads", "Total Filtered Reads": "pf_reads",
            "Percent Reads Passed Filter": "percent_pf_reads"}
    cur = None
    with open(in_file) as in_handle:
        for line in in_handle:
            if ":" not in line:
                continue
            key, val = [x.strip() for x in line.split(":", 1)]
            if key == "Read Type":
                cur = out.setdefault(int(val.split()[-1]), {})
            elif cur is not None and key in keys:
                cur[keys[key]] = val
    return out

def add_subparser(subparsers):
    parser = subparsers.add_parser("buildfastq", help="Build purity filtered sequence files.")
    parser.add_argument("fc_barcode", help="Flowcell barcode naming the sequence files")
    parser.add_argument("--workdir", default=os.getcwd(), help="Directory with CASAVA chunks")
    parser.add_argument("--mode", default=PAIRED, choices=[FRAGMENT, PAIRED])
    parser.set_defaults(func=lambda args, config: build_sequences(args.workdir, args.fc_barcode,
                                                                  args.mode))
    return parser
