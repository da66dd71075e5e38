#!/usr/bin/env python -Es
"""Run a stage of the automated Illumina sequencing analysis pipeline.

Usage:
  slxpipe.py [--config <system YAML>] <stage> [stage arguments]

Stages started from cron:
  detect      find flowcells the sequencers finished copying and start them
  clean       list or remove intensity intermediates of analysed flowcells

Stages run on request or from submitted batch jobs:
  preprocess  build flowcell metadata and start BCL conversion
  bcl2fastq   convert BCL files and fan out per lane barcode analysis
  lane        write analysis parameters and build sequences for a lane barcode
  buildfastq  filter CASAVA FASTQ chunks into per read sequence files
  postsequence report sequences to LIMS and start alignment
  align       submit BWA alignment for a lane barcode
  postalign   sort, mark duplicates and report a lane barcode BAM
  merge       submit a merge of several lane barcode BAMs of one sample
  mergebams   merge BAMs now (run inside the merge job)
  upload      upload lane status to LIMS

The system YAML defaults to $SLXPIPE_CONFIG or slxpipe_system.yaml in the
working directory.
"""
import sys

from slxpipe.pipeline.main import run_cmd

if __name__ == "__main__":
    sys.exit(run_cmd(sys.argv[1:]))
