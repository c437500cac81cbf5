#!/usr/bin/env python
"""Run quality control on a pair of Illumina read files.

Interleaves the reads, merges overlapping pairs with FLASH, quality filters
with the FASTX-Toolkit, separates proper pairs from orphans and writes
gzipped paired-end and single-end outputs plus read counts and quality
statistics under <outdir>/info.

Usage:
  readqc_qc.py -l left.fq.gz -r right.fq.gz -p sample -o sample/qc [-t 4]
     --print-only  show the commands without running anything
     --ram 4e9     add digital normalization with khmer
"""
from readqc.pipeline.main import main

if __name__ == "__main__":
    main()
