"""High level code for driving paired-end read quality control.

This structures processing steps into the following modules:

  - main.py: Run the pipeline for a pair of read files, plus the command line.
    - config_utils.py: Run configuration, validation and program lookup.
    - paths.py: Derive every intermediate and final file name up front.
    - stages.py: Ordered pipeline stages and the commands they run.
      - counts.py: Count reads and write counts reports.
      - organize.py: Tidy diagnostic outputs into info/ subdirectories.
"""
