"""Main entry point for paired-end read quality control.

Handles running the full pipeline for one pair of read files, based on
command line options or a RunConfig.
"""
import argparse
import os
import sys

from readqc import log, utils
from readqc.distributed import transaction
from readqc.log import logger
from readqc.pipeline import config_utils, paths, stages
from readqc.pipeline.config_utils import (ConfigurationError, MissingDependencyError,
                                          NormalizeParams, RunConfig)
from readqc.provenance import do
from readqc.provenance.do import ToolExecutionError

VALIDATE = "validate"
DONE = "done"
ABORTED = "aborted"


class QualityControlRun(object):
    """Drive a single run through validation and the ordered pipeline stages.

    `state` holds the stage currently executing, then `done` or `aborted`.
    `completed` lists the stages that finished, in order.
    """
    def __init__(self, config, system_config=None, runner=None):
        self.config = config
        self.system_config = system_config or {"resources": {}}
        self.runner = runner or do.get_runner(config.dry_run, self.system_config)
        self.paths = None
        self.mode = None
        self.state = VALIDATE
        self.completed = []

    def run(self):
        try:
            programs = self._validate()
            ctx = stages.StageContext(self.config, self.paths, programs, self.mode,
                                      self.runner, self.system_config)
            for stage in stages.get_stages(self.config):
                self.state = stage.name
                self.runner.stage = stage.name
                logger.info("Running stage: %s" % stage.name)
                stage.fn(ctx)
                self.completed.append(stage.name)
        except Exception:
            logger.info("Aborting run during stage: %s" % self.state)
            self.state = ABORTED
            raise
        self._finalize()
        self.state = DONE
        return self.paths

    def _validate(self):
        config_utils.validate(self.config)
        self.paths = paths.derive(self.config)
        self.mode = stages.Parallelism.from_threads(self.config.threads)
        programs = config_utils.get_programs(stages.required_programs(self.config),
                                             self.system_config)
        for name, prog in programs.items():
            logger.debug("Using %s: %s" % (name, prog))
        self.runner.makedir(self.config.outdir)
        self.completed.append(VALIDATE)
        return programs

    def _finalize(self):
        if not self.runner.dry_run:
            utils.remove_empty_dir(os.path.join(self.config.outdir, transaction.DEFAULT_TMP))

def run_qc(config, system_config=None, runner=None):
    """Run quality control for a configuration, returning the finished run.
    """
    qc_run = QualityControlRun(config, system_config, runner)
    qc_run.run()
    return qc_run

def run_main(left, right, prefix, outdir, quality=config_utils.DEFAULT_QUALITY,
             percent=config_utils.DEFAULT_PERCENT, threads=config_utils.DEFAULT_THREADS,
             print_only=False, kmer=None, coverage=None, ram=None, merge=True,
             system_config=None, log_dir=None, verbose=False):
    """Run quality control, handling command line options.
    """
    config = config_utils.load_system_config(system_config)
    if log_dir:
        config["log_dir"] = os.path.abspath(log_dir)
    handler = log.setup_local_logging(config, verbose)
    try:
        normalize = None
        if any(x is not None for x in [kmer, coverage, ram]):
            normalize = NormalizeParams(
                config_utils.DEFAULT_KMER if kmer is None else kmer,
                config_utils.DEFAULT_COVERAGE if coverage is None else coverage, ram)
        run_config = RunConfig(left, right, outdir, prefix, quality=quality, percent=percent,
                               threads=threads, dry_run=print_only, merge=merge,
                               normalize=normalize)
        return run_qc(run_config, config)
    finally:
        handler.pop_application()
        handler.close()

def parse_cl_args(in_args):
    """Parse input commandline arguments into keyword arguments for run_main.
    """
    description = "Quality control of paired-end reads: interleave, merge, filter and compress."
    parser = argparse.ArgumentParser(description=description)
    parser.add_argument("-l", "--left", required=True, help="Left reads (.fq or .fq.gz)")
    parser.add_argument("-r", "--right", required=True, help="Right reads (.fq or .fq.gz)")
    parser.add_argument("-p", "--prefix", required=True, help="Prefix for output")
    parser.add_argument("-o", "--outdir", required=True, help="Output directory")
    parser.add_argument("-q", "--quality", type=int, default=config_utils.DEFAULT_QUALITY,
                        help="Minimum quality score to keep")
    parser.add_argument("--percent", type=int, default=config_utils.DEFAULT_PERCENT,
                        help="Minimum percent of bases that must have [-q] quality")
    parser.add_argument("-t", "--threads", type=int, default=config_utils.DEFAULT_THREADS,
                        help="Number of threads to use (if greater than one, will use pigz)")
    parser.add_argument("--print-only", action="store_true", default=False,
                        help="Print the commands that would run without running them")
    parser.add_argument("--no-merge", dest="merge", action="store_false", default=True,
                        help="Skip merging overlapping pairs with FLASH")
    parser.add_argument("--kmer", type=int, default=None,
                        help="k-mer size for digital normalization (default %s)"
                        % config_utils.DEFAULT_KMER)
    parser.add_argument("--coverage", type=int, default=None,
                        help="Target coverage for digital normalization (default %s)"
                        % config_utils.DEFAULT_COVERAGE)
    parser.add_argument("--ram", type=float, default=None,
                        help="Memory in bytes for the normalization k-mer table, e.g. 4e9. "
                             "Setting any of --kmer, --coverage or --ram enables "
                             "normalization, which needs at least 1e9 bytes")
    parser.add_argument("--system-config", default=None,
                        help="YAML configuration file with program locations and options")
    parser.add_argument("--log-dir", default=None, help="Directory to write log files to")
    parser.add_argument("-v", "--verbose", action="store_true", default=False,
                        help="Log debugging output, including tool output")
    return vars(parser.parse_args(in_args))

def main(in_args=None):
    kwargs = parse_cl_args(sys.argv[1:] if in_args is None else in_args)
    try:
        run_main(**kwargs)
    except (ConfigurationError, MissingDependencyError, ToolExecutionError) as e:
        sys.stderr.write("ERROR: %s\n" % e)
        sys.exit(1)
    print()
    print("Done!")
