"""Count reads in FASTQ files and write the per-file counts report.
"""
import collections
from shlex import quote

from readqc import utils
from readqc.log import logger

LINES_PER_READ = 4


def count_cmd(fname, programs, mode, threads):
    """Build a shell pipeline printing the number of lines in a FASTQ file.

    Gzipped files are streamed through the decompressor selected for the
    run's parallelism; plain files use cat.
    """
    in_file = quote(fname)
    if utils.is_gzipped(fname):
        decompress = mode.decompressor
        if mode.is_parallel:
            return "{0} -d -c -p {1} {2} | wc -l".format(quote(programs[decompress]), threads,
                                                             in_file)
        return "{0} {1} | wc -l".format(quote(programs[decompress]), in_file)
    return "cat {0} | wc -l".format(in_file)

def parse_count(stdout):
    """Convert `wc -l` output into a number of reads.
    """
    stdout = stdout.strip()
    if not stdout:
        return None
    return int(stdout.split()[0]) // LINES_PER_READ

def count_reads(files, programs, mode, threads, runner):
    """Count reads in each file, returning an ordered mapping of path to count.
    """
    counts = collections.OrderedDict()
    for fname in files:
        result = runner.run(count_cmd(fname, programs, mode, threads),
                            "Counting reads in %s" % fname)
        counts[fname] = parse_count(result.stdout)
    return counts

def write_counts(counts, out_file, runner):
    """Write counts as `path count` lines.

    Print-only runs have no counts to report, so nothing is written.
    """
    lines = ["%s %s" % (fname, count) for fname, count in counts.items()
             if count is not None]
    for line in lines:
        logger.info("Read count: %s" % line)
    return runner.write_lines(out_file, lines)
