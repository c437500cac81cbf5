"""Derive every intermediate and final file name used in a quality control run.

All names come from the run prefix and output directory, so any stage can
find the outputs of earlier stages, and cleanup always knows both the file
being removed and the file that replaced it.
"""
import collections
import os

# FLASH writes fixed names based on --output-prefix, independent of the run prefix
FLASH_PREFIX = "flashed"
FLASH_OUTPUTS = collections.OrderedDict([
    ("flashed", "%s.extendedFrags.fastq"),
    ("nonflashed", "%s.notCombined.fastq"),
    ("flashed_hist", "%s.hist"),
    ("flashed_histogram", "%s.histogram"),
])

STATS_EXT = ".stats.txt"
COUNTS_EXT = ".counts.txt"

ArtifactPaths = collections.namedtuple("ArtifactPaths", [
    "outdir", "info_dir", "original_counts", "interleaved", "interleaved_stats",
    "flashed", "nonflashed", "flashed_hist", "flashed_histogram",
    "flashed_filtered", "filtered", "paired", "orphans", "single",
    "pe_stats", "se_stats", "pe_gz", "se_gz", "final_counts",
    "kmer_table", "pe_normalized", "se_normalized", "renames"])


def derive(config):
    """Compute all artifact paths for a run configuration without touching disk.
    """
    prefix = config.prefix
    outdir = config.outdir

    def _out(*parts):
        return os.path.join(outdir, "".join(parts))

    interleaved_base = "%s.interleaved" % prefix
    interleaved = _out(interleaved_base, ".fq")
    flashed = _out(interleaved_base, ".flashed.fq")
    nonflashed = _out(interleaved_base, ".nonflashed.fq")
    flashed_hist = _out(interleaved_base, ".flashed.hist")
    flashed_histogram = _out(interleaved_base, ".flashed.histogram")
    if config.merge_enabled:
        filtered = _out(interleaved_base, ".nonflashed.filtered.fq")
    else:
        filtered = _out(interleaved_base, ".filtered.fq")
    orphans = filtered + ".se"
    if config.merge_enabled:
        single = _out(prefix, ".flashed_and_filtered.se.fq")
    else:
        single = orphans
    targets = {"flashed": flashed, "nonflashed": nonflashed,
               "flashed_hist": flashed_hist, "flashed_histogram": flashed_histogram}
    renames = tuple((os.path.join(outdir, tmpl % FLASH_PREFIX), targets[key])
                    for key, tmpl in FLASH_OUTPUTS.items())
    return ArtifactPaths(
        outdir=outdir,
        info_dir=os.path.join(outdir, "info"),
        original_counts=_out(prefix, ".original", COUNTS_EXT),
        interleaved=interleaved,
        interleaved_stats=interleaved + STATS_EXT,
        flashed=flashed,
        nonflashed=nonflashed,
        flashed_hist=flashed_hist,
        flashed_histogram=flashed_histogram,
        flashed_filtered=_out(interleaved_base, ".flashed.filtered.fq"),
        filtered=filtered,
        paired=filtered + ".pe",
        orphans=orphans,
        single=single,
        pe_stats=_out(prefix, ".pe.filtered", STATS_EXT),
        se_stats=_out(prefix, ".se.filtered", STATS_EXT),
        pe_gz=_out(prefix, ".pe.filtered.fq.gz"),
        se_gz=_out(prefix, ".se.filtered.fq.gz"),
        final_counts=_out(prefix, ".pe_se", COUNTS_EXT),
        kmer_table=_out(prefix, ".normalize.kh"),
        pe_normalized=_out(prefix, ".pe.normalized.fq.gz"),
        se_normalized=_out(prefix, ".se.normalized.fq.gz"),
        renames=renames)
