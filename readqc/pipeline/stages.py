"""Ordered stages of the paired-end quality control pipeline.

Each stage reads only paths derived up front in `paths.derive` and the
outputs of earlier stages, writes its outputs to derived paths, then removes
the intermediate inputs it has fully consumed.

Stages, in order:
  count_raw -> interleave -> stats_prefilter -> merge -> quality_filter ->
  split_pairs -> recombine -> stats_postfilter -> compress -> count_final ->
  organize -> normalize
"""
import collections
import enum
from shlex import quote

from readqc.log import logger
from readqc.pipeline import config_utils, counts, organize as organize_mod
from readqc.pipeline.paths import FLASH_PREFIX
from readqc.provenance import do

INTERLEAVE = "interleave-reads.py"
QUAL_STATS = "fastx_quality_stats"
FLASH = "flash"
QUAL_FILTER = "fastq_quality_filter"
EXTRACT_PAIRED = "extract-paired-reads.py"
NORMALIZE = "normalize-by-median.py"


class Parallelism(enum.Enum):
    """Tool variant for compression and counting, decided once per run.
    """
    SINGLE = "single"
    PARALLEL = "parallel"

    @classmethod
    def from_threads(cls, threads):
        return cls.SINGLE if int(threads) == 1 else cls.PARALLEL

    @property
    def is_parallel(self):
        return self is Parallelism.PARALLEL

    @property
    def compressor(self):
        return "pigz" if self.is_parallel else "gzip"

    @property
    def decompressor(self):
        return "unpigz" if self.is_parallel else "zcat"


StageContext = collections.namedtuple("StageContext", ["config", "paths", "programs", "mode",
                                                       "runner", "system_config"])

Stage = collections.namedtuple("Stage", ["name", "fn", "wanted"])


def required_programs(config):
    """External programs needed for a run configuration, in order of first use.
    """
    mode = Parallelism.from_threads(config.threads)
    progs = [INTERLEAVE, QUAL_STATS]
    if config.merge_enabled:
        progs.append(FLASH)
    progs += [QUAL_FILTER, EXTRACT_PAIRED, mode.compressor, mode.decompressor]
    if config.normalize_enabled:
        progs.append(NORMALIZE)
    return progs

def _join(args):
    return " ".join(quote(str(x)) for x in args)

def _cleanup(ctx, *fnames):
    for fname in fnames:
        ctx.runner.remove(fname)

# ## Read counts

def count_raw(ctx):
    read_counts = counts.count_reads([ctx.config.left, ctx.config.right], ctx.programs,
                                     ctx.mode, ctx.config.threads, ctx.runner)
    counts.write_counts(read_counts, ctx.paths.original_counts, ctx.runner)

def count_final(ctx):
    read_counts = counts.count_reads([ctx.paths.pe_gz, ctx.paths.se_gz], ctx.programs,
                                     ctx.mode, ctx.config.threads, ctx.runner)
    counts.write_counts(read_counts, ctx.paths.final_counts, ctx.runner)

# ## Interleaving and quality statistics

def interleave(ctx):
    cmd = _join([ctx.programs[INTERLEAVE], "-o", ctx.paths.interleaved,
                 ctx.config.left, ctx.config.right])
    ctx.runner.run(cmd, "Interleaving reads", [do.file_exists(ctx.paths.interleaved)])

def qual_stats_cmd(prog, in_file, out_file):
    return _join([prog, "-i", in_file, "-o", out_file])

def _qual_stats(ctx, in_file, out_file):
    with ctx.runner.transaction(out_file) as tx_out_file:
        ctx.runner.run(qual_stats_cmd(ctx.programs[QUAL_STATS], in_file, tx_out_file),
                       "Quality statistics: %s" % in_file,
                       [do.file_exists(tx_out_file)])

def stats_prefilter(ctx):
    _qual_stats(ctx, ctx.paths.interleaved, ctx.paths.interleaved_stats)

def stats_postfilter(ctx):
    _qual_stats(ctx, ctx.paths.paired, ctx.paths.pe_stats)
    _qual_stats(ctx, ctx.paths.single, ctx.paths.se_stats)

# ## Overlap merging with FLASH

def merge_cmd(ctx):
    opts = config_utils.get_options(FLASH, ctx.system_config)
    cmd = [ctx.programs[FLASH], "--interleaved", "--output-prefix", FLASH_PREFIX,
           "--output-directory", ctx.config.outdir, "--threads", str(ctx.config.threads)]
    return _join(cmd + opts + [ctx.paths.interleaved])

def merge(ctx):
    """Merge overlapping pairs, then rename FLASH's fixed outputs to prefixed names.
    """
    ctx.runner.run(merge_cmd(ctx), "Merging overlapping pairs with FLASH",
                   [do.file_exists(tool_name) for tool_name, _ in ctx.paths.renames])
    for tool_name, run_name in ctx.paths.renames:
        ctx.runner.move(tool_name, run_name)
    _cleanup(ctx, ctx.paths.interleaved)

# ## Quality filtering

def qual_filter_cmd(prog, in_file, out_file, quality, percent, opts=None):
    cmd = [prog, "-Q33", "-q", str(quality), "-p", str(percent)] + list(opts or [])
    return "%s -i %s > %s" % (_join(cmd), quote(in_file), quote(out_file))

def _filter_pairs(ctx):
    if ctx.config.merge_enabled:
        return [(ctx.paths.flashed, ctx.paths.flashed_filtered),
                (ctx.paths.nonflashed, ctx.paths.filtered)]
    return [(ctx.paths.interleaved, ctx.paths.filtered)]

def quality_filter(ctx):
    opts = config_utils.get_options(QUAL_FILTER, ctx.system_config)
    to_filter = _filter_pairs(ctx)
    for in_file, out_file in to_filter:
        with ctx.runner.transaction(out_file) as tx_out_file:
            cmd = qual_filter_cmd(ctx.programs[QUAL_FILTER], in_file, tx_out_file,
                                  ctx.config.quality, ctx.config.percent, opts)
            ctx.runner.run(cmd, "Quality filtering %s" % in_file, [do.file_exists(tx_out_file)])
    _cleanup(ctx, *[in_file for in_file, _ in to_filter])

# ## Pairs and orphans

def split_pairs(ctx):
    """Separate properly paired reads from orphans whose mate was filtered out.
    """
    cmd = _join([ctx.programs[EXTRACT_PAIRED], "-d", ctx.config.outdir, ctx.paths.filtered])
    ctx.runner.run(cmd, "Extracting paired reads",
                   [do.file_exists(ctx.paths.paired), do.file_exists(ctx.paths.orphans)])
    _cleanup(ctx, ctx.paths.filtered)

def recombine(ctx):
    """Combine merged reads with filtering orphans into the single-end output.
    """
    with ctx.runner.transaction(ctx.paths.single) as tx_out_file:
        cmd = "cat %s > %s" % (_join([ctx.paths.flashed_filtered, ctx.paths.orphans]),
                               quote(tx_out_file))
        ctx.runner.run(cmd, "Combining merged and orphaned reads", [do.file_exists(tx_out_file)])
    _cleanup(ctx, ctx.paths.flashed_filtered, ctx.paths.orphans)

# ## Compression

def compress_cmd(prog, in_file, out_file, mode, threads):
    if mode.is_parallel:
        return "%s > %s" % (_join([prog, "-c", "--best", "-p", threads, in_file]), quote(out_file))
    return "%s > %s" % (_join([prog, "-c", in_file]), quote(out_file))

def compress(ctx):
    prog = ctx.programs[ctx.mode.compressor]
    for in_file, out_file in [(ctx.paths.paired, ctx.paths.pe_gz),
                              (ctx.paths.single, ctx.paths.se_gz)]:
        with ctx.runner.transaction(out_file) as tx_out_file:
            ctx.runner.run(compress_cmd(prog, in_file, tx_out_file, ctx.mode, ctx.config.threads),
                           "Compressing %s" % in_file, [do.file_exists(tx_out_file)])
    _cleanup(ctx, ctx.paths.paired, ctx.paths.single)

# ## Housekeeping

def organize(ctx):
    organize_mod.organize(ctx.config.outdir, ctx.runner)

# ## Digital normalization

def normalize_cmds(ctx):
    """Two normalize-by-median passes sharing one k-mer table.

    The paired-end pass builds and saves the table; the single-end pass loads
    it, extends it and saves it back to the same path.
    """
    params = ctx.config.normalize
    prog = ctx.programs[NORMALIZE]
    opts = config_utils.get_options(NORMALIZE, ctx.system_config)
    base = [prog, "-k", str(params.kmer), "-C", str(params.coverage),
            "-M", "%g" % float(params.memory)] + opts
    pe_cmd = base + ["-p", "--savegraph", ctx.paths.kmer_table,
                     "-o", ctx.paths.pe_normalized, ctx.paths.pe_gz]
    se_cmd = base + ["--loadgraph", ctx.paths.kmer_table, "--savegraph", ctx.paths.kmer_table,
                     "-o", ctx.paths.se_normalized, ctx.paths.se_gz]
    return [_join(pe_cmd), _join(se_cmd)]

def normalize(ctx):
    pe_cmd, se_cmd = normalize_cmds(ctx)
    ctx.runner.run(pe_cmd, "Normalizing paired-end reads",
                   [do.file_exists(ctx.paths.pe_normalized), do.file_exists(ctx.paths.kmer_table)])
    ctx.runner.run(se_cmd, "Normalizing single-end reads",
                   [do.file_exists(ctx.paths.se_normalized)])

# ## Sequence

def _always(config):
    return True

def _merge_enabled(config):
    return config.merge_enabled

def _normalize_enabled(config):
    return config.normalize_enabled

STAGES = [
    Stage("count_raw", count_raw, _always),
    Stage("interleave", interleave, _always),
    Stage("stats_prefilter", stats_prefilter, _always),
    Stage("merge", merge, _merge_enabled),
    Stage("quality_filter", quality_filter, _always),
    Stage("split_pairs", split_pairs, _always),
    Stage("recombine", recombine, _merge_enabled),
    Stage("stats_postfilter", stats_postfilter, _always),
    Stage("compress", compress, _always),
    Stage("count_final", count_final, _always),
    Stage("organize", organize, _always),
    Stage("normalize", normalize, _normalize_enabled),
]

def get_stages(config):
    """Stages that run for this configuration, in execution order.
    """
    stages = [s for s in STAGES if s.wanted(config)]
    logger.debug("Pipeline stages: %s" % ", ".join(s.name for s in stages))
    return stages
