import pytest

from readqc.pipeline import paths, stages
from readqc.pipeline.config_utils import NormalizeParams, RunConfig
from readqc.pipeline.counts import count_cmd
from readqc.pipeline.stages import Parallelism
from readqc.provenance import do

PROGRAMS = {name: name for name in [stages.INTERLEAVE, stages.QUAL_STATS, stages.FLASH,
                                    stages.QUAL_FILTER, stages.EXTRACT_PAIRED,
                                    stages.NORMALIZE, "gzip", "zcat", "pigz", "unpigz"]}


def _context(config, system_config=None):
    return stages.StageContext(config, paths.derive(config), PROGRAMS,
                               Parallelism.from_threads(config.threads),
                               do.PrintRunner(), system_config or {"resources": {}})


@pytest.fixture
def config():
    return RunConfig("/data/left.fq.gz", "/data/right.fq.gz", "/data/qc", "S1")


class TestParallelism(object):

    @pytest.mark.parametrize("threads,expected", [
        (1, Parallelism.SINGLE),
        (2, Parallelism.PARALLEL),
        (16, Parallelism.PARALLEL),
    ])
    def test_from_threads(self, threads, expected):
        assert Parallelism.from_threads(threads) is expected

    def test_single_thread_commands_never_use_parallel_tools(self, config):
        ctx = _context(config)
        stages.compress(ctx)
        stages.count_final(ctx)
        stages.count_raw(ctx)
        cmds = [cmd for _, cmd in ctx.runner.history]
        assert cmds
        assert not any("pigz" in cmd for cmd in cmds)

    def test_parallel_commands_never_use_single_thread_tools(self, config):
        ctx = _context(config._replace(threads=4))
        stages.compress(ctx)
        stages.count_final(ctx)
        stages.count_raw(ctx)
        cmds = [cmd for _, cmd in ctx.runner.history]
        assert cmds
        assert not any("gzip" in cmd.split() or "zcat" in cmd.split() for cmd in cmds)
        assert all("-p 4" in cmd for cmd in cmds)

    def test_required_programs_follow_thread_count(self, config):
        assert "gzip" in stages.required_programs(config)
        assert "pigz" not in stages.required_programs(config)
        parallel = stages.required_programs(config._replace(threads=8))
        assert "pigz" in parallel and "unpigz" in parallel
        assert "gzip" not in parallel and "zcat" not in parallel


class TestCommands(object):

    def test_compress_cmds(self):
        assert (stages.compress_cmd("gzip", "in.fq", "out.fq.gz", Parallelism.SINGLE, 1) ==
                "gzip -c in.fq > out.fq.gz")
        assert (stages.compress_cmd("pigz", "in.fq", "out.fq.gz", Parallelism.PARALLEL, 4) ==
                "pigz -c --best -p 4 in.fq > out.fq.gz")

    def test_count_cmds(self):
        assert count_cmd("r.fq.gz", PROGRAMS, Parallelism.SINGLE, 1) == "zcat r.fq.gz | wc -l"
        assert (count_cmd("r.fq.gz", PROGRAMS, Parallelism.PARALLEL, 3) ==
                "unpigz -d -c -p 3 r.fq.gz | wc -l")
        assert count_cmd("r.fq", PROGRAMS, Parallelism.PARALLEL, 3) == "cat r.fq | wc -l"

    def test_paths_are_shell_quoted(self):
        assert (count_cmd("/my reads/r.fq.gz", PROGRAMS, Parallelism.SINGLE, 1) ==
                "zcat '/my reads/r.fq.gz' | wc -l")
        assert (stages.compress_cmd("gzip", "a b.fq", "a b.fq.gz", Parallelism.SINGLE, 1) ==
                "gzip -c 'a b.fq' > 'a b.fq.gz'")
        assert (stages.qual_filter_cmd("fastq_quality_filter", "in.fq", "qc out/o.fq", 30, 50) ==
                "fastq_quality_filter -Q33 -q 30 -p 50 -i in.fq > 'qc out/o.fq'")

    def test_quality_filter_cmd(self):
        assert (stages.qual_filter_cmd("fastq_quality_filter", "in.fq", "out.fq", 30, 50) ==
                "fastq_quality_filter -Q33 -q 30 -p 50 -i in.fq > out.fq")

    def test_merge_cmd_uses_fixed_output_prefix(self, config):
        cmd = stages.merge_cmd(_context(config._replace(threads=3)))
        assert cmd == ("flash --interleaved --output-prefix flashed --output-directory /data/qc "
                       "--threads 3 /data/qc/S1.interleaved.fq")

    def test_merge_cmd_adds_configured_options(self, config):
        ctx = _context(config, {"resources": {"flash": {"options": ["-M", 150]}}})
        assert "--threads 1 -M 150 /data/qc/S1.interleaved.fq" in stages.merge_cmd(ctx)

    def test_merge_renames_then_cleans_up(self, config):
        ctx = _context(config)
        stages.merge(ctx)
        assert sorted(ctx.runner.planned) == sorted(dst for _, dst in ctx.paths.renames)

    def test_normalize_cmds_share_table(self, config):
        ctx = _context(config._replace(normalize=NormalizeParams(25, 10, 4e9)))
        pe_cmd, se_cmd = stages.normalize_cmds(ctx)
        table = ctx.paths.kmer_table
        assert pe_cmd == ("normalize-by-median.py -k 25 -C 10 -M 4e+09 -p --savegraph %s "
                          "-o %s %s" % (table, ctx.paths.pe_normalized, ctx.paths.pe_gz))
        assert se_cmd == ("normalize-by-median.py -k 25 -C 10 -M 4e+09 --loadgraph %s "
                          "--savegraph %s -o %s %s" % (table, table, ctx.paths.se_normalized,
                                                       ctx.paths.se_gz))


class TestSequence(object):

    def test_default_order(self, config):
        assert [s.name for s in stages.get_stages(config)] == [
            "count_raw", "interleave", "stats_prefilter", "merge", "quality_filter",
            "split_pairs", "recombine", "stats_postfilter", "compress", "count_final",
            "organize"]

    def test_no_merge_drops_merge_and_recombine(self, config):
        names = [s.name for s in stages.get_stages(config._replace(merge=False))]
        assert "merge" not in names
        assert "recombine" not in names

    def test_normalize_appended_last(self, config):
        names = [s.name for s in stages.get_stages(
            config._replace(normalize=NormalizeParams(memory=4e9)))]
        assert names[-2:] == ["organize", "normalize"]
