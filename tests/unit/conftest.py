"""Pytest fixtures: small paired FASTQ inputs and stand-in external tools.

The stand-in tools follow the argument grammar of the real programs and
write their outputs at the same locations, without doing any biology.
"""
import collections
import os
import stat

import pytest

from readqc.pipeline.config_utils import RunConfig

NUM_READS = 10

FAKE_TOOLS = {
    "interleave-reads.py": """#!/bin/bash
set -e
# interleave-reads.py -o OUT LEFT RIGHT
cat "$3" "$4" > "$2"
""",
    "fastx_quality_stats": """#!/bin/bash
set -e
# fastx_quality_stats -i IN -o OUT
printf 'column\\tcount\\tmin\\tmax\\n' > "$4"
""",
    "flash": """#!/bin/bash
set -e
while [ $# -gt 1 ]; do
  case "$1" in
    --output-prefix) prefix=$2; shift 2;;
    --output-directory) outdir=$2; shift 2;;
    --threads) shift 2;;
    *) shift;;
  esac
done
: > "$outdir/$prefix.extendedFrags.fastq"
cp "$1" "$outdir/$prefix.notCombined.fastq"
echo "100 1" > "$outdir/$prefix.hist"
echo "100 1" > "$outdir/$prefix.histogram"
""",
    "fastq_quality_filter": """#!/bin/bash
set -e
cat "${@: -1}"
""",
    "extract-paired-reads.py": """#!/bin/bash
set -e
# extract-paired-reads.py -d OUTDIR IN
name=$(basename "$3")
cp "$3" "$2/$name.pe"
: > "$2/$name.se"
""",
    "pigz": """#!/bin/bash
exec gzip -c "${@: -1}"
""",
    "unpigz": """#!/bin/bash
exec gzip -dc "${@: -1}"
""",
    "normalize-by-median.py": """#!/bin/bash
set -e
while [ $# -gt 1 ]; do
  case "$1" in
    -o) out=$2; shift 2;;
    --savegraph) save=$2; shift 2;;
    --loadgraph) load=$2; shift 2;;
    *) shift;;
  esac
done
if [ -n "$load" ] && [ ! -f "$load" ]; then
  echo "could not load graph $load" >&2
  exit 1
fi
cp "$1" "$out"
echo "table" >> "$save"
""",
}

FAILING_TOOL = """#!/bin/bash
echo "fake failure for $1" >&2
exit 3
"""


def write_fastq(fname, name, num_reads=NUM_READS):
    with open(fname, "w") as out_handle:
        for i in range(num_reads):
            out_handle.write("@%s.%s\nACGTACGTAC\n+\nIIIIIIIIII\n" % (name, i))
    return fname


def write_tool(tool_dir, name, content):
    fname = os.path.join(tool_dir, name)
    with open(fname, "w") as out_handle:
        out_handle.write(content)
    os.chmod(fname, os.stat(fname).st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return fname


def read_counts(in_file):
    """Parse a `path count` report into an ordered mapping.
    """
    counts = collections.OrderedDict()
    with open(in_file) as in_handle:
        for line in in_handle:
            if line.strip():
                fname, count = line.strip().rsplit(" ", 1)
                counts[fname] = int(count)
    return counts


@pytest.fixture
def fastq_pair(tmpdir):
    in_dir = str(tmpdir.mkdir("reads"))
    left = write_fastq(os.path.join(in_dir, "sample_R1.fq"), "left")
    right = write_fastq(os.path.join(in_dir, "sample_R2.fq"), "right")
    return left, right


@pytest.fixture
def tool_dir(tmpdir):
    tool_dir = str(tmpdir.mkdir("tools"))
    for name, content in FAKE_TOOLS.items():
        write_tool(tool_dir, name, content)
    return tool_dir


@pytest.fixture
def system_config(tool_dir):
    """System configuration pointing every external tool at its stand-in.

    gzip and zcat are left to the PATH.
    """
    return {"resources": {name: {"cmd": os.path.join(tool_dir, name)}
                          for name in FAKE_TOOLS}}


@pytest.fixture
def outdir(tmpdir):
    return os.path.join(str(tmpdir), "qc")


@pytest.fixture
def run_config(fastq_pair, outdir):
    left, right = fastq_pair
    return RunConfig(left, right, outdir, "sample")
