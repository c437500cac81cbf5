"""Move diagnostic outputs into category subdirectories of the output directory.

  - *.stats.txt -> info/stats
  - *.counts.txt -> info/counts
  - FLASH histograms -> info/flash_info

This is housekeeping only: problems are reported as warnings and never
stop a run.
"""
import os
import shutil
import warnings

from readqc import utils
from readqc.log import logger
from readqc.provenance import do

INFO_DIR = "info"
CATEGORIES = [
    ("stats", ["*.stats.txt"]),
    ("counts", ["*.counts.txt"]),
    ("flash_info", ["*.hist", "*.histogram"]),
]


class HousekeepingWarning(UserWarning):
    pass


def _warn(msg):
    logger.warning(msg)
    warnings.warn(msg, HousekeepingWarning)

def category_dir(output_dir, category):
    return os.path.join(output_dir, INFO_DIR, category)

def get_category(fname):
    for category, patterns in CATEGORIES:
        if utils.matches_any(fname, patterns):
            return category
    return None

def organize(output_dir, runner=None):
    """Relocate top level diagnostic files, overwriting same-named files.

    Returns a list of (origin, target) pairs that were moved.
    """
    if runner is None:
        runner = do.LocalRunner()
    moved = []
    try:
        fnames = runner.listdir(output_dir)
    except OSError as e:
        _warn("Could not list output directory %s for organizing: %s" % (output_dir, e))
        return moved
    for fname in fnames:
        origin = os.path.join(output_dir, fname)
        category = get_category(fname)
        if category is None or os.path.isdir(origin):
            continue
        target = os.path.join(category_dir(output_dir, category), fname)
        try:
            runner.makedir(os.path.dirname(target))
            runner.move(origin, target)
        except (OSError, shutil.Error) as e:
            _warn("Could not move %s to %s: %s" % (origin, target, e))
        else:
            moved.append((origin, target))
    return moved
