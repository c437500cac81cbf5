"""Helpful utilities for building read processing pipelines.
"""
import fnmatch
import os
import shutil
import time


def safe_makedir(dname):
    """Make a directory if it doesn't exist, handling concurrent race conditions.
    """
    if not dname:
        return dname
    num_tries = 0
    max_tries = 5
    while not os.path.exists(dname):
        # we could get an error here if multiple processes are creating
        # the directory at the same time. Grr, concurrency.
        try:
            os.makedirs(dname)
        except OSError:
            if num_tries > max_tries:
                raise
            num_tries += 1
            time.sleep(2)
    return dname

def is_readable(fname):
    return bool(fname) and os.path.isfile(fname) and os.access(fname, os.R_OK)

def is_executable(fname):
    return bool(fname) and os.path.isfile(fname) and os.access(fname, os.X_OK)

def get_size(path):
    """ Returns the size in bytes if `path` is a file,
        or the size of all files in `path` if it's a directory.
        Analogous to `du -s`.
    """
    if os.path.isfile(path):
        return os.path.getsize(path)
    return sum(get_size(os.path.join(path, f)) for f in os.listdir(path))

def remove_safe(f):
    try:
        if os.path.isdir(f):
            shutil.rmtree(f)
        else:
            os.remove(f)
    except OSError:
        pass

def remove_if_exists(fname):
    """Remove a file only when present, returning whether anything was removed.

    Calling this repeatedly on the same name is a no-op after the first call.
    """
    if fname and os.path.lexists(fname):
        remove_safe(fname)
        return True
    return False

def remove_empty_dir(dname):
    """Remove a directory if it exists and has no contents.
    """
    if dname and os.path.isdir(dname) and not os.listdir(dname):
        os.rmdir(dname)
        return True
    return False

def move_replace(origin, target):
    """Move a file to target, overwriting any existing file at that name.
    """
    if origin == target:
        return target
    if os.path.isfile(target):
        os.remove(target)
    shutil.move(origin, target)
    return target

def is_gzipped(fname):
    _, ext = os.path.splitext(fname)
    return ext in [".gz", ".gzip"]

def get_abspath(path, pardir=None):
    if pardir is None:
        pardir = os.getcwd()
    path = os.path.expandvars(path)
    return os.path.normpath(os.path.join(pardir, path))

def matches_any(fname, patterns):
    """Check if the basename of a file matches any of the glob patterns.
    """
    base = os.path.basename(fname)
    return any(fnmatch.fnmatch(base, p) for p in patterns)

def which(program):
    """ returns the path to an executable or None if it can't be found"""
    fpath, fname = os.path.split(program)
    if fpath:
        if is_executable(program):
            return program
    else:
        for path in os.environ.get("PATH", "").split(os.pathsep):
            exe_file = os.path.join(path, program)
            if is_executable(exe_file):
                return exe_file
    return None
