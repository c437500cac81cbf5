"""Centralize running of external commands, providing logging and tracking.

Commands and the file operations around them go through a runner. The
`LocalRunner` executes everything; the `PrintRunner` only reports what would
happen, so print-only runs walk through exactly the same stages and paths.
"""
import collections
import contextlib
import os
import subprocess

from readqc import utils
from readqc.distributed.transaction import file_transaction
from readqc.log import logger, logger_cl, logger_stdout

StageResult = collections.namedtuple("StageResult",
                                     ["cmd", "stdout", "stderr", "returncode", "executed"])


class ToolExecutionError(subprocess.CalledProcessError):
    """An external program exited with a non-zero status.
    """
    def __str__(self):
        msg = "Command failed with exit status %s: %s" % (self.returncode, self.cmd)
        if self.stderr and self.stderr.strip():
            msg += "\n" + self.stderr.rstrip()
        return msg


def run(cmd, descr=None, checks=None):
    """Run the provided command, logging details and checking for errors.
    """
    if descr:
        logger.debug(descr)
    cmd_str = cmd_to_str(cmd)
    logger_cl.debug(cmd_str)
    result = _do_run(cmd)
    # Check for problems not identified by shell return codes
    if checks:
        for check in checks:
            if not check():
                raise ToolExecutionError(result.returncode, cmd_str, result.stdout,
                                         "Output check failed after command completed")
    return result

def cmd_to_str(cmd):
    if isinstance(cmd, str):
        return cmd
    return " ".join(str(x) for x in cmd)

def find_bash():
    for test_bash in [utils.which("bash"), "/bin/bash", "/usr/bin/bash", "/usr/local/bin/bash"]:
        if test_bash and os.path.exists(test_bash):
            return test_bash
    raise IOError("Could not find bash in any standard location. Needed for unix pipes")

def _normalize_cmd_args(cmd):
    """Normalize subprocess arguments to handle list commands, string and pipes.
    Piped commands set pipefail and require use of bash to help with debugging
    intermediate errors.
    """
    if isinstance(cmd, str):
        # check for standard or anonymous named pipes
        if " | " in cmd or ">(" in cmd or "<(" in cmd:
            return "set -o pipefail; " + cmd, True, find_bash()
        else:
            return cmd, True, None
    else:
        return [str(x) for x in cmd], False, None

def _do_run(cmd):
    """Perform running and check results, raising errors for issues.
    """
    cmd_str = cmd_to_str(cmd)
    cmd, shell_arg, executable_arg = _normalize_cmd_args(cmd)
    s = subprocess.Popen(
        cmd,
        shell=shell_arg,
        executable=executable_arg,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        close_fds=True,
    )
    stdout, stderr = s.communicate()
    stdout = stdout.decode("utf-8", errors="replace")
    stderr = stderr.decode("utf-8", errors="replace")
    for line in stdout.splitlines() + stderr.splitlines():
        if line.rstrip():
            logger.debug(line.rstrip())
    if s.returncode != 0:
        raise ToolExecutionError(s.returncode, cmd_str, stdout, stderr)
    return StageResult(cmd_str, stdout, stderr, s.returncode, True)

# checks for validating run completed successfully

def file_exists(target_file):
    def check():
        ok = os.path.exists(target_file)
        if not ok:
            logger.info("Did not find output file {0}".format(target_file))
        return ok
    return check

# ## Execution strategies

class LocalRunner(object):
    """Execute commands and apply file system changes for a pipeline run.
    """
    dry_run = False

    def __init__(self, config=None):
        self.config = config or {}
        self.history = []
        self.stage = None

    def run(self, cmd, descr=None, checks=None):
        self.history.append((self.stage, cmd_to_str(cmd)))
        return run(cmd, descr, checks)

    def makedir(self, dname):
        return utils.safe_makedir(dname)

    def move(self, origin, target):
        logger.debug("Moving %s to %s" % (origin, target))
        return utils.move_replace(origin, target)

    def remove(self, fname):
        """Remove an intermediate file, ignoring files already cleaned up.
        """
        if utils.remove_if_exists(fname):
            logger.debug("Removed intermediate file %s" % fname)

    def listdir(self, dname):
        return sorted(os.listdir(dname)) if os.path.isdir(dname) else []

    def write_lines(self, out_file, lines):
        with file_transaction(self.config, out_file) as tx_out_file:
            with open(tx_out_file, "w") as out_handle:
                for line in lines:
                    out_handle.write(line + "\n")
        return out_file

    @contextlib.contextmanager
    def transaction(self, *out_files):
        with file_transaction(self.config, *out_files) as tx_files:
            yield tx_files


class PrintRunner(LocalRunner):
    """Report commands and file operations without performing any of them.
    """
    dry_run = True

    def __init__(self, config=None):
        super(PrintRunner, self).__init__(config)
        # files the run would have written, so directory listings match a real run
        self.planned = set()

    def run(self, cmd, descr=None, checks=None):
        cmd_str = cmd_to_str(cmd)
        self.history.append((self.stage, cmd_str))
        if descr:
            logger.debug(descr)
        logger_stdout.info(cmd_str)
        return StageResult(cmd_str, "", "", 0, False)

    def makedir(self, dname):
        logger_stdout.info("mkdir -p %s" % dname)
        return dname

    def move(self, origin, target):
        logger_stdout.info("mv %s %s" % (origin, target))
        self.planned.discard(os.path.abspath(origin))
        self.planned.add(os.path.abspath(target))
        return target

    def remove(self, fname):
        logger_stdout.info("rm -f %s" % fname)
        self.planned.discard(os.path.abspath(fname))

    def listdir(self, dname):
        dname = os.path.abspath(dname)
        names = set(super(PrintRunner, self).listdir(dname))
        names.update(os.path.basename(f) for f in self.planned if os.path.dirname(f) == dname)
        return sorted(names)

    def write_lines(self, out_file, lines):
        logger_stdout.info("write %s" % out_file)
        self.planned.add(os.path.abspath(out_file))
        return out_file

    @contextlib.contextmanager
    def transaction(self, *out_files):
        self.planned.update(os.path.abspath(f) for f in out_files)
        if len(out_files) == 1:
            yield out_files[0]
        else:
            yield tuple(out_files)


def get_runner(dry_run=False, config=None):
    """Retrieve the execution strategy for a run.
    """
    return PrintRunner(config) if dry_run else LocalRunner(config)
