"""Run configuration, system YAML loading and external program lookup.
"""
import collections
import os
import sys

import toolz as tz
import yaml

from readqc import utils

DEFAULT_QUALITY = 30
DEFAULT_PERCENT = 50
DEFAULT_THREADS = 1
DEFAULT_KMER = 20
DEFAULT_COVERAGE = 20
MIN_NORMALIZE_MEMORY = 1e9


class ConfigurationError(ValueError):
    """A run configuration field is missing or invalid.
    """
    def __init__(self, field, msg):
        self.field = field
        super(ConfigurationError, self).__init__("%s: %s" % (field, msg))


class MissingDependencyError(Exception):
    """One or more required external programs could not be found.
    """
    def __init__(self, programs):
        self.programs = list(programs)
        super(MissingDependencyError, self).__init__(
            "Required programs not found: %s" % ", ".join(self.programs))


NormalizeParams = collections.namedtuple("NormalizeParams", ["kmer", "coverage", "memory"])
NormalizeParams.__new__.__defaults__ = (DEFAULT_KMER, DEFAULT_COVERAGE, None)

_RUN_FIELDS = ["left", "right", "outdir", "prefix", "quality", "percent", "threads",
               "dry_run", "merge", "normalize"]


class RunConfig(collections.namedtuple("RunConfig", _RUN_FIELDS)):
    """Immutable inputs for a single quality control run.
    """
    __slots__ = ()

    def __new__(cls, left, right, outdir, prefix, quality=DEFAULT_QUALITY,
                percent=DEFAULT_PERCENT, threads=DEFAULT_THREADS, dry_run=False,
                merge=True, normalize=None):
        return super(RunConfig, cls).__new__(cls, left, right, outdir, prefix, quality,
                                             percent, threads, dry_run, merge, normalize)

    @property
    def merge_enabled(self):
        return bool(self.merge)

    @property
    def normalize_enabled(self):
        return self.normalize is not None

# ## Validation

def validate(config):
    """Check run configuration invariants, failing on the first problem found.
    """
    for field in ["left", "right"]:
        fname = getattr(config, field)
        if not fname:
            raise ConfigurationError(field, "You must enter a file name")
        if not os.path.exists(fname):
            raise ConfigurationError(field, "The file must exist: %s" % fname)
        if not utils.is_readable(fname):
            raise ConfigurationError(field, "The file is not readable: %s" % fname)
    if not config.outdir:
        raise ConfigurationError("outdir", "You must enter an output directory")
    if os.path.exists(config.outdir) and not os.path.isdir(config.outdir):
        raise ConfigurationError("outdir", "Output path exists and is not a directory: %s"
                                 % config.outdir)
    if not os.path.exists(config.outdir) and not _is_creatable(config.outdir):
        raise ConfigurationError("outdir", "Output directory cannot be created: %s"
                                 % config.outdir)
    if not config.prefix:
        raise ConfigurationError("prefix", "Don't forget to specify a prefix!")
    if os.sep in config.prefix:
        raise ConfigurationError("prefix", "Prefix cannot contain a path separator: %s"
                                 % config.prefix)
    if config.threads is None or int(config.threads) < 1:
        raise ConfigurationError("threads", "Threads must be positive")
    if config.quality is None or int(config.quality) < 0:
        raise ConfigurationError("quality", "Quality must be zero or greater")
    if config.percent is None or not 0 <= int(config.percent) <= 100:
        raise ConfigurationError("percent", "Percent must be between 0 and 100")
    if config.normalize_enabled:
        _validate_normalize(config.normalize)
    return config

def _validate_normalize(params):
    if params.memory is None or float(params.memory) < MIN_NORMALIZE_MEMORY:
        raise ConfigurationError("ram", "Normalization needs at least %g bytes of memory, got %s"
                                 % (MIN_NORMALIZE_MEMORY, params.memory))
    if params.kmer is None or int(params.kmer) < 1:
        raise ConfigurationError("kmer", "k-mer size must be positive")
    if params.coverage is None or int(params.coverage) < 1:
        raise ConfigurationError("coverage", "Target coverage must be positive")

def _is_creatable(dname):
    """Walk up to the first existing parent and check we can write into it.
    """
    parent = os.path.dirname(os.path.abspath(dname))
    while parent and not os.path.exists(parent):
        new_parent = os.path.dirname(parent)
        if new_parent == parent:
            break
        parent = new_parent
    return os.path.isdir(parent) and os.access(parent, os.W_OK | os.X_OK)

# ## System configuration

def load_system_config(config_file=None):
    """Load the YAML system configuration, returning an empty default without a file.
    """
    if config_file is None:
        return {"resources": {}}
    if not os.path.exists(config_file):
        raise ConfigurationError("system_config", "Could not find system configuration file %s"
                                 % config_file)
    return load_config(config_file)

def load_config(config_file):
    """Load YAML config file, replacing environmental variables.
    """
    with open(config_file) as in_handle:
        config = yaml.safe_load(in_handle) or {}
    config = _expand_paths(config)
    if 'resources' not in config:
        config['resources'] = {}
    # lowercase resource names, the preferred way to specify, for back-compatibility
    newr = {}
    for k, v in config["resources"].items():
        if k.lower() != k:
            newr[k.lower()] = v
    config["resources"].update(newr)
    return config

def _expand_paths(config):
    for field, setting in config.items():
        if isinstance(config[field], dict):
            config[field] = _expand_paths(config[field])
        else:
            config[field] = expand_path(setting)
    return config

def expand_path(path):
    """ Combines os.path.expandvars with replacing ~ with $HOME.
    """
    try:
        return os.path.expandvars(path.replace("~", "$HOME"))
    except AttributeError:
        return path

def get_resources(name, config):
    """Retrieve resources for a program, pulling from multiple config sources.
    """
    return tz.get_in(["resources", name], config,
                     tz.get_in(["resources", "default"], config, {}))

def get_program(name, config):
    """Retrieve the full path to an executable program.

    Checks the `resources: <name>: cmd` configuration, the directory holding
    the running Python (bioconda installs) and finally the PATH.
    """
    program = expand_path(_configured_name(name, config))
    if os.path.dirname(program):
        if utils.is_executable(program):
            return program
    else:
        conda_program = os.path.join(os.path.dirname(sys.executable), program)
        if utils.is_executable(conda_program):
            return conda_program
        found = utils.which(program)
        if found:
            return found
    raise MissingDependencyError([name])

def get_programs(names, config):
    """Resolve every named program, reporting all that are missing at once.
    """
    found = collections.OrderedDict()
    missing = []
    for name in names:
        try:
            found[name] = get_program(name, config)
        except MissingDependencyError:
            missing.append(name)
    if missing:
        raise MissingDependencyError(missing)
    return found

def _configured_name(name, config):
    pconfig = tz.get_in(["resources", name], config or {})
    if isinstance(pconfig, str):
        return pconfig
    elif isinstance(pconfig, dict) and "cmd" in pconfig:
        return pconfig["cmd"]
    return name

def get_options(name, config):
    """Retrieve extra command line options configured for a program.
    """
    return [str(x) for x in get_resources(name, config or {}).get("options", [])]
