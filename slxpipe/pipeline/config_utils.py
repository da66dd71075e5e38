"""Loads the system configuration from a .yaml file and expands environment variables.
"""
import os

import toolz as tz
import yaml

from slxpipe.distributed.job import CASAVA_QUEUE, DEFAULT_QUEUE
from slxpipe.errors import ConfigurationError

CONFIG_ENV = "SLXPIPE_CONFIG"
DEFAULT_CONFIG = "slxpipe_system.yaml"

_PROGRAM_DEFAULTS = {"bwa": "bwa",
                     "bcl2fastq": "configureBclToFastq.pl",
                     "make": "make",
                     "java": "java",
                     "perl": "perl",
                     "bzip2": "bzip2",
                     "bunzip2": "bunzip2",
                     "slxpipe": "slxpipe.py"}

# ## Retrieval functions

def find_config_file(config_file=None):
    """Locate the system configuration: explicit path, environment, working directory.
    """
    for test in [config_file, os.environ.get(CONFIG_ENV), DEFAULT_CONFIG]:
        if test:
            if os.path.exists(test):
                return os.path.abspath(test)
            elif test is config_file:
                break
    raise ConfigurationError("Could not find system configuration file %s. Specify with "
                             "--config or the %s environment variable"
                             % (config_file or DEFAULT_CONFIG, CONFIG_ENV))

def load_system_config(config_file=None):
    """Load slxpipe_system.yaml, returning the configuration and its location.
    """
    config_file = find_config_file(config_file)
    config = load_config(config_file)
    config["slxpipe_system"] = config_file
    return config, config_file

def load_config(config_file):
    """Load YAML config file, replacing environmental variables.
    """
    try:
        with open(config_file) as in_handle:
            config = yaml.safe_load(in_handle)
    except yaml.YAMLError as e:
        raise ConfigurationError("Invalid YAML in configuration %s: %s" % (config_file, e))
    if config is None:
        config = {}
    if not isinstance(config, dict):
        raise ConfigurationError("Configuration %s is not a mapping" % config_file)
    return _expand_paths(config)

def _expand_paths(config):
    for field, setting in config.items():
        if isinstance(config[field], dict):
            config[field] = _expand_paths(config[field])
        elif isinstance(config[field], list):
            config[field] = [expand_path(x) for x in setting]
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

def get_program(name, config, default=None):
    """Retrieve the command for an external program from the configuration.
    """
    return tz.get_in(["program", name], config) or default or _PROGRAM_DEFAULTS.get(name, name)

def get_required(config, keys, descr=None):
    """Retrieve a nested configuration value, failing clearly if it is missing.
    """
    val = tz.get_in(keys, config)
    if val is None or val == "":
        raise ConfigurationError("Missing required configuration value %s%s"
                                 % (":".join(keys), " (%s)" % descr if descr else ""))
    return val

def default_queue(config):
    return tz.get_in(["scheduler", "default_queue"], config) or DEFAULT_QUEUE

def casava_queue(config):
    return tz.get_in(["scheduler", "casava_queue"], config) or CASAVA_QUEUE

def instrument_root(config):
    return get_required(config, ["sequencers", "root_dir"], "directory sequencers copy runs into")

def picard_options(config):
    """Shared Picard arguments: java heap, temp directory, RAM records and stringency.
    """
    picard = config.get("picard", {})
    return {"max_heap": picard.get("max_heap", "-Xmx22G"),
            "extra": [x for x in ["TMP_DIR=%s" % picard["temp_dir"] if picard.get("temp_dir") else None,
                                  "MAX_RECORDS_IN_RAM=%s" % picard["max_records_in_ram"]
                                  if picard.get("max_records_in_ram") else None,
                                  "VALIDATION_STRINGENCY=%s" % picard.get("stringency", "LENIENT")]
                      if x]}
