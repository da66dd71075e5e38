"""Pipeline functionality shared amongst multiple analysis stages.
"""
import collections
import os
import sys

from slxpipe.errors import DependencyNotMetError
from slxpipe.pipeline import config_utils

# ## Stage applicability

class Runnable(collections.namedtuple("Runnable", ["handles"])):
    """A stage that submitted work, with the job handles later stages depend on.
    """
    skipped = False

class Skipped(collections.namedtuple("Skipped", ["reason"])):
    """A stage with nothing to do for this input; no jobs were submitted.
    """
    skipped = True
    handles = ()

# ## Upstream artifacts

def require_file(fname, descr=None):
    """Ensure an upstream artifact exists before submitting work that needs it.
    """
    if not fname or not os.path.exists(fname):
        raise DependencyNotMetError("Missing %s: %s" % (descr or "required file", fname))
    return fname

# ## Stage command lines for submitted jobs

def stage_cmd(config, subcommand, *args):
    """Command line re-invoking a pipeline stage inside a batch job.
    """
    slxpipe_cmd = config_utils.get_program("slxpipe", config,
                                           default=os.path.abspath(sys.argv[0])
                                           if sys.argv[0].endswith("slxpipe.py") else None)
    cmd = [slxpipe_cmd]
    if config.get("slxpipe_system"):
        cmd += ["--config", config["slxpipe_system"]]
    cmd += [subcommand] + [str(x) for x in args]
    return " ".join(cmd)
