"""Centralize running of external commands, providing logging and tracking.
"""
import collections
import os
import subprocess

from slxpipe import utils
from slxpipe.errors import ExternalToolError
from slxpipe.log import logger, logger_cl


def run(cmd, descr=None, checks=None, log_error=True, env=None, cwd=None):
    """Run the provided command, logging details and checking for errors.

    Returns the combined standard output and error of the command.
    """
    if descr:
        logger.debug(descr)
    try:
        logger_cl.debug(" ".join(str(x) for x in cmd) if not utils.is_string(cmd) else cmd)
        return _do_run(cmd, checks, env=env, cwd=cwd)
    except ExternalToolError as e:
        if log_error:
            logger.error("%s%s" % ("%s: " % descr if descr else "", e))
        raise

def find_bash():
    for test_bash in ["/bin/bash", "/usr/bin/bash", "/usr/local/bin/bash"]:
        if os.path.exists(test_bash):
            return test_bash
    raise ExternalToolError("Could not find bash in any standard location. Needed for unix pipes")

def _normalize_cmd_args(cmd):
    """Normalize subprocess arguments to handle list commands, string and pipes.
    Piped commands set pipefail and require use of bash to help with debugging
    intermediate errors.
    """
    if utils.is_string(cmd):
        if cmd.find(" | ") > 0:
            return "set -o pipefail; " + cmd, True, find_bash()
        else:
            return cmd, True, None
    else:
        return [str(x) for x in cmd], False, None

def _do_run(cmd, checks, env=None, cwd=None):
    """Perform running and check results, raising errors for issues.
    """
    cmd, shell_arg, executable_arg = _normalize_cmd_args(cmd)
    try:
        s = subprocess.Popen(
            cmd,
            shell=shell_arg,
            executable=executable_arg,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            close_fds=True,
            env=env,
            cwd=cwd,
        )
    except OSError as e:
        raise ExternalToolError("Could not start external command: %s" % e, cmd)
    output = []
    debug_stdout = collections.deque(maxlen=100)
    for line in s.stdout:
        line = line.decode("utf-8", errors="replace")
        output.append(line)
        if line.rstrip():
            debug_stdout.append(line)
            logger.debug(line.rstrip())
    exitcode = s.wait()
    s.stdout.close()
    if exitcode != 0:
        error_msg = " ".join(cmd) if not utils.is_string(cmd) else cmd
        raise ExternalToolError("External command failed: %s" % error_msg, cmd,
                                "".join(debug_stdout), exitcode)
    # Check for problems not identified by shell return codes
    if checks:
        for check in checks:
            if not check():
                raise ExternalToolError("External command failed output checks", cmd,
                                        "".join(debug_stdout), exitcode)
    return "".join(output)

# checks for validating run completed successfully

def file_nonempty(target_file):
    def check():
        ok = utils.file_exists(target_file)
        if not ok:
            logger.info("Did not find non-empty output file {0}".format(target_file))
        return ok
    return check

def file_exists(target_file):
    def check():
        ok = os.path.exists(target_file)
        if not ok:
            logger.info("Did not find output file {0}".format(target_file))
        return ok
    return check
