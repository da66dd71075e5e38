"""Utility functionality for logging.
"""
import os
import socket
import sys

import logbook

from slxpipe import utils

LOG_NAME = "slxpipe"

def get_log_dir(config):
    d = config.get("log_dir", "log")
    return d

logger = logbook.Logger(LOG_NAME)
logger_cl = logbook.Logger(LOG_NAME + "-commands")

def _is_cl(record, _):
    return record.channel == LOG_NAME + "-commands"

def _not_cl(record, handler):
    return not _is_cl(record, handler)

class CloseableNestedSetup(logbook.NestedSetup):
    def close(self):
        for obj in self.objects:
            if hasattr(obj, "close"):
                obj.close()

def _create_log_handler(config, direct_hostname=False):
    logbook.set_datetime_format("utc")
    handlers = [logbook.NullHandler()]
    format_str = "".join(["[{record.time:%Y-%m-%dT%H:%MZ}] " if config.get("include_time", True) else "",
                          "%s: " % socket.gethostname() if direct_hostname else "",
                          "{record.message}"])

    log_dir = get_log_dir(config)
    if log_dir:
        utils.safe_makedir(log_dir)
        handlers.append(logbook.FileHandler(os.path.join(log_dir, "%s.log" % LOG_NAME),
                                            format_string=format_str, level="INFO",
                                            filter=_not_cl))
        handlers.append(logbook.FileHandler(os.path.join(log_dir, "%s-debug.log" % LOG_NAME),
                                            format_string=format_str, level="DEBUG", bubble=True,
                                            filter=_not_cl))
        handlers.append(logbook.FileHandler(os.path.join(log_dir, "%s-commands.log" % LOG_NAME),
                                            format_string=format_str, level="DEBUG",
                                            filter=_is_cl))
    handlers.append(logbook.StreamHandler(sys.stderr, format_string=format_str, bubble=True,
                                          level=config.get("log_level", "INFO"),
                                          filter=_not_cl))
    return CloseableNestedSetup(handlers)

def setup_local_logging(config=None):
    """Setup logging for a single pipeline stage process.

    Every stage runs as its own short lived process, either from cron or
    inside a batch job, so messages go straight to files in the log
    directory and to standard error. Jobs on compute nodes include the
    hostname to help track down node specific failures.
    """
    if config is None: config = {}
    in_batch_job = bool(os.environ.get("PBS_JOBID") or os.environ.get("JOB_ID")
                        or os.environ.get("LSB_JOBID"))
    handler = _create_log_handler(config, direct_hostname=in_batch_job)
    handler.push_application()
    return handler
