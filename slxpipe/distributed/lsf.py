"""Commandline interaction with LSF schedulers.
"""
import re

_jobid_pat = re.compile(r"Job <(?P<jobid>\d+)> is")

def submit_cl(descriptor):
    """Build the bsub command line; the job command goes on standard input.
    """
    cl = ["bsub", "-J", descriptor.name, "-o", descriptor.stdout_path,
          "-e", descriptor.stderr_path, "-q", descriptor.queue,
          "-cwd", descriptor.work_dir]
    dep_ids = [h.job_id for h in descriptor.dependencies]
    if dep_ids:
        cl += ["-w", " && ".join("done(%s)" % x for x in dep_ids)]
    cl += ["-n", str(descriptor.resources.cores),
           "-R", "rusage[mem=%s]" % descriptor.resources.memory]
    if descriptor.resources.whole_node:
        cl += ["-x"]
    return cl, descriptor.command

def parse_job_id(output):
    match = _jobid_pat.search(output or "")
    return match.group("jobid") if match else None
