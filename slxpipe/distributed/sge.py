"""Commandline interaction with SGE cluster schedulers.
"""
import re

_jobid_pat = re.compile(r'Your job (?P<jobid>\d+) \("')

def submit_cl(descriptor):
    """Build the qsub command line, running the job command through bash.
    """
    cl = ["qsub", "-N", descriptor.name, "-o", descriptor.stdout_path,
          "-e", descriptor.stderr_path, "-q", descriptor.queue,
          "-wd", descriptor.work_dir, "-V"]
    dep_ids = [h.job_id for h in descriptor.dependencies]
    if dep_ids:
        cl += ["-hold_jid", ",".join(dep_ids)]
    cl += ["-pe", "smp", str(descriptor.resources.cores),
           "-l", "mem_free=%sM" % descriptor.resources.memory]
    if descriptor.resources.whole_node:
        cl += ["-l", "exclusive=true"]
    cl += ["-b", "y", "bash", "-c", descriptor.command]
    return cl, None

def parse_job_id(output):
    match = _jobid_pat.search(output or "")
    return match.group("jobid") if match else None
