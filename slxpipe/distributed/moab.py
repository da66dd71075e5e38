"""Commandline interaction with Moab/Torque cluster schedulers.
"""
import re

# msub prints the job ID, sometimes with a Moab. prefix, server suffix or
# "Job <id> is submitted" wrapper, possibly after warning lines
_jobid_pat = re.compile(r"^\s*(?:Job\s+<)?(?:Moab\.)?(?P<jobid>\d+)\b", re.MULTILINE)

def submit_cl(descriptor):
    """Build the msub command line; the job command goes on standard input.
    """
    cl = ["msub", "-N", descriptor.name, "-o", descriptor.stdout_path,
          "-e", descriptor.stderr_path, "-q", descriptor.queue,
          "-d", descriptor.work_dir, "-V"]
    dep_ids = [h.job_id for h in descriptor.dependencies]
    if dep_ids:
        cl += ["-l", "depend=afterok:%s" % ":".join(dep_ids)]
    cl += ["-l", "nodes=1:ppn=%s,mem=%smb" % (descriptor.resources.cores,
                                              descriptor.resources.memory)]
    return cl, descriptor.command

def parse_job_id(output):
    matches = _jobid_pat.findall(output or "")
    return matches[-1] if matches else None
