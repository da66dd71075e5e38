"""Submit pipeline jobs to a cluster batch system and chain them by dependency.

The scheduler only describes work: it renders a JobDescriptor into the
batch system's submission command, runs it, and returns a JobHandle with
the batch job ID. Ordering between jobs comes entirely from the dependency
clauses ("afterok") the batch system enforces; nothing here waits for jobs
to finish, retries failed submissions or cancels jobs already submitted.
"""
import subprocess

from slxpipe import utils
from slxpipe.distributed import lsf, moab, sge
from slxpipe.distributed.job import JobDescriptor, JobHandle
from slxpipe.errors import ConfigurationError, SubmissionError
from slxpipe.log import logger, logger_cl

_BACKENDS = {"moab": moab, "torque": moab, "sge": sge, "lsf": lsf}

def get_backend(system):
    try:
        return _BACKENDS[system.lower()]
    except (KeyError, AttributeError):
        raise ConfigurationError("Unsupported batch system %s; expected one of: %s"
                                 % (system, ", ".join(sorted(_BACKENDS))))

def render_command(descriptor, system="moab"):
    """Translate a descriptor into a submission command line and standard input.
    """
    return get_backend(system).submit_cl(descriptor)

def run_submission(cl, stdin=None):
    """Default executor: run the submission command, returning exit code and output.
    """
    proc = subprocess.run(cl, input=stdin, stdout=subprocess.PIPE, stderr=subprocess.STDOUT,
                          universal_newlines=True)
    return proc.returncode, proc.stdout

class JobScheduler(object):
    """Submit JobDescriptors to a batch system.

    `executor` runs a rendered submission and returns (exit code, output);
    tests pass a fake one to record submissions without a cluster.
    """
    def __init__(self, system="moab", executor=None):
        self.system = system
        self._backend = get_backend(system)
        self._executor = executor or run_submission

    @classmethod
    def from_config(cls, config, executor=None):
        return cls(utils.get_in(config, ("scheduler", "type"), "moab"), executor)

    def add_dependency(self, descriptor, handle):
        descriptor.add_dependency(handle)

    def lock_whole_node(self, descriptor, queue):
        descriptor.lock_whole_node(queue)

    def submit(self, descriptor):
        """Submit the job, returning a handle carrying the batch job ID.
        """
        if descriptor.submitted:
            raise ValueError("Job %s was already submitted as %s"
                             % (descriptor.name, descriptor.handle.job_id))
        cl, stdin = render_command(descriptor, self.system)
        logger_cl.debug(" ".join(cl) + (" <<< %s" % stdin if stdin else ""))
        try:
            returncode, output = self._executor(cl, stdin)
        except OSError as e:
            raise SubmissionError("Could not run batch submission for %s (%s): %s"
                                  % (descriptor.name, descriptor.command, e), cl, str(e))
        if returncode != 0:
            raise SubmissionError("Batch system rejected job %s (%s)"
                                  % (descriptor.name, descriptor.command),
                                  cl, output, returncode)
        job_id = self._backend.parse_job_id(output)
        if not job_id:
            raise SubmissionError("No job ID reported for job %s (%s)"
                                  % (descriptor.name, descriptor.command),
                                  cl, output, returncode)
        handle = descriptor.mark_submitted(JobHandle(descriptor.name, job_id))
        logger.info("Submitted %s as job %s%s" % (descriptor.name, job_id,
                    " after %s" % ", ".join(h.job_id for h in descriptor.dependencies)
                    if descriptor.dependencies else ""))
        return handle

    def submit_job(self, name_prefix, command, depends_on=None, whole_node=None,
                   memory=None, cores=None, queue=None, work_dir=None):
        """Build, wire and submit a job in one step.

        whole_node is a queue name to reserve a full node in; it cannot be
        combined with memory, cores or queue.
        """
        if whole_node and (memory or cores or queue):
            raise ValueError("Job %s: whole node reservation excludes memory, cores and queue"
                             % name_prefix)
        descriptor = JobDescriptor(name_prefix, command, work_dir=work_dir)
        if whole_node:
            self.lock_whole_node(descriptor, whole_node)
        else:
            if memory:
                descriptor.set_memory(memory)
            if cores:
                descriptor.set_cores(cores)
            descriptor.set_queue(queue)
        for handle in depends_on or []:
            self.add_dependency(descriptor, handle)
        return self.submit(descriptor)
