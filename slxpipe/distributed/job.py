"""Descriptions of units of work handed to the cluster scheduler.

A JobDescriptor is built up by a pipeline stage (command, resources, queue,
prerequisite jobs) and becomes frozen once the scheduler submits it. The
scheduler returns a JobHandle, which later descriptors use as a dependency.
"""
import collections
import os
import random

from slxpipe.errors import ConfigurationError

DEFAULT_QUEUE = "normal"
CASAVA_QUEUE = "high"

DEFAULT_MEMORY = 4000
DEFAULT_CORES = 1

# Full node reservations, by queue tier
WHOLE_NODE_MEMORY = 28000
WHOLE_NODE_CORES = {"hptest": 16}
WHOLE_NODE_DEFAULT_CORES = 8

JobHandle = collections.namedtuple("JobHandle", ["job_name", "job_id"])


class PartialAllocation(collections.namedtuple("PartialAllocation", ["memory", "cores"])):
    """Explicit memory (MB) and core request on a shared node.
    """
    whole_node = False


class WholeNode(collections.namedtuple("WholeNode", ["queue"])):
    """Reservation of an entire compute node in the given queue.
    """
    whole_node = True

    @property
    def cores(self):
        return WHOLE_NODE_CORES.get(self.queue, WHOLE_NODE_DEFAULT_CORES)

    @property
    def memory(self):
        return WHOLE_NODE_MEMORY


def build_job_name(prefix):
    """Append process ID and a random number to make a (usually) unique name.
    """
    return "%s_%s_%s" % (prefix, os.getpid(), random.randrange(5000))


class JobDescriptor(object):
    """A shell command plus everything the batch system needs to run it.
    """
    def __init__(self, name_prefix, command, memory=DEFAULT_MEMORY, cores=DEFAULT_CORES,
                 queue=DEFAULT_QUEUE, work_dir=None):
        if not name_prefix:
            raise ConfigurationError("Job name prefix cannot be empty")
        if not command:
            raise ConfigurationError("Job %s has no command to run" % name_prefix)
        self._name = build_job_name(name_prefix)
        self.command = command
        self.work_dir = work_dir or os.getcwd()
        self._resources = PartialAllocation(int(memory), int(cores))
        self._queue = queue or DEFAULT_QUEUE
        self._dependencies = []
        self.handle = None

    def __repr__(self):
        return "JobDescriptor(%s, %s)" % (self.name, self.command)

    @property
    def name(self):
        return self._name

    @property
    def stdout_path(self):
        return self._name + ".o"

    @property
    def stderr_path(self):
        return self._name + ".e"

    @property
    def resources(self):
        return self._resources

    @property
    def queue(self):
        if self._resources.whole_node:
            return self._resources.queue
        return self._queue

    @property
    def dependencies(self):
        return tuple(self._dependencies)

    @property
    def submitted(self):
        return self.handle is not None

    def _check_editable(self, what):
        if self.submitted:
            raise ValueError("Cannot change %s of %s after submission" % (what, self.name))
        if self._resources.whole_node:
            raise ValueError("%s of %s locks a whole node; %s cannot be set manually"
                             % (what.capitalize(), self.name, what))

    def set_memory(self, memory):
        """Set memory requirement for the job, in megabytes.
        """
        self._check_editable("memory")
        self._resources = self._resources._replace(memory=int(memory))

    def set_cores(self, cores):
        self._check_editable("cores")
        self._resources = self._resources._replace(cores=int(cores))

    def set_queue(self, queue):
        """Schedule the job in the given queue, keeping the current one if empty.
        """
        self._check_editable("queue")
        if queue:
            self._queue = queue

    def lock_whole_node(self, queue):
        """Reserve a complete node: 16 cores on hptest, 8 cores elsewhere.

        Replaces any manual memory, core and queue settings, and rejects
        further ones.
        """
        if self.submitted:
            raise ValueError("Cannot change resources of %s after submission" % self.name)
        if not queue:
            raise ConfigurationError("Scheduler queue cannot be empty")
        self._resources = WholeNode(queue.lower())

    def add_dependency(self, handle):
        """Require successful completion of a submitted job before this one starts.
        """
        if self.submitted:
            raise ValueError("Cannot add dependencies to %s after submission" % self.name)
        if handle is None or not getattr(handle, "job_id", None):
            raise ValueError("Dependency for %s has no batch job ID: %s" % (self.name, handle))
        if handle not in self._dependencies:
            self._dependencies.append(handle)

    def mark_submitted(self, handle):
        self.handle = handle
        return handle
