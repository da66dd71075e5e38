"""Exceptions raised by pipeline stages.

Every stage runs as a separate process; these are the failures that abort
a stage and get reported to the operations list. Lock contention is not an
error and has no exception here.
"""


class PipelineError(Exception):
    pass


class ConfigurationError(PipelineError):
    """A required parameter is missing or invalid. No job was submitted.
    """
    pass


class DependencyNotMetError(PipelineError):
    """An upstream artifact this stage needs is absent or ambiguous.
    """
    pass


class SubmissionError(PipelineError):
    """The batch system rejected a job or did not report a job identifier.
    """
    def __init__(self, message, cmd=None, output=None, returncode=None):
        self.cmd = cmd
        self.output = output
        self.returncode = returncode
        super(SubmissionError, self).__init__(message)

    def __str__(self):
        msg = super(SubmissionError, self).__str__()
        if self.cmd:
            msg += "\nCommand: %s" % (" ".join(str(x) for x in self.cmd)
                                      if not isinstance(self.cmd, str) else self.cmd)
        if self.output:
            msg += "\nOutput:\n%s" % self.output
        return msg


class ExternalToolError(PipelineError):
    """An external program exited non-zero or reported an error marker.
    """
    def __init__(self, message, cmd=None, output=None, returncode=None):
        self.cmd = cmd
        self.output = output
        self.returncode = returncode
        super(ExternalToolError, self).__init__(message)

    def __str__(self):
        msg = super(ExternalToolError, self).__str__()
        if self.returncode is not None:
            msg += " (exit status %s)" % self.returncode
        if self.output:
            msg += "\n%s" % self.output
        return msg
