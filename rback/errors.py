"""
Error taxonomy for rback.

Every error is fatal for the run: nothing is retried and no partial graph is
produced. Each kind carries the process exit code the CLI reports.
"""


class RbackError(Exception):
    exit_code = 1


class RetrievalError(RbackError):
    """The record source (cluster API or snapshot file) could not be queried."""
    exit_code = 3


class ResolutionError(RbackError):
    """A returned payload is not valid JSON or misses / mistypes a required field."""
    exit_code = 4


class AssemblyError(RbackError):
    """A role, binding or rule reference cannot be resolved while building the graph."""
    exit_code = 5
