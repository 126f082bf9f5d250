# errors.py
"""
Error classes for the job runner.

Setup failures (builder, build host, transport, provisioner, sources) abort
the whole job. Failures inside a stage are reported as action results and
routed through the stage's on_failure edge instead.
"""
from __future__ import annotations

from typing import Iterable


DESERIALIZATION_EXIT_CODE = -1
INTERPOLATION_EXIT_CODE = -2


class JobRunnerError(Exception):
    """Base exception for the job runner."""
    pass


class DeserializationError(JobRunnerError):
    """A job, stage or action payload could not be decoded or validated."""
    pass


class ResourceAcquisitionError(JobRunnerError):
    """No build host could be obtained from the builder."""
    pass


class PluginNotFoundError(JobRunnerError):
    """No plugin is registered for a (capability kind, name) pair."""

    def __init__(self, kind: str, name: str, registered: Iterable[str] = ()):
        self.kind = kind
        self.name = name
        self.registered = sorted(registered)
        super().__init__(
            f"no {kind} plugin registered as '{name}'. "
            f"Registered: {self.registered}"
        )


class ProvisioningError(JobRunnerError):
    """The provisioner failed to prepare the build host."""
    pass


class SourceCheckoutError(JobRunnerError):
    """A group of sources failed to check out."""
    pass


class TransportError(JobRunnerError):
    """The command channel failed to open or to execute a command."""
    pass


class TransportDisconnected(TransportError):
    """
    The remote end has already gone away.

    This is the only error swallowed while releasing resources.
    """
    pass


class StageNotFoundError(JobRunnerError):
    """A stage id referenced by the job is missing from its stage mapping."""

    def __init__(self, stage_id: str):
        self.stage_id = stage_id
        super().__init__(f"stage not found: {stage_id}")


class ActionFailure(JobRunnerError):
    """A step reported non-success."""

    def __init__(self, message: str, exit_code: int = 1):
        self.exit_code = exit_code
        super().__init__(message)


class InterpolationError(ActionFailure):
    """A %{key} placeholder referenced a key that is not in the context."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(
            f"interpolation failed: key '{key}' is not set in the job context",
            exit_code=INTERPOLATION_EXIT_CODE,
        )
