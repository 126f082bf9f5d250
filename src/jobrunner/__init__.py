from .context import Context
from .errors import JobRunnerError
from .model import ActionResult, JobDefinition, JobStatus, Stage
from .notifier import MemoryNotifier, Notifier
from .registry import CapabilityKind, CapabilityRegistry, default_registry, register_plugin
from .runner import JobRunner

__all__ = [
    "Context",
    "JobRunnerError",
    "ActionResult",
    "JobDefinition",
    "JobStatus",
    "Stage",
    "MemoryNotifier",
    "Notifier",
    "CapabilityKind",
    "CapabilityRegistry",
    "default_registry",
    "register_plugin",
    "JobRunner",
]
