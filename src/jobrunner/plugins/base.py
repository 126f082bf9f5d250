# plugins/base.py
"""
Interfaces for each capability kind.

A concrete plugin subclasses exactly one of Builder, Transport, Provisioner,
Source or Action and registers itself with @register_plugin.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional, Tuple

from ..model import ActionResult

if TYPE_CHECKING:
    from ..context import Context
    from ..notifier import Notifier
    from ..registry import CapabilityRegistry


@dataclass
class BuildHost:
    """
    A leased build machine.

    Only a Builder creates one (in get()) and only the same Builder destroys
    it (in release()). password and key may both be None for hosts that use
    agent or pre-installed key authentication.
    """
    name: str
    host: str
    username: Optional[str] = None
    password: Optional[str] = None
    key: Optional[str] = None
    distro: Optional[str] = None
    release: Optional[str] = None
    workspace: Optional[str] = None
    server: Optional[str] = None
    supported_transports: List[str] = field(default_factory=list)
    facts: Dict[str, Any] = field(default_factory=dict)

    def transports(self) -> List[str]:
        """Transport names this host accepts, most preferred first."""
        return list(self.supported_transports)

    def connect_info(self) -> Tuple[str, Optional[str], Optional[str], Optional[str]]:
        return self.host, self.username, self.password, self.key

    def context_info(self) -> Dict[str, Any]:
        """Host facts merged into the job context. Never includes credentials."""
        info = {
            "build_host": self.name,
            "host": self.host,
            "username": self.username,
            "distro": self.distro,
            "release": self.release,
            "workspace": self.workspace,
        }
        info.update(self.facts)
        return info

    def __getitem__(self, key: str) -> Any:
        if key in self.facts:
            return self.facts[key]
        return getattr(self, key)


class Builder(ABC):
    """Acquires and releases build hosts from some provider."""

    def __init__(self, registry: Optional[CapabilityRegistry] = None):
        # The registry the job runner resolves plugins from
        self.registry = registry

    @abstractmethod
    def get(self, args: Mapping[str, Any]) -> Optional[BuildHost]:
        """
        Lease a build host suitable for the job's environment.

        Raise a descriptive error rather than returning a half-built host.
        """
        ...

    @abstractmethod
    def release(self, transport: Optional[Transport], host: BuildHost) -> None:
        """
        Give the host back.

        Must tolerate an already-closed transport, a host that was never fully
        provisioned, and a host that is already gone (log and carry on).
        """
        ...


class Transport(ABC):
    """A command channel bound to one build host."""

    def __init__(
        self,
        host: str,
        user: Optional[str] = None,
        password: Optional[str] = None,
        key: Optional[str] = None,
        log: Any = None,
    ):
        self.host = host
        self.user = user
        self.password = password
        self.key = key
        self.log = log

    @abstractmethod
    def exec(self, command: str, path: Optional[str] = None) -> bool:
        """Run a command, streaming its output to the log. True on success."""
        ...

    @property
    @abstractmethod
    def exit_code(self) -> int:
        """Exit status of the last command run."""
        ...

    @abstractmethod
    def export_env(self, env: Mapping[str, Any]) -> None:
        """Set environment variables for subsequent commands."""
        ...

    @abstractmethod
    def close(self) -> None:
        ...


class Provisioner(ABC):
    """Prepares a build host's OS and packages before the job uses it."""

    @abstractmethod
    def prepare(self, transport: Transport, host: BuildHost, env: Mapping[str, Any]) -> bool:
        ...


class Source(ABC):
    """Checks out one kind of source repository onto the build host."""

    @abstractmethod
    def checkout(self, transport: Transport, ctx: Context, sources: List[Dict[str, Any]]) -> bool:
        """Check out every source in the group. False if any of them failed."""
        ...


class Action(ABC):
    """
    One unit of work inside a stage.

    Constructed from the step's action parameters, bound to the job's
    transport and context by prepare(), then run with perform().
    """

    def __init__(self, **params: Any):
        self.params = params
        self.transport: Optional[Transport] = None
        self.ctx: Optional[Context] = None

    def prepare(self, transport: Transport, ctx: Context) -> None:
        self.transport = transport
        self.ctx = ctx

    @abstractmethod
    def perform(self, log: Notifier) -> ActionResult:
        ...
