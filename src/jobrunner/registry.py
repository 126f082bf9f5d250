# registry.py
"""
Capability Registry: resolves plugin implementations by (kind, name).

Every concrete plugin registers itself under exactly one name within exactly
one capability kind, normally with the @register_plugin decorator when its
module is imported at startup. Registering the same (kind, name) twice
replaces the earlier entry: last registration wins. Deployments rely on this
to override a bundled plugin with their own implementation by loading it
afterwards.

Lookups are lock-free and safe from many job runners at once. Registration
takes a lock, but is only expected while the process warms up.
"""
from __future__ import annotations

import importlib
import logging
import threading
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Tuple, TypeVar

from .errors import PluginNotFoundError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CapabilityKind(str, Enum):
    BUILDER = "builder"
    TRANSPORT = "transport"
    PROVISIONER = "provisioner"
    SOURCE = "source"
    ACTION = "action"


class CapabilityRegistry:
    """
    Registry mapping (capability kind, name) to a plugin factory.

    Usage:
        registry = CapabilityRegistry()
        registry.register(CapabilityKind.TRANSPORT, "ssh", SSHTransport)

        transport_cls = registry.find(CapabilityKind.TRANSPORT, "ssh")
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._plugins: Dict[Tuple[CapabilityKind, str], Callable[..., Any]] = {}

    def register(self, kind: CapabilityKind, name: str, factory: Callable[..., Any]) -> None:
        kind = CapabilityKind(kind)
        with self._lock:
            # Copy-on-write so concurrent readers never see a dict mid-update
            plugins = dict(self._plugins)
            if (kind, name) in plugins:
                logger.debug("replacing %s plugin '%s'", kind.value, name)
            plugins[(kind, name)] = factory
            self._plugins = plugins

    def find(self, kind: CapabilityKind, name: str) -> Callable[..., Any]:
        """
        Raises:
            PluginNotFoundError: if nothing is registered under (kind, name)
        """
        kind = CapabilityKind(kind)
        try:
            return self._plugins[(kind, name)]
        except KeyError:
            raise PluginNotFoundError(kind.value, name, self.names(kind)) from None

    def has(self, kind: CapabilityKind, name: str) -> bool:
        return (CapabilityKind(kind), name) in self._plugins

    def names(self, kind: CapabilityKind) -> List[str]:
        kind = CapabilityKind(kind)
        return sorted(n for k, n in self._plugins if k == kind)

    def __contains__(self, item: Tuple[CapabilityKind, str]) -> bool:
        kind, name = item
        return self.has(kind, name)


default_registry = CapabilityRegistry()


def register_plugin(
    kind: CapabilityKind,
    name: str,
    registry: CapabilityRegistry | None = None,
) -> Callable[[T], T]:
    """Class decorator: register the decorated plugin class under (kind, name)."""
    def decorator(cls: T) -> T:
        (registry or default_registry).register(kind, name, cls)
        return cls
    return decorator


def load_plugins(modules: Iterable[str]) -> None:
    """Import plugin modules so they can register themselves."""
    for module in modules:
        module = module.strip()
        if not module:
            continue
        logger.debug("loading plugin module %s", module)
        importlib.import_module(module)


BUILTIN_PLUGINS = (
    "jobrunner.plugins.builders.local",
    "jobrunner.plugins.transports.local",
    "jobrunner.plugins.provisioners.debian",
    "jobrunner.plugins.provisioners.generic",
    "jobrunner.plugins.provisioners.ubuntu",
    "jobrunner.plugins.actions.command",
    "jobrunner.plugins.sources.git",
)


def load_builtin_plugins() -> None:
    load_plugins(BUILTIN_PLUGINS)
