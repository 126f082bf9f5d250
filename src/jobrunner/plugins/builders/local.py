# plugins/builders/local.py
from __future__ import annotations

import getpass
import logging
import platform
import re
import shutil
import tempfile
from pathlib import Path
from typing import Any, Mapping, Optional, Tuple

from ...registry import CapabilityKind, CapabilityRegistry, default_registry, register_plugin
from ..base import Builder, BuildHost, Transport

logger = logging.getLogger(__name__)

GENERIC_DISTRO = "generic"

_OS_PATTERN = re.compile(r"\A(\w*)_(.*)\Z")


def parse_os(os_name: str) -> Tuple[str, Optional[str]]:
    """Split an "<distro>_<release>" name, e.g. "ubuntu_jammy"."""
    match = _OS_PATTERN.match(os_name)
    if match:
        return match.group(1), match.group(2)
    return os_name, None


def detect_os() -> Tuple[str, Optional[str]]:
    """Distro and release of this machine, from /etc/os-release."""
    try:
        info = platform.freedesktop_os_release()
    except OSError:
        return GENERIC_DISTRO, None
    return info.get("ID", GENERIC_DISTRO), info.get("VERSION_CODENAME") or info.get("VERSION_ID")


def _current_user() -> Optional[str]:
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        return None


@register_plugin(CapabilityKind.BUILDER, "local")
class LocalBuilder(Builder):
    """
    Leases this machine as the build host.

    Each lease gets its own scratch workspace directory, removed again on
    release.
    """

    def __init__(
        self,
        workspace_root: Optional[str] = None,
        registry: Optional[CapabilityRegistry] = None,
    ):
        super().__init__(registry)
        self.workspace_root = workspace_root

    def get(self, args: Mapping[str, Any]) -> BuildHost:
        args = dict(args or {})
        logger.debug("local: args=%s", sorted(args))

        if args.get("os"):
            distro, release = parse_os(str(args["os"]))
        else:
            distro, release = detect_os()
            registry = self.registry if self.registry is not None else default_registry
            if not registry.has(CapabilityKind.PROVISIONER, distro):
                logger.info("no provisioner for %s, treating this machine as %s", distro, GENERIC_DISTRO)
                distro = GENERIC_DISTRO

        workspace = tempfile.mkdtemp(prefix="jobrunner-", dir=self.workspace_root)
        build_host = BuildHost(
            name=f"local-{Path(workspace).name}",
            host="localhost",
            username=_current_user(),
            distro=distro,
            release=release,
            workspace=workspace,
            supported_transports=["local"],
        )
        logger.debug("local buildhost=%s", build_host.name)
        return build_host

    def release(self, transport: Optional[Transport], host: BuildHost) -> None:
        if not host.workspace:
            return
        try:
            shutil.rmtree(host.workspace)
        except FileNotFoundError:
            logger.info("workspace for %s was already removed", host.name)
