# plugins/provisioners/debian.py
from __future__ import annotations

import logging
from typing import Any, Mapping

from ...errors import ProvisioningError
from ...registry import CapabilityKind, register_plugin
from ..base import BuildHost, Provisioner, Transport

logger = logging.getLogger(__name__)


@register_plugin(CapabilityKind.PROVISIONER, "debian")
class Debian(Provisioner):
    """Prepare a Debian host by installing `packages` with apt."""

    def prepare(self, transport: Transport, host: BuildHost, env: Mapping[str, Any]) -> bool:
        repos = list(env.get("repos") or [])
        packages = list(env.get("packages") or [])

        try:
            if repos:
                # Debian repositories need a URL, components and a signing
                # key; a bare list of names isn't enough to add one.
                raise ProvisioningError("adding repositories on Debian is not supported")

            if packages:
                if not transport.exec("sudo apt-get update"):
                    raise ProvisioningError("failed to update repositories")

            for package in packages:
                if not transport.exec(f"sudo apt-get install -y {package}"):
                    raise ProvisioningError(f"failed to install package {package}")
        except ProvisioningError as e:
            logger.error("failed to provision %s: %s", host.name, e)
            raise

        return True
