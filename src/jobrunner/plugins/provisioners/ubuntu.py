# plugins/provisioners/ubuntu.py
from __future__ import annotations

import logging
from typing import Any, Mapping

from ...errors import ProvisioningError
from ...registry import CapabilityKind, register_plugin
from ..base import BuildHost, Provisioner, Transport

logger = logging.getLogger(__name__)


@register_plugin(CapabilityKind.PROVISIONER, "ubuntu")
class Ubuntu(Provisioner):
    """
    Prepare an Ubuntu host: add any PPAs listed in `repos`, then install
    `packages` with apt. Hosts that ask for neither are left untouched.
    """

    def prepare(self, transport: Transport, host: BuildHost, env: Mapping[str, Any]) -> bool:
        repos = list(env.get("repos") or [])
        packages = list(env.get("packages") or [])
        if not repos and not packages:
            return True

        try:
            for repo in repos:
                if not transport.exec(f"sudo apt-add-repository -y {repo}"):
                    raise ProvisioningError(f"failed to add repository {repo}")

            if not transport.exec("sudo apt-get update"):
                raise ProvisioningError("failed to update repositories")

            for package in packages:
                if not transport.exec(f"sudo apt-get install -y {package}"):
                    raise ProvisioningError(f"failed to install package {package}")
        except ProvisioningError as e:
            logger.error("failed to provision %s: %s", host.name, e)
            raise

        return True
