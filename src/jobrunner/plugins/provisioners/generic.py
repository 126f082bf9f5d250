# plugins/provisioners/generic.py
from __future__ import annotations

from typing import Any, Mapping

from ...errors import ProvisioningError
from ...registry import CapabilityKind, register_plugin
from ..base import BuildHost, Provisioner, Transport


@register_plugin(CapabilityKind.PROVISIONER, "generic")
class Generic(Provisioner):
    """For hosts with no known package manager: accepts them as they are."""

    def prepare(self, transport: Transport, host: BuildHost, env: Mapping[str, Any]) -> bool:
        if env.get("repos") or env.get("packages"):
            raise ProvisioningError(
                f"can't install packages on {host.name}: no package manager is known for it"
            )
        return True
