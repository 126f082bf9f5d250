# plugins/sources/git.py
from __future__ import annotations

import logging
import posixpath
import shlex
from typing import Any, Dict, List, Optional
from urllib.parse import urlsplit, urlunsplit

from ...registry import CapabilityKind, register_plugin
from ..base import Source, Transport

logger = logging.getLogger(__name__)


def repo_name(url: str) -> str:
    """Directory name for a checkout: last part of the URL, minus .git"""
    name = url.rstrip("/").split("/")[-1].split(":")[-1]
    if name.endswith(".git"):
        name = name[: -len(".git")]
    return name


def authenticated_url(url: str, token: Optional[str]) -> str:
    """Insert an access token into an https URL."""
    if not token:
        return url
    parts = urlsplit(url)
    if parts.scheme != "https":
        return url
    netloc = parts.netloc.rsplit("@", 1)[-1]
    return urlunsplit(parts._replace(netloc=f"{token}@{netloc}"))


@register_plugin(CapabilityKind.SOURCE, "git")
class Git(Source):
    """
    Clone git repositories into the build host's workspace.

    Each source needs a `url`; `branch` (a branch, tag or commit) and
    `token` are optional. The token is only ever placed in the command sent
    to the transport, never in the log.
    """

    def checkout(self, transport: Transport, ctx, sources: List[Dict[str, Any]]) -> bool:
        workspace = ctx.get("workspace")

        for source in sources:
            url = source.get("url")
            if not url:
                logger.error("git source has no url: %s", sorted(source))
                return False

            target = repo_name(url)
            if workspace:
                target = posixpath.join(str(workspace), target)

            logger.info("cloning %s into %s", url, target)
            clone_url = authenticated_url(url, source.get("token"))
            if not transport.exec(f"git clone {shlex.quote(clone_url)} {shlex.quote(target)}"):
                logger.error("failed to clone %s", url)
                return False

            branch = source.get("branch")
            if branch and not transport.exec(f"git checkout {shlex.quote(branch)}", target):
                logger.error("failed to check out %s of %s", branch, url)
                return False

        return True
