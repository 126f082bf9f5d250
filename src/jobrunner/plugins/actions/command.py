# plugins/actions/command.py
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from ...errors import InterpolationError
from ...model import ActionResult
from ...registry import CapabilityKind, register_plugin
from ..base import Action

logger = logging.getLogger(__name__)


@register_plugin(CapabilityKind.ACTION, "command")
class Command(Action):
    """
    Run a command on the build host.

    The command may be given whole in `cmd`, or as `cmd` plus a list of
    `args`. `env` is exported before the command runs and `path` is the
    working directory, defaulting to the build host's workspace. Both the
    command and the path may contain %{key} placeholders resolved from the
    job context.

    The transport writes the command's output to the log itself; perform()
    only logs the command line being run.
    """

    def __init__(
        self,
        cmd: Optional[str] = None,
        args: Optional[List[Any]] = None,
        env: Optional[Dict[str, Any]] = None,
        path: Optional[str] = None,
        **params: Any,
    ):
        if not isinstance(cmd, str) or not cmd.strip():
            raise ValueError("a command action needs a non-empty 'cmd' string")
        if path is not None and not isinstance(path, str):
            raise ValueError(f"'path' must be a string, got {type(path).__name__}")
        if args is not None and not isinstance(args, list):
            raise ValueError(f"'args' must be a list, got {type(args).__name__}")
        if env is not None and not isinstance(env, dict):
            raise ValueError(f"'env' must be a mapping, got {type(env).__name__}")
        super().__init__(cmd=cmd, args=args, env=env, path=path, **params)

        if args is not None:
            self.cmd = cmd
            self.args = [str(a) for a in args]
        else:
            parts = cmd.split()
            self.cmd = parts[0]
            self.args = parts[1:]
        self.command_line = cmd if args is None else " ".join([cmd, *self.args])
        self.env = env
        self.path = path
        logger.debug("cmd: '%s' args: %s", self.cmd, self.args)

    def perform(self, log) -> ActionResult:
        if self.env:
            self.transport.export_env(self.env)

        log.write(self.command_line if self.path is None else f"{self.path} : {self.command_line}")

        try:
            command = self.ctx.interpolate(self.command_line)
            if self.path is not None:
                path = self.ctx.interpolate(self.path)
            else:
                workspace = self.ctx.get("workspace")
                path = str(workspace) if workspace else None
        except InterpolationError as e:
            log.write(str(e))
            return ActionResult(False, e.exit_code)

        success = self.transport.exec(command, path)
        return ActionResult(success, self.transport.exit_code)
