# plugins/transports/local.py
from __future__ import annotations

import logging
import os
import subprocess
from typing import Any, Dict, Mapping, Optional

from ...errors import TransportDisconnected, TransportError
from ...registry import CapabilityKind, register_plugin
from ..base import Transport

logger = logging.getLogger(__name__)

LOCAL_HOSTS = ("localhost", "127.0.0.1", "::1")


@register_plugin(CapabilityKind.TRANSPORT, "local")
class LocalTransport(Transport):
    """
    Runs commands on this machine through the shell.

    Output (stdout and stderr interleaved) is written to the log sink one
    line at a time as the command produces it. Bytes that aren't valid
    UTF-8 are replaced rather than failing the command.
    """

    def __init__(
        self,
        host: str,
        user: Optional[str] = None,
        password: Optional[str] = None,
        key: Optional[str] = None,
        log: Any = None,
    ):
        if host not in LOCAL_HOSTS:
            raise TransportError(f"local transport can't connect to remote host {host}")
        super().__init__(host, user=user, password=password, key=key, log=log)
        self._env: Dict[str, str] = {}
        self._exit_code = 0
        self._closed = False

    @property
    def exit_code(self) -> int:
        return self._exit_code

    def export_env(self, env: Mapping[str, Any]) -> None:
        self._env.update({str(k): str(v) for k, v in env.items()})

    def exec(self, command: str, path: Optional[str] = None) -> bool:
        if self._closed:
            raise TransportDisconnected("local transport is closed")

        if path is not None and not os.path.isdir(path):
            self._write(f"working directory not found: {path}")
            self._exit_code = 1
            return False

        env = os.environ.copy()
        env.update(self._env)

        logger.debug("running command in %s", path or os.getcwd())
        try:
            proc = subprocess.Popen(
                command,
                shell=True,
                cwd=path,
                env=env,
                text=True,
                encoding="utf-8",
                errors="replace",
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
            )
        except OSError as e:
            raise TransportError(f"couldn't run command: {e}") from e

        try:
            with proc.stdout:
                for line in proc.stdout:
                    self._write(line)
        except BaseException:
            # Don't leave the child running if the log sink fails
            proc.kill()
            raise
        finally:
            self._exit_code = proc.wait()
        return self._exit_code == 0

    def close(self) -> None:
        self._closed = True

    def _write(self, line: str) -> None:
        if self.log is not None:
            self.log.write(line.rstrip("\n"))
