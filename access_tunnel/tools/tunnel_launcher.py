"""Spawn the tunnel binary and detach from it.

The launcher returns as soon as the process exists. It keeps no handle on it:
nothing here waits on, signals or restarts the tunnel, and a crash after
spawn only shows up later as a discovery failure.
"""

from __future__ import annotations

import os
import subprocess
from typing import Callable, List

from access_tunnel.config.defaults import TUNNEL_BINARY
from access_tunnel.errors import LaunchError
from access_tunnel.logging_utils import get_logger

LOGGER = get_logger(__name__)


def build_start_command(binary: str, descriptor_path: str | os.PathLike[str]) -> List[str]:
    return [binary, "start", "--all", "--config", str(descriptor_path)]


class TunnelLauncher:
    def __init__(
        self,
        binary: str = TUNNEL_BINARY,
        *,
        debug: bool = False,
        popen: Callable[..., subprocess.Popen] = subprocess.Popen,
    ):
        self.binary = binary
        self.debug = debug
        self._popen = popen

    def launch(self, descriptor_path: str | os.PathLike[str]) -> int:
        """Start every endpoint in ``descriptor_path`` and return the child PID."""

        cmd = build_start_command(self.binary, descriptor_path)
        output = None if self.debug else subprocess.DEVNULL
        LOGGER.info("Starting tunnel process", extra={"command": " ".join(cmd)})
        try:
            proc = self._popen(
                cmd,
                stdin=subprocess.DEVNULL,
                stdout=output,
                stderr=output,
                start_new_session=True,
            )
        except OSError as exc:
            raise LaunchError(f"Failed to start {self.binary}: {exc}") from exc

        LOGGER.debug("Tunnel process spawned", extra={"pid": proc.pid})
        return proc.pid


__all__ = ["TunnelLauncher", "build_start_command"]
