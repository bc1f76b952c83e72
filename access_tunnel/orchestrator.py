"""主流程：配置凭据、生成描述文件、启动隧道并报告公网入口。

Top-level workflow. Each stage runs only after the previous one succeeded:

    VALIDATING -> PROVISIONING -> DESCRIPTOR_BUILT -> LAUNCHING -> DISCOVERING -> SERVING

Any :class:`~access_tunnel.errors.AccessTunnelError` moves the run to
``FAILED``; :func:`main` prints it to stderr and returns exit code 1. Nothing
is rolled back. ``SERVING`` never exits on its own: the process idles so the
tunnel and the credential changes stay in effect until it is killed.
"""

from __future__ import annotations

import argparse
import getpass
import os
import time
from enum import Enum
from pathlib import Path
from typing import Callable, Collection, List, Mapping, Optional, Sequence

from access_tunnel import console
from access_tunnel.config.defaults import IDLE_TICK_SECONDS, TUNNEL_BINARY, TUNNEL_DESCRIPTOR_PATH
from access_tunnel.config.env_config import AccessConfig, validate_access_config
from access_tunnel.errors import AccessTunnelError, ConfigError
from access_tunnel.logging_utils import get_logger, setup_logging
from access_tunnel.tools.credentials import CredentialProvisioner
from access_tunnel.tools.tunnel_config import (
    TunnelDescriptor,
    build_tunnel_descriptor,
    write_tunnel_descriptor,
)
from access_tunnel.tools.tunnel_discovery import (
    AccessInstruction,
    TunnelDiscoveryClient,
    render_access_instruction,
)
from access_tunnel.tools.tunnel_installer import ensure_tunnel_binary
from access_tunnel.tools.tunnel_launcher import TunnelLauncher

LOGGER = get_logger(__name__)

DiscoveryFactory = Callable[[Collection[str], bool], TunnelDiscoveryClient]


class Stage(str, Enum):
    VALIDATING = "validating"
    PROVISIONING = "provisioning"
    DESCRIPTOR_BUILT = "descriptor_built"
    LAUNCHING = "launching"
    DISCOVERING = "discovering"
    SERVING = "serving"
    FAILED = "failed"


def _default_discovery(expected_names: Collection[str], debug: bool) -> TunnelDiscoveryClient:
    return TunnelDiscoveryClient(expected_names, debug=debug)


class AccessOrchestrator:
    """Drive one provisioning run against injected collaborators."""

    def __init__(
        self,
        config: AccessConfig,
        *,
        provisioner: Optional[CredentialProvisioner] = None,
        launcher: Optional[TunnelLauncher] = None,
        discovery_factory: DiscoveryFactory = _default_discovery,
        installer: Callable[[str], str] = ensure_tunnel_binary,
        descriptor_path: str | os.PathLike[str] = TUNNEL_DESCRIPTOR_PATH,
        user: Optional[str] = None,
    ):
        self.config = config
        self.user = user or getpass.getuser()
        self.provisioner = provisioner or CredentialProvisioner(
            user=self.user, debug=config.debug, echo=console.info
        )
        self.launcher = launcher
        self.discovery_factory = discovery_factory
        self.installer = installer
        self.descriptor_path = Path(descriptor_path)
        self.stage = Stage.VALIDATING
        self.failed_stage: Optional[Stage] = None
        self.descriptor: Optional[TunnelDescriptor] = None
        self.tunnel_pid: Optional[int] = None

    def _enter(self, stage: Stage) -> None:
        LOGGER.debug("Entering stage", extra={"stage": stage.value})
        self.stage = stage

    def provision(self) -> None:
        self._enter(Stage.PROVISIONING)
        if self.config.expose_ssh:
            console.info("Add authorized key...")
            self.provisioner.grant_ssh_trust(self.config.ssh_public_key)
        if self.config.expose_vnc:
            console.info("Enable remote desktop...")
            self.provisioner.set_desktop_access(self.config.desktop_password)

    def build_descriptor(self) -> TunnelDescriptor:
        self._enter(Stage.DESCRIPTOR_BUILT)
        descriptor = build_tunnel_descriptor(
            self.config.tunnel_auth_token,
            expose_ssh=self.config.expose_ssh,
            expose_vnc=self.config.expose_vnc,
        )
        console.info(f"Creating tunnel config at {self.descriptor_path}")
        write_tunnel_descriptor(descriptor, self.descriptor_path)
        self.descriptor = descriptor
        return descriptor

    def launch(self) -> int:
        self._enter(Stage.LAUNCHING)
        launcher = self.launcher
        if launcher is None:
            binary = self.installer(TUNNEL_BINARY)
            launcher = TunnelLauncher(binary, debug=self.config.debug)
        console.info("Starting tunnel...")
        self.tunnel_pid = launcher.launch(self.descriptor_path)
        return self.tunnel_pid

    def discover(self, descriptor: TunnelDescriptor) -> List[AccessInstruction]:
        self._enter(Stage.DISCOVERING)
        client = self.discovery_factory(descriptor.names, self.config.debug)
        tunnels = client.discover()
        return [render_access_instruction(tunnel, user=self.user) for tunnel in tunnels]

    def run(self) -> List[AccessInstruction]:
        """Run every stage up to ``SERVING`` and print the access instructions."""

        try:
            self._enter(Stage.VALIDATING)
            console.section("Access tunnel configs")
            for line in self.config.describe():
                console.write(line)
            validate_access_config(self.config)
            self.provision()
            descriptor = self.build_descriptor()
            self.launch()
            instructions = self.discover(descriptor)
        except AccessTunnelError:
            self.failed_stage = self.stage
            self.stage = Stage.FAILED
            LOGGER.debug("Run failed", extra={"stage": self.failed_stage.value})
            raise

        self._enter(Stage.SERVING)
        console.success("✅ Success! Remote access is ready:")
        for instruction in instructions:
            console.write(f"[{instruction.name}] {instruction.render()}")
        return instructions

    def serve_forever(
        self,
        *,
        tick_seconds: float = IDLE_TICK_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
        max_ticks: Optional[int] = None,
    ) -> None:
        """Idle so the tunnel outlives this call; ``max_ticks`` bounds it for tests."""

        ticks = 0
        while max_ticks is None or ticks < max_ticks:
            sleep(tick_seconds)
            ticks += 1
            LOGGER.debug("Tunnel still serving", extra={"tick": ticks, "pid": self.tunnel_pid})


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Grant temporary SSH/screen-sharing access and expose it through a tunnel.",
    )
    parser.add_argument("--log-dir", help="Also write logs to <log-dir>/access_tunnel.log")
    return parser


def main(
    argv: Optional[Sequence[str]] = None,
    environ: Optional[Mapping[str, str]] = None,
    *,
    orchestrator_factory: Callable[[AccessConfig], AccessOrchestrator] = AccessOrchestrator,
) -> int:
    args = build_parser().parse_args(argv)
    config = AccessConfig.from_env(environ)
    setup_logging(debug=config.debug, log_dir=args.log_dir)

    orchestrator = orchestrator_factory(config)
    try:
        orchestrator.run()
    except ConfigError as exc:
        console.error(f"❌ Issue with input: {exc}")
        return 1
    except AccessTunnelError as exc:
        failed = orchestrator.failed_stage or orchestrator.stage
        console.error(f"❌ Failed at stage '{failed.value}': {exc}")
        return 1

    orchestrator.serve_forever()
    return 0


__all__ = ["AccessOrchestrator", "Stage", "build_parser", "main"]
