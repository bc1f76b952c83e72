"""隧道描述文件生成器。Tunnel descriptor generator."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Mapping

from access_tunnel.config.defaults import SSH_LOCAL_PORT, TUNNEL_DESCRIPTOR_PATH, VNC_LOCAL_PORT
from access_tunnel.errors import DescriptorWriteError
from access_tunnel.logging_utils import get_logger

LOGGER = get_logger(__name__)

SSH_ENDPOINT = "ssh"
VNC_ENDPOINT = "vnc"


class TransportProtocol(str, Enum):
    TCP = "tcp"


@dataclass(frozen=True)
class TunnelEndpointSpec:
    """One local port the tunnel binary should expose."""

    name: str
    local_port: int
    proto: TransportProtocol = TransportProtocol.TCP

    def to_dict(self) -> Dict[str, Any]:
        return {"addr": self.local_port, "proto": self.proto.value}


@dataclass(frozen=True)
class TunnelDescriptor:
    """Auth token plus the named endpoints; written once per run."""

    auth_token: str
    endpoints: Mapping[str, TunnelEndpointSpec] = field(default_factory=dict)

    @property
    def names(self) -> frozenset[str]:
        return frozenset(self.endpoints)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "authtoken": self.auth_token,
            "tunnels": {name: spec.to_dict() for name, spec in self.endpoints.items()},
        }


def build_tunnel_descriptor(auth_token: str, *, expose_ssh: bool, expose_vnc: bool) -> TunnelDescriptor:
    """生成描述文件。Build a descriptor containing only the enabled endpoints."""

    endpoints: Dict[str, TunnelEndpointSpec] = {}
    if expose_ssh:
        endpoints[SSH_ENDPOINT] = TunnelEndpointSpec(SSH_ENDPOINT, SSH_LOCAL_PORT)
    if expose_vnc:
        endpoints[VNC_ENDPOINT] = TunnelEndpointSpec(VNC_ENDPOINT, VNC_LOCAL_PORT)
    if not endpoints:
        raise ValueError("A tunnel descriptor needs at least one endpoint")
    return TunnelDescriptor(auth_token=auth_token, endpoints=endpoints)


def generate_descriptor_json(descriptor: TunnelDescriptor, indent: int = 2) -> str:
    """将描述文件转换为 JSON 字符串。"""

    return json.dumps(descriptor.to_dict(), indent=indent, ensure_ascii=False)


def write_tunnel_descriptor(
    descriptor: TunnelDescriptor,
    path: str | os.PathLike[str] = TUNNEL_DESCRIPTOR_PATH,
) -> Path:
    """Write ``descriptor`` to ``path`` with mode 0600; it carries the auth token."""

    target = Path(path)
    payload = generate_descriptor_json(descriptor) + "\n"
    try:
        fd = os.open(target, os.O_CREAT | os.O_TRUNC | os.O_WRONLY, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(payload)
    except OSError as exc:
        raise DescriptorWriteError(f"Error while writing tunnel descriptor ({target}): {exc}") from exc

    LOGGER.info(
        "Tunnel descriptor written",
        extra={"path": str(target), "endpoints": sorted(descriptor.names)},
    )
    return target


__all__ = [
    "SSH_ENDPOINT",
    "VNC_ENDPOINT",
    "TransportProtocol",
    "TunnelDescriptor",
    "TunnelEndpointSpec",
    "build_tunnel_descriptor",
    "generate_descriptor_json",
    "write_tunnel_descriptor",
]
