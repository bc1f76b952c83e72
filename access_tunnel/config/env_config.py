"""从环境变量加载访问配置。Access configuration loaded from the process environment."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Callable, List, Mapping, Optional, Tuple

from access_tunnel.errors import ConfigError
from access_tunnel.redact import mask_secret

from .defaults import (
    ENV_DEBUG,
    ENV_DESKTOP_PASSWORD,
    ENV_SSH_PUBLIC_KEY,
    ENV_TUNNEL_AUTH_TOKEN,
    TRUTHY_VALUES,
)


@dataclass(frozen=True)
class AccessConfig:
    """The four inputs that drive one provisioning run."""

    ssh_public_key: str = ""
    desktop_password: str = ""
    tunnel_auth_token: str = ""
    debug: bool = False

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "AccessConfig":
        env = os.environ if environ is None else environ
        # Secrets are used verbatim; only the key line is trimmed.
        return cls(
            ssh_public_key=env.get(ENV_SSH_PUBLIC_KEY, "").strip(),
            desktop_password=env.get(ENV_DESKTOP_PASSWORD, ""),
            tunnel_auth_token=env.get(ENV_TUNNEL_AUTH_TOKEN, ""),
            debug=env.get(ENV_DEBUG, "").strip().lower() in TRUTHY_VALUES,
        )

    @property
    def expose_ssh(self) -> bool:
        return bool(self.ssh_public_key)

    @property
    def expose_vnc(self) -> bool:
        return bool(self.desktop_password)

    def describe(self) -> List[str]:
        """Return printable lines; secrets stay masked unless debug is on."""

        password = self.desktop_password if self.debug else mask_secret(self.desktop_password)
        token = self.tunnel_auth_token if self.debug else mask_secret(self.tunnel_auth_token)
        return [
            f"- Debug: {self.debug}",
            f"- SSHPublicKey: {self.ssh_public_key}",
            f"- DesktopPassword: {password}",
            f"- TunnelAuthToken: {token}",
        ]


def _token_present(config: AccessConfig) -> bool:
    return bool(config.tunnel_auth_token)


def _any_secret_present(config: AccessConfig) -> bool:
    return config.expose_ssh or config.expose_vnc


# Checked in order; the first failing entry is reported.
_CHECKS: Tuple[Tuple[str, Callable[[AccessConfig], bool], str], ...] = (
    (
        ENV_TUNNEL_AUTH_TOKEN,
        _token_present,
        f"No tunnel auth token specified ({ENV_TUNNEL_AUTH_TOKEN})",
    ),
    (
        f"{ENV_SSH_PUBLIC_KEY}/{ENV_DESKTOP_PASSWORD}",
        _any_secret_present,
        f"Neither {ENV_SSH_PUBLIC_KEY} nor {ENV_DESKTOP_PASSWORD} specified. At least one is required",
    ),
)


def validate_access_config(config: AccessConfig) -> AccessConfig:
    """Raise :class:`ConfigError` for the first failing check, else return ``config``."""

    for field_name, check, message in _CHECKS:
        if not check(config):
            raise ConfigError(message, field=field_name)
    return config


def load_access_config(environ: Optional[Mapping[str, str]] = None) -> AccessConfig:
    """Read the environment and validate the result."""

    return validate_access_config(AccessConfig.from_env(environ))
