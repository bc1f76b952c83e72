"""Exception hierarchy for the access tunnel workflow."""

from __future__ import annotations

from typing import Optional


class AccessTunnelError(RuntimeError):
    """Base class for every failure the orchestrator reports to the operator."""


class ConfigError(AccessTunnelError):
    """Raised when required input is missing or inconsistent."""

    def __init__(self, message: str, *, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class CredentialError(AccessTunnelError):
    """Raised when SSH trust, the user password or screen sharing cannot be set."""

    def __init__(
        self,
        message: str,
        *,
        returncode: Optional[int] = None,
        stderr: str = "",
    ):
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr


class DescriptorWriteError(AccessTunnelError, OSError):
    """Raised when the tunnel descriptor cannot be written."""


class LaunchError(AccessTunnelError):
    """Raised when the tunnel binary cannot be installed or spawned."""


class DiscoveryError(AccessTunnelError):
    """Raised when the tunnel's control API never reports the expected endpoints."""

    def __init__(
        self,
        message: str,
        *,
        attempts: int = 0,
        last_error: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.attempts = attempts
        self.last_error = last_error


__all__ = [
    "AccessTunnelError",
    "ConfigError",
    "CredentialError",
    "DescriptorWriteError",
    "DiscoveryError",
    "LaunchError",
]
