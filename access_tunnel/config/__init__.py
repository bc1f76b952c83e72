"""Centralized configuration for the access tunnel.

Constants live in :mod:`.defaults`; the environment-driven
:class:`AccessConfig` lives in :mod:`.env_config`.
"""

from .defaults import (
    AUTHORIZED_KEYS_PATH,
    CONTROL_API_URL,
    DISCOVERY_MAX_ATTEMPTS,
    DISCOVERY_REQUEST_TIMEOUT_SECONDS,
    DISCOVERY_RETRY_DELAY_SECONDS,
    IDLE_TICK_SECONDS,
    KICKSTART_PATH,
    SSH_LOCAL_PORT,
    TUNNEL_BINARY,
    TUNNEL_DESCRIPTOR_PATH,
    TUNNEL_DOWNLOAD_URL,
    TUNNEL_INSTALL_DIR,
    VNC_LOCAL_PORT,
)
from .env_config import AccessConfig, load_access_config, validate_access_config

__all__ = [
    "AUTHORIZED_KEYS_PATH",
    "CONTROL_API_URL",
    "DISCOVERY_MAX_ATTEMPTS",
    "DISCOVERY_REQUEST_TIMEOUT_SECONDS",
    "DISCOVERY_RETRY_DELAY_SECONDS",
    "IDLE_TICK_SECONDS",
    "KICKSTART_PATH",
    "SSH_LOCAL_PORT",
    "TUNNEL_BINARY",
    "TUNNEL_DESCRIPTOR_PATH",
    "TUNNEL_DOWNLOAD_URL",
    "TUNNEL_INSTALL_DIR",
    "VNC_LOCAL_PORT",
    "AccessConfig",
    "load_access_config",
    "validate_access_config",
]
