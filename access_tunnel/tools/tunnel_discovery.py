"""隧道发现：轮询本地控制 API。Discover public endpoints via the tunnel's control API.

The tunnel binary needs a few seconds after spawn before its control API
answers and every endpoint is listed. :class:`TunnelDiscoveryClient` polls it
under a :class:`RetryPolicy`, checks the reported names against the
descriptor and hands back :class:`DiscoveredTunnel` entries, which
:func:`render_access_instruction` turns into something an operator can paste.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable, Collection, Iterator, List, Optional
from urllib.parse import urlsplit

import requests

from access_tunnel.config.defaults import (
    CONTROL_API_URL,
    DISCOVERY_MAX_ATTEMPTS,
    DISCOVERY_REQUEST_TIMEOUT_SECONDS,
    DISCOVERY_RETRY_DELAY_SECONDS,
)
from access_tunnel.errors import DiscoveryError
from access_tunnel.logging_utils import get_logger
from access_tunnel.tools.tunnel_config import SSH_ENDPOINT, VNC_ENDPOINT

LOGGER = get_logger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    """Fixed attempt count with a constant delay between attempts."""

    max_attempts: int = DISCOVERY_MAX_ATTEMPTS
    delay_seconds: float = DISCOVERY_RETRY_DELAY_SECONDS
    sleep: Callable[[float], None] = time.sleep

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.delay_seconds < 0:
            raise ValueError("delay_seconds must not be negative")

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after failed ``attempt`` (1-based)."""

        return self.delay_seconds

    def delays(self) -> Iterator[float]:
        for attempt in range(1, self.max_attempts):
            yield self.delay_for(attempt)


@dataclass(frozen=True)
class DiscoveredTunnel:
    name: str
    public_url: str

    @property
    def host(self) -> str:
        host = urlsplit(self.public_url).hostname
        if not host:
            raise DiscoveryError(f"Tunnel {self.name!r} reported a public URL without host: {self.public_url}")
        return host

    @property
    def port(self) -> int:
        try:
            port = urlsplit(self.public_url).port
        except ValueError as exc:
            raise DiscoveryError(f"Tunnel {self.name!r} reported an invalid port: {self.public_url}") from exc
        if port is None:
            raise DiscoveryError(f"Tunnel {self.name!r} reported a public URL without port: {self.public_url}")
        return port


@dataclass(frozen=True)
class AccessInstruction:
    """How an operator reaches one exposed service."""

    name: str
    host: str
    port: int
    command: str
    hint: str

    def render(self) -> str:
        return f"{self.command}\n  {self.hint}"


def render_access_instruction(tunnel: DiscoveredTunnel, *, user: str) -> AccessInstruction:
    host, port = tunnel.host, tunnel.port
    if tunnel.name == SSH_ENDPOINT:
        return AccessInstruction(
            name=tunnel.name,
            host=host,
            port=port,
            command=f"ssh {user}@{host} -p {port}",
            hint="Load the matching private key into your SSH agent first: ssh-add <private key path>",
        )
    if tunnel.name == VNC_ENDPOINT:
        return AccessInstruction(
            name=tunnel.name,
            host=host,
            port=port,
            command=f"open vnc://{user}@{host}:{port}",
            hint="Log in with the desktop password configured for this run.",
        )
    raise DiscoveryError(f"Unknown tunnel name: {tunnel.name!r}")


def parse_tunnels(payload: Any) -> List[DiscoveredTunnel]:
    """Decode ``{"tunnels": [{"name": ..., "public_url": ...}, ...]}``."""

    if not isinstance(payload, dict) or not isinstance(payload.get("tunnels"), list):
        raise DiscoveryError(f"Unexpected control API response: {payload!r}")

    tunnels: List[DiscoveredTunnel] = []
    for entry in payload["tunnels"]:
        if not isinstance(entry, dict):
            raise DiscoveryError(f"Unexpected tunnel entry: {entry!r}")
        name = entry.get("name")
        public_url = entry.get("public_url")
        if not isinstance(name, str) or not isinstance(public_url, str) or not name or not public_url:
            raise DiscoveryError(f"Tunnel entry without name or public_url: {entry!r}")
        tunnels.append(DiscoveredTunnel(name=name, public_url=public_url))
    return tunnels


class TunnelDiscoveryClient:
    def __init__(
        self,
        expected_names: Collection[str],
        *,
        api_url: str = CONTROL_API_URL,
        policy: Optional[RetryPolicy] = None,
        timeout: float = DISCOVERY_REQUEST_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
        debug: bool = False,
    ):
        if not expected_names:
            raise ValueError("expected_names must not be empty")
        self.expected_names = frozenset(expected_names)
        self.api_url = api_url
        self.policy = policy or RetryPolicy()
        self.timeout = timeout
        self.session = session or requests.Session()
        self.debug = debug

    def fetch_tunnels(self) -> List[DiscoveredTunnel]:
        """One GET against the control API; transport errors propagate as ``requests`` exceptions."""

        response = self.session.get(self.api_url, timeout=self.timeout)
        response.raise_for_status()
        return parse_tunnels(response.json())

    def _check_names(self, tunnels: List[DiscoveredTunnel]) -> None:
        for tunnel in tunnels:
            if tunnel.name not in self.expected_names:
                raise DiscoveryError(
                    f"Control API reported undeclared tunnel {tunnel.name!r}; "
                    f"expected one of {sorted(self.expected_names)}"
                )

    def discover(self) -> List[DiscoveredTunnel]:
        """Poll until every declared endpoint is live, or raise :class:`DiscoveryError`."""

        delays = self.policy.delays()
        last_error: Optional[BaseException] = None
        missing: frozenset[str] = self.expected_names

        for attempt in range(1, self.policy.max_attempts + 1):
            try:
                tunnels = self.fetch_tunnels()
            except requests.RequestException as exc:
                last_error = exc
                reason = f"control API unreachable: {exc}"
            else:
                self._check_names(tunnels)
                missing = self.expected_names - {tunnel.name for tunnel in tunnels}
                if not missing:
                    LOGGER.info(
                        "Tunnels discovered",
                        extra={"attempt": attempt, "tunnels": [tunnel.name for tunnel in tunnels]},
                    )
                    return sorted(tunnels, key=lambda tunnel: tunnel.name)
                last_error = None
                reason = f"waiting for endpoints {sorted(missing)}"

            delay = next(delays, None)
            if delay is None:
                break
            if self.debug:
                LOGGER.debug(
                    "Discovery attempt %d/%d failed (%s); retrying in %.0fs",
                    attempt,
                    self.policy.max_attempts,
                    reason,
                    delay,
                )
            self.policy.sleep(delay)

        attempts = self.policy.max_attempts
        if last_error is not None:
            raise DiscoveryError(
                f"Tunnel control API at {self.api_url} not reachable after {attempts} attempts: {last_error}",
                attempts=attempts,
                last_error=last_error,
            ) from last_error
        raise DiscoveryError(
            f"Tunnel endpoints {sorted(missing)} not reported after {attempts} attempts",
            attempts=attempts,
        )


__all__ = [
    "AccessInstruction",
    "DiscoveredTunnel",
    "RetryPolicy",
    "TunnelDiscoveryClient",
    "parse_tunnels",
    "render_access_instruction",
]
