"""远程访问隧道助手。Provision temporary remote access and expose it through a tunnel.

The package grants SSH trust and screen-sharing access on the local host,
starts the tunnel binary against a generated descriptor and reports the
public endpoints it opened. :mod:`access_tunnel.orchestrator` ties the steps
together; the building blocks live under :mod:`access_tunnel.tools`.
"""

from __future__ import annotations

__version__ = "0.3.0"

__all__ = ["__version__"]
