"""Module entry point so the tool can be executed with ``python -m access_tunnel``."""

from __future__ import annotations

import sys

from .orchestrator import main

if __name__ == "__main__":  # pragma: no cover - module execution hook
    sys.exit(main())
