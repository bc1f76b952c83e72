"""测试工具。Test utilities."""

from __future__ import annotations

from typing import Any
from unittest.mock import MagicMock

SAMPLE_PUBLIC_KEY = (
    "ssh-ed25519 AAAAC3NzaC1lZDI1NTE5AAAAIHh4eHh4eHh4eHh4eHh4eHh4eHh4eHh4eHh4eHh4eHh4 ops@example"
)
SAMPLE_FINGERPRINT = "SHA256:lA19YOwnA8sKEBzmWH//YfBfLIamgNX1CzTbbjRJ13M"


def make_response(payload: Any) -> MagicMock:
    """构造控制 API 响应。Build a fake control API response.

    Args:
        payload: ``response.json()`` 的返回值

    Returns:
        模拟的 ``requests.Response``
    """
    response = MagicMock()
    response.json.return_value = payload
    response.raise_for_status.return_value = None
    return response


def make_session(*responses: Any) -> MagicMock:
    """按顺序返回响应或抛出异常的 session。Session returning/raising ``responses`` in order."""
    session = MagicMock()
    session.get.side_effect = list(responses)
    return session


def tunnels_payload(**urls: str) -> dict[str, Any]:
    """构造 ``/api/tunnels`` 响应体。Build an ``/api/tunnels`` body from ``name=url`` pairs."""
    return {"tunnels": [{"name": name, "public_url": url} for name, url in urls.items()]}
