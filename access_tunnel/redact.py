"""Mask secrets in console output, logged commands and captured stderr.

Privileged commands carry the desktop password on their argument list, so
anything echoed to the operator passes through :func:`printable_command` or
:func:`redact_text` first.
"""

from __future__ import annotations

import re
import shlex
from typing import Iterable, Sequence

MASK = "***"

TOKEN_REGEX = re.compile(r"(?i)\b(bearer|token|authtoken)(\s*[:=]\s*|\s+)([A-Za-z0-9._\-]+)")


def mask_secret(value: str) -> str:
    """Return ``***`` for a non-empty secret and an empty string otherwise."""

    return MASK if value else ""


def _known_secrets(secrets: Iterable[str]) -> list[str]:
    # Longest first so a secret that contains another is masked whole.
    return sorted({secret for secret in secrets if secret}, key=len, reverse=True)


def redact_text(text: str, secrets: Iterable[str] = ()) -> str:
    result = text
    for secret in _known_secrets(secrets):
        result = result.replace(secret, MASK)

    def token_replacer(match: re.Match[str]) -> str:
        return f"{match.group(1)}{match.group(2)}{MASK}"

    return TOKEN_REGEX.sub(token_replacer, result)


def printable_command(args: Sequence[str], secrets: Iterable[str] = ()) -> str:
    """Render ``args`` as a shell command line with every secret argument masked."""

    hidden = set(_known_secrets(secrets))
    return " ".join(MASK if arg in hidden else shlex.quote(arg) for arg in args)


__all__ = ["MASK", "mask_secret", "printable_command", "redact_text"]
