"""凭据配置：SSH 信任、用户密码与屏幕共享。Credential provisioning on the local host.

Two independent steps, each optional:

* :meth:`CredentialProvisioner.grant_ssh_trust` appends a public key to the
  current user's ``authorized_keys``. Repeated runs append the key again.
* :meth:`CredentialProvisioner.set_desktop_access` sets the login password
  and then turns on Remote Management with the same value as the legacy VNC
  password. The order matters because activation embeds the password.
"""

from __future__ import annotations

import base64
import getpass
import hashlib
import os
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from paramiko.pkey import PublicBlob

from access_tunnel.config.defaults import AUTHORIZED_KEYS_PATH, KICKSTART_PATH
from access_tunnel.errors import CredentialError
from access_tunnel.logging_utils import get_logger
from access_tunnel.redact import printable_command, redact_text

LOGGER = get_logger(__name__)

Runner = Callable[..., "subprocess.CompletedProcess[str]"]


@dataclass(frozen=True)
class PublicKeyInfo:
    """Parsed summary of an OpenSSH public key line."""

    key_type: str
    fingerprint: str
    comment: Optional[str] = None


def inspect_public_key(public_key: str) -> Optional[PublicKeyInfo]:
    """Return type, SHA256 fingerprint and comment, or ``None`` if unparsable."""

    try:
        blob = PublicBlob.from_string(public_key.strip())
    except (ValueError, TypeError):
        return None
    digest = base64.b64encode(hashlib.sha256(blob.key_blob).digest()).decode("ascii")
    return PublicKeyInfo(
        key_type=blob.key_type,
        fingerprint=f"SHA256:{digest.rstrip('=')}",
        comment=blob.comment,
    )


def kickstart_arguments(kickstart_path: str, password: str) -> List[str]:
    """Remote Management flags: enable control, set the legacy VNC password, grant all privileges."""

    return [
        kickstart_path,
        "-activate",
        "-configure",
        "-access",
        "-on",
        "-clientopts",
        "-setvnclegacy",
        "-vnclegacy",
        "yes",
        "-clientopts",
        "-setvncpw",
        "-vncpw",
        password,
        "-restart",
        "-agent",
        "-privs",
        "-all",
    ]


class CredentialProvisioner:
    def __init__(
        self,
        *,
        authorized_keys_path: str | os.PathLike[str] = AUTHORIZED_KEYS_PATH,
        kickstart_path: str = KICKSTART_PATH,
        user: Optional[str] = None,
        debug: bool = False,
        runner: Runner = subprocess.run,
        echo: Optional[Callable[[str], None]] = None,
    ):
        self.authorized_keys_path = Path(authorized_keys_path).expanduser()
        self.kickstart_path = kickstart_path
        self.user = user or getpass.getuser()
        self.debug = debug
        self._runner = runner
        self._echo = echo

    def grant_ssh_trust(self, public_key: str) -> Path:
        """Append ``\\n<key>\\n`` to ``authorized_keys``, creating it with mode 0600."""

        info = inspect_public_key(public_key)
        if info is None:
            LOGGER.warning(
                "SSH public key did not parse as an OpenSSH key line; appending as given",
                extra={"path": str(self.authorized_keys_path)},
            )
        else:
            LOGGER.info(
                "Trusting SSH public key %s %s",
                info.key_type,
                info.fingerprint,
                extra={"comment": info.comment, "path": str(self.authorized_keys_path)},
            )

        path = self.authorized_keys_path
        try:
            path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
            fd = os.open(path, os.O_CREAT | os.O_APPEND | os.O_WRONLY, 0o600)
        except OSError as exc:
            raise CredentialError(f"Can't open file ({path}): {exc}") from exc

        try:
            with os.fdopen(fd, "a", encoding="utf-8") as handle:
                handle.write(f"\n{public_key}\n")
        except OSError as exc:
            raise CredentialError(f"Can't write SSH public key to {path}: {exc}") from exc
        return path

    def set_desktop_access(self, password: str) -> None:
        """Set the login password, then activate screen sharing with it."""

        if not password:
            raise CredentialError("Refusing to enable remote desktop with an empty password")
        self.set_user_password(password)
        self.enable_remote_desktop(password)

    def set_user_password(self, password: str) -> None:
        self._run_privileged(
            ["sudo", "dscl", ".", "-passwd", f"/Users/{self.user}", password],
            description=f"set password for user {self.user}",
            secrets=(password,),
        )

    def enable_remote_desktop(self, password: str) -> None:
        self._run_privileged(
            ["sudo", *kickstart_arguments(self.kickstart_path, password)],
            description="enable remote desktop",
            secrets=(password,),
        )

    def _run_privileged(self, args: Sequence[str], *, description: str, secrets: Sequence[str]) -> None:
        hidden = () if self.debug else secrets
        shown = printable_command(args, hidden)
        if self._echo is not None:
            self._echo(f"$ {shown}")
        LOGGER.debug("Running privileged command", extra={"command": shown})

        try:
            proc = self._runner(list(args), check=False, capture_output=True, text=True)
        except OSError as exc:
            raise CredentialError(f"Can't {description}: {exc}") from exc

        if proc.returncode != 0:
            stderr = redact_text((proc.stderr or proc.stdout or "").strip(), secrets)
            details = stderr or f"exit status {proc.returncode}"
            raise CredentialError(
                f"Can't {description}: {details}",
                returncode=proc.returncode,
                stderr=stderr,
            )


__all__ = [
    "CredentialProvisioner",
    "PublicKeyInfo",
    "inspect_public_key",
    "kickstart_arguments",
]
