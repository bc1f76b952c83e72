"""Locate the tunnel binary, downloading it when it is not installed yet."""

from __future__ import annotations

import io
import os
import shutil
import stat
import zipfile
from pathlib import Path
from typing import Optional

import requests

from access_tunnel.config.defaults import (
    TUNNEL_BINARY,
    TUNNEL_DOWNLOAD_TIMEOUT_SECONDS,
    TUNNEL_DOWNLOAD_URL,
    TUNNEL_INSTALL_DIR,
)
from access_tunnel.errors import LaunchError
from access_tunnel.logging_utils import get_logger

LOGGER = get_logger(__name__)


def find_tunnel_binary(binary: str = TUNNEL_BINARY, install_dir: str | os.PathLike[str] = TUNNEL_INSTALL_DIR) -> Optional[str]:
    """Return the binary from ``PATH`` or ``install_dir``, or ``None``."""

    found = shutil.which(binary)
    if found:
        return found
    candidate = Path(install_dir) / binary
    if candidate.is_file() and os.access(candidate, os.X_OK):
        return str(candidate)
    return None


def download_archive(url: str, *, session: Optional[requests.Session] = None) -> bytes:
    http = session or requests.Session()
    try:
        response = http.get(url, stream=True, timeout=TUNNEL_DOWNLOAD_TIMEOUT_SECONDS)
        response.raise_for_status()
        buffer = io.BytesIO()
        for chunk in response.iter_content(chunk_size=64 * 1024):
            if chunk:
                buffer.write(chunk)
    except requests.RequestException as exc:
        raise LaunchError(f"Error while downloading url ({url}): {exc}") from exc
    return buffer.getvalue()


def extract_archive(data: bytes, dest: str | os.PathLike[str]) -> list[Path]:
    """Unpack a zip archive into ``dest`` and return the written files."""

    dest_dir = Path(dest).resolve()
    written: list[Path] = []
    try:
        dest_dir.mkdir(parents=True, exist_ok=True)
        with zipfile.ZipFile(io.BytesIO(data)) as archive:
            for member in archive.infolist():
                target = (dest_dir / member.filename).resolve()
                if target != dest_dir and dest_dir not in target.parents:
                    raise LaunchError(f"Archive member escapes install directory: {member.filename}")
                if member.is_dir():
                    target.mkdir(parents=True, exist_ok=True)
                    continue
                target.parent.mkdir(parents=True, exist_ok=True)
                with archive.open(member) as source, target.open("wb") as output:
                    shutil.copyfileobj(source, output)
                written.append(target)
    except zipfile.BadZipFile as exc:
        raise LaunchError(f"Downloaded tunnel archive is not a valid zip file: {exc}") from exc
    except OSError as exc:
        raise LaunchError(f"Error while unzipping tunnel archive to {dest_dir}: {exc}") from exc
    return written


def ensure_tunnel_binary(
    binary: str = TUNNEL_BINARY,
    *,
    install_dir: str | os.PathLike[str] = TUNNEL_INSTALL_DIR,
    download_url: str = TUNNEL_DOWNLOAD_URL,
    session: Optional[requests.Session] = None,
) -> str:
    """Return a runnable path to ``binary``, installing it from ``download_url`` if needed."""

    existing = find_tunnel_binary(binary, install_dir)
    if existing:
        LOGGER.debug("Tunnel binary already installed", extra={"path": existing})
        return existing

    LOGGER.info("Tunnel binary not found; downloading", extra={"url": download_url, "install_dir": str(install_dir)})
    data = download_archive(download_url, session=session)
    extract_archive(data, install_dir)

    target = Path(install_dir) / binary
    if not target.is_file():
        raise LaunchError(f"Archive from {download_url} did not contain {binary}")
    try:
        mode = target.stat().st_mode
        target.chmod(mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    except OSError as exc:
        raise LaunchError(f"Can't mark {target} executable: {exc}") from exc
    LOGGER.info("Tunnel binary installed", extra={"path": str(target)})
    return str(target)


__all__ = ["download_archive", "ensure_tunnel_binary", "extract_archive", "find_tunnel_binary"]
