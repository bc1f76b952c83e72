"""pytest 配置和共享 fixtures。pytest configuration and shared fixtures."""

from __future__ import annotations

import logging
import subprocess
import sys
import tempfile
from pathlib import Path
from typing import Generator
from unittest.mock import MagicMock

import pytest

# 添加项目根目录到路径，以便导入 access_tunnel 包
ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from access_tunnel.config.env_config import AccessConfig  # noqa: E402
from tests.helpers import SAMPLE_PUBLIC_KEY  # noqa: E402


@pytest.fixture(autouse=True)
def reset_logging() -> Generator[None, None, None]:
    """每个测试后移除日志 handler。Drop handlers attached by setup_logging between tests."""
    yield
    logger = logging.getLogger("access_tunnel")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """临时目录 fixture。Temporary directory fixture."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def ssh_only_config() -> AccessConfig:
    """仅 SSH 的配置。Config with only an SSH key."""
    return AccessConfig(
        ssh_public_key=SAMPLE_PUBLIC_KEY,
        desktop_password="",
        tunnel_auth_token="tok123",
        debug=False,
    )


@pytest.fixture
def full_config() -> AccessConfig:
    """SSH 与桌面密码均配置。Config with both secrets."""
    return AccessConfig(
        ssh_public_key=SAMPLE_PUBLIC_KEY,
        desktop_password="s3cret-pw",
        tunnel_auth_token="tok123",
        debug=False,
    )


@pytest.fixture
def ok_runner() -> MagicMock:
    """总是成功的命令执行器。Runner whose commands always succeed."""
    return MagicMock(return_value=subprocess.CompletedProcess(args=[], returncode=0, stdout="", stderr=""))

