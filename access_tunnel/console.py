"""终端输出辅助函数。Coloured operator-facing console output."""

from __future__ import annotations

import sys

BLUE = "\033[34m"
GREEN = "\033[32m"
RED = "\033[31m"
YELLOW = "\033[33m"
RESET = "\033[0m"


def _colorize(message: str, color: str) -> str:
    """用 ANSI 颜色编码包装文本。Return ``message`` wrapped in ANSI color codes."""

    return f"{color}{message}{RESET}"


def write(message: str, *, color: str | None = None, stream=None) -> None:
    """打印信息（可选颜色）。Print ``message``, optionally colorized, to ``stream``."""

    target = sys.stdout if stream is None else stream
    text = _colorize(message, color) if color else message
    print(text, file=target, flush=True)


def info(message: str) -> None:
    write(message, color=BLUE)


def success(message: str) -> None:
    write(message, color=GREEN)


def warning(message: str) -> None:
    write(message, color=YELLOW)


def error(message: str) -> None:
    """以红色输出错误信息到标准错误。Print an error message in red to stderr."""

    write(message, color=RED, stream=sys.stderr)


def section(title: str) -> None:
    """打印分隔线用于标记流程步骤。Print a visual separator for a workflow step."""

    divider = "=" * 24
    info(divider)
    info(title)
