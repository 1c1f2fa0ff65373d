"""Logging configuration for the nfsdstat command.

レポートは stdout に出すので、ログは stderr に分ける。
"""

from __future__ import annotations

import logging
import sys


def setup_logging(level: str = "WARNING") -> None:
    """ルートロガーを設定する。

    Args:
        level: DEBUG / INFO / WARNING / ERROR (不明な値は WARNING)

    Log Format:
        YYYY-MM-DD HH:MM:SS [LEVEL] Message
    """
    log_level = getattr(logging, level.upper(), logging.WARNING)
    if not isinstance(log_level, int):
        log_level = logging.WARNING

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )
