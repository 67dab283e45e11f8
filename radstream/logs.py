"""Logging setup shared by the web server and the CLI."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

ROOT_LOGGER = logging.getLogger("radstream")
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"


def configure_logging(log_path: Optional[Path] = None, level: int = logging.INFO) -> None:
    formatter = logging.Formatter(LOG_FORMAT)

    for handler in list(ROOT_LOGGER.handlers):
        ROOT_LOGGER.removeHandler(handler)
        handler.close()

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    ROOT_LOGGER.addHandler(stream_handler)

    if log_path is not None:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        ROOT_LOGGER.addHandler(file_handler)

    ROOT_LOGGER.setLevel(level)


def mask_secret(value: Optional[str], visible: int = 4) -> str:
    """Hide everything but the last ``visible`` characters of a secret."""

    if not value:
        return ""
    if len(value) <= visible:
        return "*" * len(value)
    return "*" * (len(value) - visible) + value[-visible:]
