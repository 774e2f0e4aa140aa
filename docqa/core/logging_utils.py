"""Logging setup shared by the API and the scripts."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional


def setup_logging(level_name: str = "INFO", log_file: Optional[str] = None) -> None:
    """Configure console (and optionally file) logging once per process."""
    root_logger = logging.getLogger()
    if root_logger.handlers:
        return

    level = getattr(logging, level_name.upper(), logging.INFO)
    formatter = logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    root_logger.addHandler(stream_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    root_logger.setLevel(level)
