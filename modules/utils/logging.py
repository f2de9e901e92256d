"""Logging helpers."""

from __future__ import annotations

import logging
from pathlib import Path

from config.settings import AppConfig


def setup_logging(config: AppConfig, level: int = logging.INFO) -> logging.Logger:
    """Configure the root handlers once and return the application logger."""
    log_dir = Path(config.log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[
            logging.FileHandler(log_dir / "application.log", encoding="utf-8"),
            logging.StreamHandler(),
        ],
    )
    # The SDK's HTTP client is chatty at INFO.
    logging.getLogger("httpx").setLevel(logging.WARNING)
    return logging.getLogger("ai_photo_stylist")
