"""Configuration helpers for the AI Photo Stylist project."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)

DEFAULT_IMAGE_MODEL = "gemini-2.5-flash-image-preview"


@dataclass(slots=True)
class AppConfig:
    """Centralized application configuration."""

    output_dir: Path = Path("outputs")
    log_dir: Path = Path("logs")
    gemini_api_key: Optional[str] = None
    image_model: str = DEFAULT_IMAGE_MODEL
    server_name: Optional[str] = None
    server_port: Optional[int] = None
    share: bool = False
    max_downloads: int = 50
    metadata: dict[str, Any] = field(default_factory=dict)


def _load_env_file(path: Path) -> None:
    """Populate environment variables from a simple KEY=VALUE .env file."""
    if not path.exists():
        return

    for line in path.read_text(encoding="utf-8").splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#") or "=" not in stripped:
            continue
        key, value = stripped.split("=", 1)
        os.environ[key.strip()] = value.strip().strip('"').strip("'")


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str) -> Optional[int]:
    raw = os.getenv(name)
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r", name, raw)
        return None


def load_config(config_path: Optional[str] = None) -> AppConfig:
    """Return an AppConfig instance with environment-aware settings."""
    env_path = Path(config_path) if config_path else Path(".env")
    _load_env_file(env_path)

    api_key = (
        os.getenv("GEMINI_API_KEY")
        or os.getenv("GOOGLE_API_KEY")
        or os.getenv("API_KEY")
    )
    image_model = os.getenv("GEMINI_IMAGE_MODEL") or DEFAULT_IMAGE_MODEL
    output_dir = Path(os.getenv("OUTPUT_DIR", "outputs")).expanduser().resolve()
    log_dir = Path(os.getenv("LOG_DIR", "logs")).expanduser().resolve()

    metadata: dict[str, Any] = {}
    temperature = os.getenv("GEMINI_TEMPERATURE")
    if temperature:
        try:
            metadata["temperature"] = float(temperature)
        except ValueError:
            logger.warning("Ignoring invalid GEMINI_TEMPERATURE=%r", temperature)

    max_downloads = _env_int("MAX_DOWNLOADS")
    return AppConfig(
        output_dir=output_dir,
        log_dir=log_dir,
        gemini_api_key=api_key,
        image_model=image_model,
        server_name=os.getenv("GRADIO_SERVER_NAME"),
        server_port=_env_int("GRADIO_SERVER_PORT"),
        share=_env_flag("GRADIO_SHARE"),
        max_downloads=max_downloads if max_downloads is not None else 50,
        metadata=metadata,
    )
