"""File storage helpers for downloads."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List

from modules.utils.image_utils import EncodedImage

logger = logging.getLogger(__name__)

DOWNLOAD_PREFIX = "styled-product-image"


def download_filename(image: EncodedImage, version: int) -> str:
    """Version-numbered file name whose extension follows the media type."""
    return f"{DOWNLOAD_PREFIX}-v{version}.{image.extension}"


class StorageService:
    """Write generated images to disk so the browser can download them."""

    def __init__(self, output_dir: Path) -> None:
        self.output_dir = Path(output_dir)

    def save_image(self, image: EncodedImage, version: int) -> Path:
        """Persist an image and return the file path."""
        self.output_dir.mkdir(parents=True, exist_ok=True)
        path = self.output_dir / download_filename(image, version)
        path.write_bytes(image.payload)
        logger.info("Saved version %d to %s", version, path)
        return path

    def list_saved(self) -> List[Path]:
        if not self.output_dir.exists():
            return []
        files = [p for p in self.output_dir.glob(f"{DOWNLOAD_PREFIX}-v*") if p.is_file()]
        return sorted(files, key=lambda p: p.stat().st_mtime)

    def cleanup(self, max_items: int = 100) -> int:
        """Limit the number of stored downloads; return how many were removed."""
        files = self.list_saved()
        excess = files[: max(len(files) - max_items, 0)]
        for path in excess:
            path.unlink(missing_ok=True)
        if excess:
            logger.info("Removed %d old download(s) from %s", len(excess), self.output_dir)
        return len(excess)
