"""Utility helpers for turning uploads into transport-ready images and back."""

from __future__ import annotations

import asyncio
import base64
import io
import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from PIL import Image, UnidentifiedImageError

from modules.services.errors import CodecError

ACCEPTED_MEDIA_TYPES = ("image/png", "image/jpeg", "image/webp")
FALLBACK_MEDIA_TYPE = "application/octet-stream"
MAX_UPLOAD_BYTES = 10 * 1024 * 1024

PathLike = Union[str, Path]


@dataclass(frozen=True, slots=True)
class EncodedImage:
    """Binary image payload tagged with its media type."""

    payload: bytes
    media_type: str

    @property
    def extension(self) -> str:
        """File extension derived from the media type subtype."""
        _, _, subtype = self.media_type.partition("/")
        return subtype or "png"

    def to_base64(self) -> str:
        return base64.b64encode(self.payload).decode("ascii")

    def to_data_url(self) -> str:
        return f"data:{self.media_type};base64,{self.to_base64()}"

    def __repr__(self) -> str:
        return f"EncodedImage(media_type={self.media_type!r}, size={len(self.payload)})"


def _sniff_media_type(payload: bytes) -> Optional[str]:
    try:
        with Image.open(io.BytesIO(payload)) as image:
            fmt = image.format
    except (UnidentifiedImageError, OSError):
        return None
    if not fmt:
        return None
    return Image.MIME.get(fmt)


def guess_media_type(path: PathLike, payload: bytes) -> str:
    """Pick a media type from the file name, then the bytes themselves."""
    guessed, _ = mimetypes.guess_type(str(path))
    if guessed and guessed.startswith("image/"):
        return guessed
    return _sniff_media_type(payload) or FALLBACK_MEDIA_TYPE


def _read_file(path: Path) -> EncodedImage:
    try:
        size = path.stat().st_size
        if size > MAX_UPLOAD_BYTES:
            raise CodecError(f"Image file is larger than 10MB: {path.name}")
        payload = path.read_bytes()
    except OSError as exc:
        raise CodecError(f"Could not read image file: {path.name}") from exc
    media_type = guess_media_type(path, payload)
    if media_type not in ACCEPTED_MEDIA_TYPES:
        raise CodecError(f"Unsupported image type for {path.name}; use PNG, JPG or WEBP.")
    return EncodedImage(payload=payload, media_type=media_type)


async def encode_file(path: PathLike) -> EncodedImage:
    """Read an uploaded file off the event loop and wrap it as an EncodedImage."""
    return await asyncio.to_thread(_read_file, Path(path))


def encode_pil(image: Image.Image, fmt: str = "PNG") -> EncodedImage:
    """Serialize an in-memory Pillow image."""
    buffer = io.BytesIO()
    image.save(buffer, format=fmt)
    media_type = Image.MIME.get(fmt.upper(), f"image/{fmt.lower()}")
    return EncodedImage(payload=buffer.getvalue(), media_type=media_type)


def decode_to_pil(encoded: EncodedImage) -> Image.Image:
    """Decode an EncodedImage for display."""
    try:
        image = Image.open(io.BytesIO(encoded.payload))
        image.load()
    except (UnidentifiedImageError, OSError) as exc:
        raise CodecError("Generated image could not be decoded.") from exc
    return image
