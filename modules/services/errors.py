"""Error types surfaced to the user interface."""

from __future__ import annotations


class StylistError(Exception):
    """Base class for failures that end a request with a user-facing message."""

    default_message = "An unknown error occurred."

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self)


class ValidationError(StylistError):
    """Required inputs are missing; raised before any remote call."""


class GenerationError(StylistError):
    """The image model call failed or returned no usable image."""

    default_message = "Image generation failed."


class CodecError(StylistError):
    """An uploaded file could not be read or encoded."""

    default_message = "Could not read image file."
