"""Gemini-backed composite generation and refinement."""

from __future__ import annotations

import logging
from typing import Any, List, Optional

from google import genai
from google.genai import errors, types

from config.settings import AppConfig
from modules.pipelines.prompts import build_composite_prompt, build_refine_prompt
from modules.services.errors import GenerationError
from modules.utils.image_utils import EncodedImage

logger = logging.getLogger(__name__)

DEFAULT_OUTPUT_MEDIA_TYPE = "image/png"


class GeminiImageService:
    """Facade around the Gemini image model."""

    def __init__(self, config: AppConfig, client: Optional[Any] = None) -> None:
        self.config = config
        self._client = client

    def _get_client(self) -> Any:
        """Lazily create the SDK client so the UI can start without a key."""
        if self._client is not None:
            return self._client
        if not self.config.gemini_api_key:
            raise GenerationError("Gemini API key is not configured.")
        self._client = genai.Client(api_key=self.config.gemini_api_key)
        return self._client

    def _generation_config(self) -> types.GenerateContentConfig:
        kwargs: dict[str, Any] = {"response_modalities": ["IMAGE", "TEXT"]}
        temperature = self.config.metadata.get("temperature")
        if temperature is not None:
            kwargs["temperature"] = float(temperature)
        return types.GenerateContentConfig(**kwargs)

    @staticmethod
    def _image_part(image: EncodedImage) -> types.Part:
        return types.Part.from_bytes(data=image.payload, mime_type=image.media_type)

    async def generate_composite(
        self,
        reference_image: EncodedImage,
        product_image: EncodedImage,
        title: str,
        price: str,
        old_price: Optional[str] = None,
    ) -> EncodedImage:
        """Blend the product into the reference image's style."""
        contents: List[Any] = [
            self._image_part(reference_image),
            self._image_part(product_image),
            build_composite_prompt(title, price, old_price),
        ]
        logger.info("Requesting composite for %r from %s", title, self.config.image_model)
        return await self._generate(contents)

    async def refine(
        self,
        base_image: EncodedImage,
        instruction: str,
        auxiliary_image: Optional[EncodedImage] = None,
    ) -> EncodedImage:
        """Apply a natural-language edit to an existing image."""
        contents: List[Any] = [self._image_part(base_image)]
        if auxiliary_image is not None:
            contents.append(self._image_part(auxiliary_image))
        contents.append(build_refine_prompt(instruction, auxiliary_image is not None))
        logger.info("Requesting refinement %r from %s", instruction, self.config.image_model)
        return await self._generate(contents)

    async def _generate(self, contents: List[Any]) -> EncodedImage:
        client = self._get_client()
        try:
            response = await client.aio.models.generate_content(
                model=self.config.image_model,
                contents=contents,
                config=self._generation_config(),
            )
        except errors.APIError as exc:
            raise GenerationError(exc.message or str(exc)) from exc
        return self._extract_image(response)

    def _extract_image(self, response: Any) -> EncodedImage:
        """Return the first inline image in the response or explain why there is none."""
        texts: List[str] = []
        for candidate in getattr(response, "candidates", None) or []:
            content = getattr(candidate, "content", None)
            for part in getattr(content, "parts", None) or []:
                inline = getattr(part, "inline_data", None)
                if inline is not None and getattr(inline, "data", None):
                    return EncodedImage(
                        payload=inline.data,
                        media_type=getattr(inline, "mime_type", None) or DEFAULT_OUTPUT_MEDIA_TYPE,
                    )
                text = getattr(part, "text", None)
                if text:
                    texts.append(text.strip())

        feedback = getattr(response, "prompt_feedback", None)
        block_reason = getattr(feedback, "block_reason", None)
        if block_reason:
            raise GenerationError(f"The request was blocked ({block_reason}).")
        if texts:
            raise GenerationError(f"The model did not return an image: {' '.join(texts)}")
        raise GenerationError("The model did not return an image.")
