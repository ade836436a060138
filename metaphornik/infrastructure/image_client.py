"""Gemini Image Client — image generation and editing via google-genai.

Invariants:
    - Returns (base64_data, mime_type) for the first inline image part, never partial
    - A base image, when given, is sent before the prompt text (edit mode)
    - Every SDK failure, transport failure (httpx) or image-less response surfaces
      as GatewayError

Design Decisions:
    - Separate client from ResilientAnthropicClient: Anthropic models do not emit
      images (ADR: one vendor per modality)
    - Async surface (client.aio) so image calls never block the event loop
    - No retry loop: image requests are expensive and user-initiated
"""

import base64
import logging

import httpx
from google import genai
from google.genai import errors as genai_errors

from metaphornik.core.errors import ErrorContext, GatewayError

logger = logging.getLogger(__name__)


class GeminiImageClient:
    """Thin async wrapper over genai.Client for IMAGE-modality requests."""

    def __init__(self, api_key: str, model_id: str):
        self.client = genai.Client(api_key=api_key)
        self.model_id = model_id

    async def generate(
        self,
        prompt: str,
        base_image: tuple[str, str] | None = None,
        context: ErrorContext | None = None,
    ) -> tuple[str, str]:
        """Generate a new image, or edit `base_image` = (base64_data, mime_type)."""
        contents: list = []
        if base_image is not None:
            data, mime_type = base_image
            contents.append(genai.types.Part.from_bytes(
                data=base64.b64decode(data), mime_type=mime_type,
            ))
        contents.append(prompt)

        config = genai.types.GenerateContentConfig(response_modalities=["IMAGE"])
        try:
            response = await self.client.aio.models.generate_content(
                model=self.model_id, contents=contents, config=config,
            )
        except genai_errors.APIError as e:
            logger.error(f"Gemini image error {e.code}: {e.message}")
            raise GatewayError(
                "The image model is unavailable. Please try again.",
                "image_api_error", context=context,
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"Gemini image transport error: {type(e).__name__}: {e}")
            raise GatewayError(
                "Could not reach the image model. Please try again.",
                "image_connection_error", context=context,
            ) from e

        for part in _parts(response):
            inline = getattr(part, "inline_data", None)
            if inline is not None and inline.data:
                logger.info(
                    "Gemini image success",
                    extra={"task": context.task if context else None},
                )
                return base64.b64encode(inline.data).decode("ascii"), inline.mime_type

        raise GatewayError(
            "Image generation failed to return an image.", "empty_image",
            context=context,
        )


def _parts(response) -> list:
    if not response.candidates or not response.candidates[0].content:
        return []
    return response.candidates[0].content.parts or []
