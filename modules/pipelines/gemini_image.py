"""Scene generation service backed by the Gemini image model."""

from __future__ import annotations

import base64
import logging
from typing import Any, Optional

from google import genai
from google.genai import types

from config.settings import AppConfig
from modules.utils.errors import ConfigurationError, EmptyResponseError, UpstreamError
from modules.utils.image_utils import to_data_url

logger = logging.getLogger(__name__)

MISSING_KEY_MESSAGE = "API Key is missing."
NO_IMAGE_MESSAGE = "No image data found in the response. Please try again."
FALLBACK_FAILURE_MESSAGE = "Failed to generate image."

BASE_INSTRUCTIONS = """Generate a high-quality image based on this prompt: "{prompt}".

CRITICAL VISUAL REQUIREMENTS:
1. NO WATERMARKS: The image must be completely free of text, logos, signatures, or watermarks.
2. High Fidelity: Photorealistic or highly detailed artistic style as requested.
3. Lighting: Cinematic and atmospheric lighting."""

REFERENCE_INSTRUCTIONS = """

CHARACTER REFERENCE INSTRUCTION:
The attached image is a STRICT REFERENCE for the character.
- You MUST generate the EXACT SAME character as seen in the reference image.
- Keep the same facial features, hair style, hair color, and body build.
- Place this exact character into the new scene described in the prompt: "{prompt}".
- Do not change the character's identity."""


def build_instructions(prompt: str, with_reference: bool = False) -> str:
    """Return the instruction text sent alongside the user's prompt."""
    text = BASE_INSTRUCTIONS.format(prompt=prompt)
    if with_reference:
        text += REFERENCE_INSTRUCTIONS.format(prompt=prompt)
    return text


class GeminiImageService:
    """Facade around a single Gemini image generation call."""

    def __init__(self, config: AppConfig) -> None:
        self.config = config
        self._client: Optional[genai.Client] = None

    def load_client(self) -> genai.Client:
        """Lazy-create the Gemini client from the configured credential."""
        if not self.config.api_key:
            raise ConfigurationError(MISSING_KEY_MESSAGE)
        if self._client is None:
            self._client = genai.Client(api_key=self.config.api_key)
        return self._client

    def build_contents(
        self,
        prompt: str,
        reference_image_base64: Optional[str] = None,
        reference_mime_type: str = "image/png",
    ) -> list[types.Part]:
        """Assemble the ordered content parts for a request."""
        if not reference_image_base64:
            return [types.Part(text=build_instructions(prompt))]

        image_part = types.Part.from_bytes(
            data=base64.b64decode(reference_image_base64),
            mime_type=reference_mime_type or "image/png",
        )
        return [image_part, types.Part(text=build_instructions(prompt, with_reference=True))]

    def build_request_config(self) -> types.GenerateContentConfig:
        return types.GenerateContentConfig(
            image_config=types.ImageConfig(aspect_ratio=self.config.aspect_ratio),
        )

    def generate(
        self,
        prompt: str,
        reference_image_base64: Optional[str] = None,
        reference_mime_type: str = "image/png",
    ) -> str:
        """Generate one image and return it as a PNG data URL."""
        client = self.load_client()

        logger.info(
            "Requesting image from %s (reference=%s)",
            self.config.model_name,
            bool(reference_image_base64),
        )
        try:
            contents = self.build_contents(prompt, reference_image_base64, reference_mime_type)
            response = client.models.generate_content(
                model=self.config.model_name,
                contents=contents,
                config=self.build_request_config(),
            )
        except Exception as exc:  # noqa: BLE001
            logger.error("Gemini image generation error: %s", exc)
            raise UpstreamError(str(exc) or FALLBACK_FAILURE_MESSAGE) from exc

        payload = self.extract_image_payload(response)
        if payload is None:
            logger.warning("Gemini response carried no image data")
            raise EmptyResponseError(NO_IMAGE_MESSAGE)
        return to_data_url(payload, "image/png")

    @staticmethod
    def extract_image_payload(response: Any) -> Optional[str]:
        """Return the base64 payload of the first image part of the first candidate."""
        candidates = getattr(response, "candidates", None) or []
        if not candidates:
            return None

        content = getattr(candidates[0], "content", None)
        for part in getattr(content, "parts", None) or []:
            inline_data = getattr(part, "inline_data", None)
            data = getattr(inline_data, "data", None) if inline_data is not None else None
            if not data:
                continue
            if isinstance(data, bytes):
                return base64.b64encode(data).decode("ascii")
            return str(data)
        return None
