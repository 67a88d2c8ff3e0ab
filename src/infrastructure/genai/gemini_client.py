from __future__ import annotations

import base64
import logging
import os
from typing import Any

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from src.domain.entities.image_asset import ImageAsset
from src.domain.errors import GenerationTimeoutError, NoImageReturnedError
from src.domain.services.prompt_composer import EditRequest, ImagePart, RequestPart

logger = logging.getLogger(__name__)

DEFAULT_MODEL_NAME = "gemini-2.5-flash-image"
DEFAULT_TIMEOUT_SECONDS = 120.0


class GeminiImageClient:
    """Submits edit requests to a Gemini image model and returns the single image it produces.

    When GEMINI_DISABLED=1, no request is made and the primary input image is
    returned unchanged.
    """

    def __init__(self, client: Any | None = None) -> None:
        self.disabled = os.getenv("GEMINI_DISABLED", "0") == "1"
        self.model = os.getenv("GEMINI_IMAGE_MODEL", DEFAULT_MODEL_NAME)
        self.timeout_seconds = float(os.getenv("GEMINI_TIMEOUT_SECONDS", str(DEFAULT_TIMEOUT_SECONDS)))
        self.api_key = os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY")
        self._client = client
        if self._client is None and not self.disabled and self.api_key:
            self._client = genai.Client(
                api_key=self.api_key,
                http_options=types.HttpOptions(timeout=int(self.timeout_seconds * 1000)),
            )

    @property
    def mode(self) -> str:
        if self._client is not None:
            return "gemini"
        return "echo" if self.disabled else "unconfigured"

    def generate(self, request: EditRequest) -> ImageAsset:
        if self._client is None:
            if self.disabled:
                return self._echo(request)
            raise RuntimeError("GEMINI_API_KEY is not set")

        logger.info(
            f"Sending {len(request.image_parts)} image(s) and prompt to {self.model}"
        )
        try:
            response = self._client.models.generate_content(
                model=self.model,
                contents=types.Content(role="user", parts=[_to_part(p) for p in request.parts]),
                config=types.GenerateContentConfig(response_modalities=["IMAGE"]),
            )
        except httpx.TimeoutException as exc:
            raise GenerationTimeoutError(
                f"The AI model did not respond within {self.timeout_seconds:g} seconds."
            ) from exc
        except (genai_errors.APIError, httpx.HTTPError) as exc:
            raise RuntimeError(f"Model request failed: {exc}") from exc

        logger.info("Received response from model")
        return extract_image(response)

    @staticmethod
    def _echo(request: EditRequest) -> ImageAsset:
        primary = request.image_parts[0]
        logger.debug("Gemini disabled, echoing primary image")
        return ImageAsset(data=primary.data, mime_type=primary.mime_type)


def _to_part(part: RequestPart) -> types.Part:
    if isinstance(part, ImagePart):
        return types.Part.from_bytes(data=part.data, mime_type=part.mime_type)
    return types.Part.from_text(text=part.text)


def extract_image(response: Any) -> ImageAsset:
    """Return the first inline image carried by any candidate of `response`."""
    for candidate in getattr(response, "candidates", None) or []:
        content = getattr(candidate, "content", None)
        for part in getattr(content, "parts", None) or []:
            inline = getattr(part, "inline_data", None)
            if inline is None or not inline.data:
                continue
            data = inline.data
            if isinstance(data, str):
                data = base64.b64decode(data)
            mime_type = inline.mime_type or "image/png"
            logger.info(f"Received image data ({mime_type}), length: {len(data)}")
            return ImageAsset(data=data, mime_type=mime_type)

    logger.error("Model response did not contain an image part")
    raise NoImageReturnedError("The AI model did not return an image. Please try again.")
