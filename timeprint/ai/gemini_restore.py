"""Photo restoration through Gemini image models.

One call restores one photo. The request carries the source image plus a fixed
per-mode instruction; the response is reduced to the first image part or to a
typed failure from :mod:`timeprint.ai.errors`.
"""

import base64
import logging
from pathlib import Path
from typing import Any, Callable, Optional, Union

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from timeprint.ai.errors import (
    AuthError,
    ContentBlockedError,
    EmptyResponseError,
    ModelRefusedTextError,
    NetworkError,
    QuotaError,
    RestorationError,
    UnknownError,
)
from timeprint.photos.item import RestoredImage
from timeprint.preprocessing.loader import split_data_url
from timeprint.settings import RestorationMode
from timeprint.utils.secrets import load_secrets

logger = logging.getLogger(__name__)

STANDARD_MODEL = "gemini-2.5-flash-image"
ULTRA_MODEL = "gemini-3-pro-image-preview"

ULTRA_IMAGE_SIZE = "2K"
ULTRA_ASPECT_RATIO = "1:1"

STANDARD_PROMPT = (
    "Please perform a professional restoration on this old photo.\n"
    "1. Boundary Detection: Detect the physical photo boundaries and crop out any "
    "surrounding background.\n"
    "2. Damage Repair: Repair any scratches, dust, or tears.\n"
    "3. Color Fidelity: Preserve the original color palette and background colors "
    "as much as possible.\n"
    "4. Enhancement: Improve the overall clarity and vibrancy.\n"
    "Return ONLY the final restored and cropped image."
)

ULTRA_PROMPT = (
    "Please perform a professional, Ultra-High-Definition (UHD) restoration on this old photo.\n"
    "Key Requirements:\n"
    "1. Super Resolution: Upscale the image to 2K resolution while maintaining perfect "
    "sharpness. Use AI to reconstruct missing details in faces, hair, and textures.\n"
    "2. Clarity & Sharpness: Eliminate all blurriness. The final image should look like "
    "a modern high-resolution digital photograph.\n"
    "3. Background Preservation: Detect the physical photo boundaries and crop out any "
    "surrounding background (like a desk or floor).\n"
    "4. Color Fidelity: Strictly maintain the original color palette. If the background "
    "is blue, it MUST remain blue. Do not shift hues.\n"
    "5. Damage Repair: Seamlessly remove all scratches, dust, folds, and water stains.\n"
    "Return ONLY the final processed image data."
)

_SAFETY_CATEGORIES = (
    types.HarmCategory.HARM_CATEGORY_HARASSMENT,
    types.HarmCategory.HARM_CATEGORY_HATE_SPEECH,
    types.HarmCategory.HARM_CATEGORY_SEXUALLY_EXPLICIT,
    types.HarmCategory.HARM_CATEGORY_DANGEROUS_CONTENT,
)

# Finish reasons that mean the remote side refused on policy grounds
_BLOCKED_FINISH_REASONS = {
    "SAFETY",
    "IMAGE_SAFETY",
    "PROHIBITED_CONTENT",
    "IMAGE_PROHIBITED_CONTENT",
    "BLOCKLIST",
    "SPII",
    "RECITATION",
}


def _model_for(mode: RestorationMode) -> str:
    return ULTRA_MODEL if mode is RestorationMode.ULTRA else STANDARD_MODEL


def _prompt_for(mode: RestorationMode) -> str:
    return ULTRA_PROMPT if mode is RestorationMode.ULTRA else STANDARD_PROMPT


def _build_config(mode: RestorationMode) -> types.GenerateContentConfig:
    """Least restrictive safety settings; ultra adds a fixed 2K square output."""
    safety_settings = [
        types.SafetySetting(category=category, threshold=types.HarmBlockThreshold.BLOCK_NONE)
        for category in _SAFETY_CATEGORIES
    ]
    if mode is RestorationMode.ULTRA:
        return types.GenerateContentConfig(
            safety_settings=safety_settings,
            image_config=types.ImageConfig(
                aspect_ratio=ULTRA_ASPECT_RATIO,
                image_size=ULTRA_IMAGE_SIZE,
            ),
        )
    return types.GenerateContentConfig(safety_settings=safety_settings)


def _enum_name(value: Any) -> Optional[str]:
    if value is None:
        return None
    return getattr(value, "name", None) or str(value)


def _decode_image(image: Union[bytes, str]) -> bytes:
    """Accept raw bytes, a bare base64 string, or a ``data:`` URL."""
    if isinstance(image, (bytes, bytearray)):
        return bytes(image)
    _, b64 = split_data_url(image)
    return base64.b64decode(b64)


def _classify_transport_error(error: Exception) -> RestorationError:
    """Map an SDK or transport exception onto the restoration taxonomy."""
    message = str(error) or error.__class__.__name__
    lowered = message.lower()
    code = getattr(error, "code", None) if isinstance(error, genai_errors.APIError) else None

    if isinstance(error, (httpx.TransportError, ConnectionError)) or "fetch failed" in lowered:
        return NetworkError(f"Network connection failed: {message}")
    if "Safety" in message or "blocked" in lowered:
        return ContentBlockedError(f"Photo could not be processed due to safety policy: {message}")
    if code == 429 or "resource_exhausted" in lowered or "quota" in lowered:
        return QuotaError(message)
    if code in (401, 403) or "requested entity was not found" in lowered or "api key not valid" in lowered:
        return AuthError(message)
    return UnknownError(message)


class GeminiRestorationClient:
    """Restores one photo per call against the Gemini API.

    The API key is resolved on every call, so a key selected after the client
    was built is picked up. Precedence: ``api_key`` argument, then the user's
    ``API_KEY``, then the platform ``GEMINI_API_KEY``.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        secrets_path: Optional[Path] = None,
        client_factory: Optional[Callable[[str], Any]] = None,
    ) -> None:
        self.api_key = api_key
        self.secrets_path = secrets_path
        self._client_factory = client_factory or (lambda key: genai.Client(api_key=key))

    def resolve_api_key(self) -> Optional[str]:
        if self.api_key:
            return self.api_key
        return load_secrets(self.secrets_path).gemini_api_key

    async def restore(
        self,
        image: Union[bytes, str],
        mime_type: str,
        mode: RestorationMode = RestorationMode.STANDARD,
    ) -> RestoredImage:
        """Restore a single photo.

        Args:
            image: Source photo as bytes, base64, or a data URL.
            mime_type: Mime type of the source photo.
            mode: Standard restoration or 2K ultra restoration.

        Returns:
            The first image part of the first candidate.

        Raises:
            AuthError: No API key is configured (raised before any network call),
                or the key was rejected.
            QuotaError, NetworkError, ContentBlockedError, EmptyResponseError,
            ModelRefusedTextError, UnknownError: See :mod:`timeprint.ai.errors`.
        """
        api_key = self.resolve_api_key()
        if not api_key:
            raise AuthError(
                "API key not found. Please set GEMINI_API_KEY or select a key."
            )

        mode = RestorationMode(mode)
        model = _model_for(mode)
        logger.info(f"Starting {mode.value} restoration using model: {model}")

        try:
            client = self._client_factory(api_key)
            response = await client.aio.models.generate_content(
                model=model,
                contents=[
                    types.Part.from_bytes(data=_decode_image(image), mime_type=mime_type),
                    _prompt_for(mode),
                ],
                config=_build_config(mode),
            )
            logger.debug(f"Response received for {mode.value} restoration")
            return self._extract_image(response)

        except RestorationError:
            raise
        except Exception as e:
            logger.error(f"{mode.value} restoration failed: {e}")
            raise _classify_transport_error(e) from e

    @staticmethod
    def _extract_image(response: Any) -> RestoredImage:
        candidates = getattr(response, "candidates", None) or []
        if not candidates:
            feedback = getattr(response, "prompt_feedback", None)
            block_reason = _enum_name(getattr(feedback, "block_reason", None))
            detail = f" (block reason: {block_reason})" if block_reason else ""
            raise EmptyResponseError(
                "Gemini returned no candidates; the request may have been "
                f"filtered or refused{detail}."
            )

        candidate = candidates[0]
        finish_reason = _enum_name(getattr(candidate, "finish_reason", None))
        if finish_reason and finish_reason != "STOP":
            message = f"Generation stopped, reason: {finish_reason}. Please try another photo."
            if finish_reason in _BLOCKED_FINISH_REASONS:
                raise ContentBlockedError(message, finish_reason=finish_reason)
            raise UnknownError(message, finish_reason=finish_reason)

        content = getattr(candidate, "content", None)
        parts = getattr(content, "parts", None) or []
        if not parts:
            raise EmptyResponseError("Gemini response contained no content parts.")

        for part in parts:
            inline = getattr(part, "inline_data", None)
            if inline is not None and getattr(inline, "data", None):
                logger.debug("Image data found in response")
                mime_type = inline.mime_type or "image/png"
                if isinstance(inline.data, str):
                    return RestoredImage.from_base64(inline.data, mime_type)
                return RestoredImage(data=inline.data, mime_type=mime_type)

        for part in parts:
            text = getattr(part, "text", None)
            if text:
                logger.warning(f"Model returned text instead of image: {text}")
                raise ModelRefusedTextError(text)

        raise UnknownError("Gemini did not return valid image data.")
