"""Gemini API backend for receipt extraction."""

from __future__ import annotations

from ..errors import ConfigurationError, ExtractionError
from ..models import ReceiptRecord
from . import (
    EXTRACTION_PROMPT,
    RECEIPT_SCHEMA,
    ExtractionBackend,
    decode_image,
    parse_response,
)


class GeminiExtractionBackend(ExtractionBackend):
    """Extract receipts with Gemini's schema-constrained JSON output."""

    def __init__(self, api_key: str = "", model: str = "gemini-2.0-flash") -> None:
        self._api_key = api_key
        self._model = model

    async def analyze(self, image_b64: str) -> ReceiptRecord:
        if not self._api_key:
            raise ConfigurationError(
                "Gemini API key is not set. "
                "Check the config file or the GEMINI_API_KEY environment variable."
            )

        try:
            import google.generativeai as genai
        except ImportError:
            raise ImportError(
                "google-generativeai SDK is required: pip install google-generativeai"
            ) from None

        image = decode_image(image_b64)

        genai.configure(api_key=self._api_key)
        model = genai.GenerativeModel(
            self._model,
            generation_config={
                "response_mime_type": "application/json",
                "response_schema": RECEIPT_SCHEMA,
            },
        )

        parts: list = [
            {"mime_type": "image/jpeg", "data": image},
            EXTRACTION_PROMPT,
        ]

        try:
            response = await model.generate_content_async(parts)
            # .text raises ValueError when the candidate was blocked or empty
            text = response.text
        except Exception as e:
            raise ExtractionError(f"Gemini request failed: {e}") from e

        return parse_response(text)
