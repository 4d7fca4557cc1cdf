"""Extraction backend base class, fixed prompt/schema, and factory."""

from __future__ import annotations

import base64
import binascii
import json
import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from ..errors import ExtractionError
from ..models import CATEGORIES, ReceiptRecord

if TYPE_CHECKING:
    from ..config import AppConfig

logger = logging.getLogger(__name__)

EXTRACTION_PROMPT = (
    "Analyze this receipt image and extract details in a structured JSON "
    "format. Pay special attention to 'category'. Categorize the expense into "
    "exactly one of these: "
    + ", ".join(f"'{c}'" for c in CATEGORIES[:-1])
    + f", or '{CATEGORIES[-1]}' based on the merchant and items."
)

RECEIPT_SCHEMA: dict = {
    "type": "OBJECT",
    "properties": {
        "merchantName": {
            "type": "STRING",
            "description": "Name of the store or restaurant",
        },
        "date": {
            "type": "STRING",
            "description": "Date of the transaction (YYYY-MM-DD)",
        },
        "totalAmount": {"type": "NUMBER", "description": "The final total paid"},
        "currency": {
            "type": "STRING",
            "description": "Currency symbol or code (e.g., USD, EUR, $)",
        },
        "category": {
            "type": "STRING",
            "description": "Categorize as: " + ", ".join(CATEGORIES),
        },
        "items": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "name": {"type": "STRING"},
                    "quantity": {"type": "NUMBER"},
                    "price": {"type": "NUMBER"},
                },
                "required": ["name", "price"],
            },
        },
    },
    "required": ["merchantName", "totalAmount", "category", "items"],
}


class ExtractionBackend(ABC):
    """Abstract base for structured receipt extraction from a photo."""

    @abstractmethod
    async def analyze(self, image_b64: str) -> ReceiptRecord:
        """Extract a receipt record from a base64-encoded JPEG.

        One request, no retry. Raises ExtractionError on any failure and
        never returns a partial record.
        """
        ...


def decode_image(image_b64: str) -> bytes:
    try:
        data = base64.b64decode(image_b64, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ExtractionError("Captured image is not valid base64") from e
    if not data:
        raise ExtractionError("Captured image is empty")
    return data


def parse_response(text: str | None) -> ReceiptRecord:
    """Parse the model's JSON reply into a ReceiptRecord."""
    if not text or not text.strip():
        raise ExtractionError("No data returned from AI")

    # Strip markdown fences if present
    cleaned = text.strip()
    if cleaned.startswith("```"):
        lines = cleaned.split("\n")
        lines = [l for l in lines[1:] if not l.strip().startswith("```")]
        cleaned = "\n".join(lines)

    try:
        raw = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise ExtractionError(f"Model reply is not valid JSON: {e}") from e

    record = ReceiptRecord.from_dict(raw)
    logger.info(
        "Extracted %s: %d item(s), total %s %s",
        record.merchant_name,
        len(record.items),
        record.total_amount,
        record.currency,
    )
    return record


def create_backend(config: AppConfig) -> ExtractionBackend:
    """Create an extraction backend based on configuration."""
    backend_name = config.vision.backend

    match backend_name:
        case "gemini":
            from .gemini import GeminiExtractionBackend

            return GeminiExtractionBackend(
                api_key=config.vision.gemini.api_key,
                model=config.vision.gemini.model,
            )
        case "claude":
            from .claude import ClaudeExtractionBackend

            return ClaudeExtractionBackend(
                api_key=config.vision.claude.api_key,
                model=config.vision.claude.model,
            )
        case _:
            raise ValueError(
                f"Unknown extraction backend: {backend_name!r} "
                f"(choose gemini or claude)"
            )
