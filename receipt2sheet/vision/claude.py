"""Claude API backend for receipt extraction."""

from __future__ import annotations

import base64
import json

from ..errors import ConfigurationError, ExtractionError
from ..models import ReceiptRecord
from . import (
    EXTRACTION_PROMPT,
    RECEIPT_SCHEMA,
    ExtractionBackend,
    decode_image,
    parse_response,
)

_PROMPT = f"""\
{EXTRACTION_PROMPT}

Return only a JSON object matching this schema (no other text):
{json.dumps(RECEIPT_SCHEMA, indent=2)}
"""


class ClaudeExtractionBackend(ExtractionBackend):
    """Extract receipts using Claude's vision capability."""

    def __init__(self, api_key: str = "", model: str = "claude-sonnet-4-5-20250929") -> None:
        self._api_key = api_key
        self._model = model

    async def analyze(self, image_b64: str) -> ReceiptRecord:
        if not self._api_key:
            raise ConfigurationError(
                "Anthropic API key is not set. "
                "Check the config file or the ANTHROPIC_API_KEY environment variable."
            )

        try:
            import anthropic
        except ImportError:
            raise ImportError(
                "anthropic SDK is required: pip install anthropic"
            ) from None

        # Re-encode so the payload is canonical standard base64
        image = decode_image(image_b64)
        content: list[dict] = [
            {
                "type": "image",
                "source": {
                    "type": "base64",
                    "media_type": "image/jpeg",
                    "data": base64.standard_b64encode(image).decode(),
                },
            },
            {"type": "text", "text": _PROMPT},
        ]

        client = anthropic.AsyncAnthropic(api_key=self._api_key)
        try:
            response = await client.messages.create(
                model=self._model,
                max_tokens=4096,
                messages=[{"role": "user", "content": content}],
            )
            # a non-text first block has no .text
            text = response.content[0].text if response.content else ""
        except Exception as e:
            raise ExtractionError(f"Claude request failed: {e}") from e

        return parse_response(text)
