"""Spreadsheet export through an Apps Script web-app webhook."""

from __future__ import annotations

import asyncio
import enum
import json
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any

import httpx

from .errors import ExportError
from .models import ReceiptItem, ReceiptRecord

logger = logging.getLogger(__name__)

_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

# Receiver the user pastes into Extensions > Apps Script and deploys as a web
# app with access for "Anyone".
APPS_SCRIPT_SOURCE = """\
function doPost(e) {
  var ss = SpreadsheetApp.getActiveSpreadsheet();
  var sheet = ss.getSheets()[0]; // Use the first sheet

  // Create headers if the sheet is new
  if (sheet.getLastRow() == 0) {
    sheet.appendRow(["Date", "Merchant", "Category", "Total", "Currency", "Items", "Logged At"]);
    sheet.getRange("A1:G1").setFontWeight("bold").setBackground("#f3f4f6");
  }

  try {
    var data = JSON.parse(e.postData.contents);
    sheet.appendRow([
      data.date || "",
      data.merchantName || "",
      data.category || "",
      data.totalAmount || 0,
      data.currency || "$",
      data.itemsList || "",
      data.timestamp || new Date().toLocaleString()
    ]);
    return ContentService.createTextOutput("Success").setMimeType(ContentService.MimeType.TEXT);
  } catch (err) {
    return ContentService.createTextOutput("Error: " + err.toString()).setMimeType(ContentService.MimeType.TEXT);
  }
}
"""


class ExportStatus(enum.Enum):
    ACK = "ack"
    UNKNOWN = "unknown"
    FAILED = "failed"


@dataclass
class ExportResult:
    """Outcome of one webhook POST.

    UNKNOWN means the request went through but the reply cannot confirm
    that a row was appended. Delivery is never verifiable beyond the reply.
    """

    status: ExportStatus
    status_code: int | None = None
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.status is not ExportStatus.FAILED


def format_number(value: float) -> str:
    """Render 3.0 as "3" and 4.5 as "4.5"."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _plain_number(value: float) -> int | float:
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def format_items(items: list[ReceiptItem]) -> str:
    """Flatten items into "name (price), name (price)"."""
    return ", ".join(f"{item.name} ({format_number(item.price)})" for item in items)


def build_payload(record: ReceiptRecord, now: datetime | None = None) -> dict[str, Any]:
    now = now or datetime.now()
    return {
        "date": record.date,
        "merchantName": record.merchant_name,
        "category": record.category,
        "totalAmount": _plain_number(record.total_amount),
        "currency": record.currency,
        "itemsList": format_items(record.items),
        "timestamp": now.strftime(_TIMESTAMP_FORMAT),
    }


def build_test_payload(now: datetime | None = None) -> dict[str, Any]:
    now = now or datetime.now()
    return {
        "date": now.date().isoformat(),
        "merchantName": "TEST CONNECTION",
        "category": "Settings Test",
        "totalAmount": 0,
        "currency": "SYNC_OK",
        "itemsCount": 0,
        "timestamp": now.strftime(_TIMESTAMP_FORMAT),
    }


def classify_response(response: httpx.Response) -> ExportResult:
    """Map the webhook's reply onto the trinary export status."""
    body = response.text.strip()
    if response.is_error:
        return ExportResult(
            ExportStatus.FAILED,
            status_code=response.status_code,
            detail=f"Webhook answered HTTP {response.status_code}",
        )
    if body.startswith("Error"):
        return ExportResult(
            ExportStatus.FAILED, status_code=response.status_code, detail=body
        )
    if response.is_success and body.startswith("Success"):
        return ExportResult(ExportStatus.ACK, status_code=response.status_code)
    return ExportResult(
        ExportStatus.UNKNOWN,
        status_code=response.status_code,
        detail="The webhook did not confirm the row was appended.",
    )


class WebhookExporter:
    """POST receipts to a spreadsheet webhook.

    The Apps Script endpoint answers with a redirect to the script output, so
    redirects are followed. Pass *transport* to plug in a mock in tests.
    """

    def __init__(
        self,
        webhook_url: str,
        *,
        success_delay: float = 2.0,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._webhook_url = webhook_url
        self._success_delay = success_delay
        self._timeout = timeout
        self._transport = transport

    async def export(self, record: ReceiptRecord) -> ExportResult:
        """Send one receipt.

        Raises:
            ExportError: On any transport failure.
        """
        result = await self._post(build_payload(record))
        if result.ok:
            # Only smooths the UI transition; not a delivery guarantee
            await asyncio.sleep(self._success_delay)
        logger.info(
            "Exported %s to webhook: %s", record.merchant_name, result.status.value
        )
        return result

    async def test_connection(self) -> ExportResult:
        """Send the sentinel row so the user can check the deployment."""
        result = await self._post(build_test_payload())
        logger.info("Webhook test: %s", result.status.value)
        return result

    async def _post(self, payload: dict[str, Any]) -> ExportResult:
        async with httpx.AsyncClient(
            transport=self._transport,
            timeout=self._timeout,
            follow_redirects=True,
        ) as client:
            try:
                response = await client.post(
                    self._webhook_url,
                    content=json.dumps(payload),
                    headers={"Content-Type": "text/plain"},
                )
            except httpx.HTTPError as e:
                logger.error("Webhook POST failed: %s", e)
                raise ExportError(
                    "Network error while sending to the webhook. "
                    "Ensure you deployed the script as a Web App for 'Anyone'."
                ) from e
        return classify_response(response)
