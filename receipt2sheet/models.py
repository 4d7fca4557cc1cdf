"""Data models for extracted receipts."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .errors import ExtractionError

CATEGORIES: tuple[str, ...] = (
    "Dining",
    "Groceries",
    "Travel",
    "Shopping",
    "Utilities",
    "Health",
    "Entertainment",
    "Services",
    "Other",
)

FALLBACK_CATEGORY = "Other"


def display_category(value: str) -> str:
    """Return *value* if it belongs to the closed category set, else "Other"."""
    return value if value in CATEGORIES else FALLBACK_CATEGORY


@dataclass
class ReceiptItem:
    """A single line of a receipt."""

    name: str
    price: float
    quantity: float = 1

    @classmethod
    def from_dict(cls, raw: Any) -> ReceiptItem:
        if not isinstance(raw, dict):
            raise ExtractionError(f"Receipt item is not an object: {raw!r}")
        if "name" not in raw or "price" not in raw:
            raise ExtractionError(f"Receipt item lacks name or price: {raw!r}")
        price = _number(raw["price"], "price")
        quantity = raw.get("quantity")
        # refund lines may carry a negative quantity
        quantity = 1 if quantity is None else _number(quantity, "quantity", signed=True)
        return cls(name=str(raw["name"]), price=price, quantity=quantity)

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "quantity": self.quantity, "price": self.price}


@dataclass
class ReceiptRecord:
    """Structured content of one scanned receipt.

    Created fresh per scan, edited only during review and discarded after
    export or cancellation.
    """

    merchant_name: str
    total_amount: float
    category: str
    items: list[ReceiptItem] = field(default_factory=list)
    date: str = ""  # YYYY-MM-DD
    currency: str = ""

    @classmethod
    def from_dict(cls, raw: Any) -> ReceiptRecord:
        """Build a record from the model's camelCase JSON object.

        Raises:
            ExtractionError: If a required field is missing or has the wrong type.
        """
        if not isinstance(raw, dict):
            raise ExtractionError("Model reply is not a JSON object")

        missing = [
            key
            for key in ("merchantName", "totalAmount", "category", "items")
            if key not in raw
        ]
        if missing:
            raise ExtractionError(
                f"Model reply is missing required fields: {', '.join(missing)}"
            )

        items = raw["items"]
        if not isinstance(items, list):
            raise ExtractionError("Field 'items' must be an array")

        return cls(
            merchant_name=str(raw["merchantName"]),
            total_amount=_number(raw["totalAmount"], "totalAmount"),
            category=str(raw["category"]),
            items=[ReceiptItem.from_dict(item) for item in items],
            date=str(raw.get("date") or ""),
            currency=str(raw.get("currency") or ""),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "merchantName": self.merchant_name,
            "date": self.date,
            "totalAmount": self.total_amount,
            "currency": self.currency,
            "category": self.category,
            "items": [item.to_dict() for item in self.items],
        }


def _number(value: Any, field_name: str, signed: bool = False) -> float:
    # bool is an int subclass but never a valid amount
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ExtractionError(f"Field '{field_name}' must be a number, got {value!r}")
    if not signed and value < 0:
        raise ExtractionError(f"Field '{field_name}' must not be negative")
    return value
