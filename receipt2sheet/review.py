"""Review and correction of an extracted receipt before export."""

from __future__ import annotations

import copy

from .models import CATEGORIES, ReceiptRecord, display_category


class ReceiptEditor:
    """Editable copy of a ReceiptRecord.

    The original record is never touched; ``result()`` hands back the edited
    copy. An out-of-set category is shown and exported as "Other".
    """

    def __init__(self, record: ReceiptRecord) -> None:
        self._original = record
        self._draft = copy.deepcopy(record)
        self._draft.category = display_category(record.category)

    @property
    def draft(self) -> ReceiptRecord:
        return self._draft

    @property
    def original(self) -> ReceiptRecord:
        return self._original

    def set_merchant(self, name: str) -> None:
        self._draft.merchant_name = name

    def set_category(self, category: str) -> None:
        if category not in CATEGORIES:
            raise ValueError(
                f"Unknown category {category!r}; choose one of {', '.join(CATEGORIES)}"
            )
        self._draft.category = category

    def update_item(
        self,
        index: int,
        *,
        name: str | None = None,
        price: float | None = None,
        quantity: float | None = None,
    ) -> None:
        item = self._draft.items[index]
        if name is not None:
            item.name = name
        if price is not None:
            if price < 0:
                raise ValueError("Price must not be negative")
            item.price = price
        if quantity is not None:
            item.quantity = quantity

    def result(self) -> ReceiptRecord:
        return copy.deepcopy(self._draft)

    def summary(self) -> str:
        r = self._draft
        lines = [
            f"Merchant : {r.merchant_name}",
            f"Date     : {r.date or '-'}",
            f"Category : {r.category}",
            f"Total    : {r.total_amount} {r.currency}".rstrip(),
            "Items    :",
        ]
        if not r.items:
            lines.append("  (none)")
        for i, item in enumerate(r.items, 1):
            qty = f" x{item.quantity:g}" if item.quantity != 1 else ""
            lines.append(f"  {i:>2}. {item.name}{qty}  {item.price}")
        return "\n".join(lines)
