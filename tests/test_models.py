"""Tests for receipt data models."""

import pytest

from receipt2sheet.errors import ExtractionError
from receipt2sheet.models import (
    CATEGORIES,
    ReceiptItem,
    ReceiptRecord,
    display_category,
)


def _raw(**overrides):
    raw = {
        "merchantName": "Cafe X",
        "date": "2026-10-18",
        "totalAmount": 12.5,
        "currency": "$",
        "category": "Dining",
        "items": [
            {"name": "Coffee", "quantity": 1, "price": 4.5},
            {"name": "Bagel", "price": 3},
        ],
    }
    raw.update(overrides)
    return raw


class TestDisplayCategory:
    def test_known(self):
        for category in CATEGORIES:
            assert display_category(category) == category

    def test_unknown_falls_back(self):
        assert display_category("Coffee Shops") == "Other"
        assert display_category("dining") == "Other"


class TestReceiptRecordFromDict:
    def test_full(self):
        record = ReceiptRecord.from_dict(_raw())
        assert record.merchant_name == "Cafe X"
        assert record.date == "2026-10-18"
        assert record.total_amount == 12.5
        assert record.currency == "$"
        assert record.category == "Dining"
        assert [i.name for i in record.items] == ["Coffee", "Bagel"]
        assert record.items[1].quantity == 1

    def test_optional_fields_default(self):
        raw = _raw()
        del raw["date"]
        del raw["currency"]
        record = ReceiptRecord.from_dict(raw)
        assert record.date == ""
        assert record.currency == ""

    def test_missing_required(self):
        raw = _raw()
        del raw["totalAmount"]
        with pytest.raises(ExtractionError, match="totalAmount"):
            ReceiptRecord.from_dict(raw)

    def test_not_an_object(self):
        with pytest.raises(ExtractionError):
            ReceiptRecord.from_dict([_raw()])

    def test_items_not_a_list(self):
        with pytest.raises(ExtractionError, match="items"):
            ReceiptRecord.from_dict(_raw(items={"name": "x"}))

    def test_item_without_price(self):
        with pytest.raises(ExtractionError, match="name or price"):
            ReceiptRecord.from_dict(_raw(items=[{"name": "Coffee"}]))

    def test_string_amount_rejected(self):
        with pytest.raises(ExtractionError, match="number"):
            ReceiptRecord.from_dict(_raw(totalAmount="12.50"))

    def test_negative_amount_rejected(self):
        with pytest.raises(ExtractionError, match="negative"):
            ReceiptRecord.from_dict(_raw(totalAmount=-1))

    def test_negative_quantity_accepted(self):
        record = ReceiptRecord.from_dict(
            _raw(items=[{"name": "Returned mug", "quantity": -1, "price": 6}])
        )
        assert record.items[0].quantity == -1

    def test_string_quantity_rejected(self):
        with pytest.raises(ExtractionError, match="number"):
            ReceiptRecord.from_dict(
                _raw(items=[{"name": "Coffee", "quantity": "two", "price": 4.5}])
            )

    def test_category_kept_as_returned(self):
        record = ReceiptRecord.from_dict(_raw(category="Coffee"))
        assert record.category == "Coffee"

    def test_to_dict_uses_wire_names(self):
        record = ReceiptRecord(
            merchant_name="M",
            total_amount=1.0,
            category="Other",
            items=[ReceiptItem(name="a", price=1.0)],
        )
        data = record.to_dict()
        assert data["merchantName"] == "M"
        assert data["totalAmount"] == 1.0
        assert data["items"] == [{"name": "a", "quantity": 1, "price": 1.0}]
