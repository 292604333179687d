"""Tests for document conversion helpers."""
import pytest
from datetime import date, datetime, timezone
from decimal import Decimal

from bson import Decimal128, ObjectId

from freelance_tracker.exceptions import NotFoundError
from freelance_tracker.services.documents import (
    doc_to_payment,
    doc_to_project,
    parse_object_id,
    to_decimal,
    to_date,
)


class TestParseObjectId:
    """Tests for parse_object_id."""

    def test_valid_id(self):
        object_id = ObjectId()

        assert parse_object_id(str(object_id), "Project") == object_id

    @pytest.mark.parametrize("value", ["not-an-id", "", "123"])
    def test_invalid_id_reports_not_found(self, value):
        with pytest.raises(NotFoundError, match="Time entry not found") as exc_info:
            parse_object_id(value, "Time entry")

        assert exc_info.value.code == "NOT_FOUND"


class TestToDecimal:
    """Tests for to_decimal."""

    @pytest.mark.parametrize("stored,expected", [
        (Decimal128(Decimal("12.50")), Decimal("12.50")),
        (Decimal("3.10"), Decimal("3.10")),
        (0.1, Decimal("0.1")),
        (42, Decimal("42")),
        ("99.99", Decimal("99.99")),
        (None, None),
    ])
    def test_conversions(self, stored, expected):
        assert to_decimal(stored) == expected


class TestDocumentConverters:
    """Tests for doc_to_project and doc_to_payment."""

    def test_to_date_from_midnight_datetime(self):
        assert to_date(datetime(2025, 3, 1, tzinfo=timezone.utc)) == date(2025, 3, 1)
        assert to_date(None) is None

    def test_project_defaults(self):
        """Test missing currency and status get their defaults."""
        doc = {
            "_id": ObjectId(),
            "user_id": "user123",
            "name": "Website",
            "billing_mode": "FIXED_TOTAL",
            "fixed_total_amount": Decimal128(Decimal("1000")),
        }

        project = doc_to_project(doc)

        assert project.id == str(doc["_id"])
        assert project.fixed_total_amount == Decimal("1000")
        assert project.currency == "EUR"
        assert project.status.value == "ACTIVE"

    def test_payment_from_document(self):
        invoice_id = ObjectId()
        doc = {
            "_id": ObjectId(),
            "invoice_id": invoice_id,
            "amount": Decimal128(Decimal("250.00")),
            "payment_date": datetime(2025, 2, 28, tzinfo=timezone.utc),
        }

        payment = doc_to_payment(doc)

        assert payment.invoice_id == str(invoice_id)
        assert payment.amount == Decimal("250.00")
        assert payment.payment_date == date(2025, 2, 28)
        assert payment.project_id is None
