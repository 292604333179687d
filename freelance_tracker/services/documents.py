"""Conversions between MongoDB documents and the Pydantic models."""
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional

from bson import Decimal128, ObjectId
from bson.errors import InvalidId

from freelance_tracker.config import settings
from freelance_tracker.exceptions import NotFoundError
from freelance_tracker.models.payment import Payment
from freelance_tracker.models.project import Project
from freelance_tracker.models.time_entry import TimeEntry


def parse_object_id(value: str, resource: str) -> ObjectId:
    """
    Parse an id string, reporting malformed ids as a missing record.

    Raises:
        NotFoundError: If ``value`` is not a valid ObjectId
    """
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        raise NotFoundError(resource)


def to_decimal(value: Any) -> Optional[Decimal]:
    """Read an amount stored as Decimal128, number or string."""
    if value is None:
        return None
    if isinstance(value, Decimal128):
        return value.to_decimal()
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def to_date(value: Any) -> Optional[date]:
    """BSON has no date type, so dates come back as midnight datetimes."""
    if isinstance(value, datetime):
        return value.date()
    return value


def doc_to_entry(doc: dict) -> TimeEntry:
    """Convert database document to TimeEntry model."""
    return TimeEntry(
        _id=str(doc["_id"]),
        user_id=doc["user_id"],
        project_id=doc["project_id"],
        start_time=doc["start_time"],
        end_time=doc.get("end_time"),
        duration_minutes=doc.get("duration_minutes"),
        note=doc.get("note"),
        created_at=doc["created_at"],
        updated_at=doc["updated_at"],
    )


def doc_to_project(doc: dict) -> Project:
    """Convert database document to Project model."""
    return Project(
        _id=str(doc["_id"]),
        user_id=doc["user_id"],
        name=doc["name"],
        client_name=doc.get("client_name"),
        billing_mode=doc["billing_mode"],
        fixed_total_amount=to_decimal(doc.get("fixed_total_amount")),
        recurring_amount=to_decimal(doc.get("recurring_amount")),
        recurring_period_type=doc.get("recurring_period_type"),
        hourly_rate=to_decimal(doc.get("hourly_rate")),
        currency=doc.get("currency") or settings.default_currency,
        status=doc.get("status", "ACTIVE"),
        start_date=to_date(doc.get("start_date")),
        end_date=to_date(doc.get("end_date")),
        created_at=doc.get("created_at"),
        updated_at=doc.get("updated_at"),
    )


def doc_to_payment(doc: dict) -> Payment:
    """Convert database document to Payment model."""
    return Payment(
        _id=str(doc["_id"]),
        invoice_id=str(doc["invoice_id"]),
        user_id=doc.get("user_id"),
        project_id=doc.get("project_id"),
        amount=to_decimal(doc["amount"]),
        currency=doc.get("currency") or settings.default_currency,
        payment_date=to_date(doc["payment_date"]),
        method=doc.get("method"),
    )
