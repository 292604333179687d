"""Project model definitions."""
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class BillingMode(str, Enum):
    """How tracked time and payments turn into income figures."""

    FIXED_TOTAL = "FIXED_TOTAL"
    RECURRING_PERIOD = "RECURRING_PERIOD"
    HOURLY = "HOURLY"


class RecurringPeriodType(str, Enum):
    """Billing cycle length for recurring projects."""

    MONTHLY = "MONTHLY"
    WEEKLY = "WEEKLY"
    CUSTOM = "CUSTOM"


class ProjectStatus(str, Enum):
    """Project lifecycle status."""

    ACTIVE = "ACTIVE"
    PAUSED = "PAUSED"
    ARCHIVED = "ARCHIVED"


class ProjectBase(BaseModel):
    """Base project fields."""

    name: str
    client_name: Optional[str] = None
    billing_mode: BillingMode
    fixed_total_amount: Optional[Decimal] = None
    recurring_amount: Optional[Decimal] = None
    recurring_period_type: Optional[RecurringPeriodType] = None
    hourly_rate: Optional[Decimal] = None
    currency: str = "EUR"
    status: ProjectStatus = ProjectStatus.ACTIVE
    start_date: Optional[date] = None
    end_date: Optional[date] = None


class Project(ProjectBase):
    """Full project model with database fields."""

    id: str = Field(alias="_id", serialization_alias="id")
    user_id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"populate_by_name": True}
