"""Time entry model definitions."""
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class TimeEntryBase(BaseModel):
    """Base time entry fields."""

    project_id: str
    start_time: datetime
    end_time: Optional[datetime] = None
    duration_minutes: Optional[int] = None
    note: Optional[str] = None


class TimeEntryUpdate(BaseModel):
    """
    Time entry patch model.

    Only the fields explicitly set are applied, so ``end_time=None`` reopens
    the entry while an omitted ``end_time`` leaves it untouched.
    """

    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    note: Optional[str] = None
    duration_minutes: Optional[int] = None


class TimeEntry(TimeEntryBase):
    """Full time entry model with database fields."""

    id: str = Field(alias="_id", serialization_alias="id")
    user_id: str
    created_at: datetime
    updated_at: datetime

    model_config = {"populate_by_name": True}

    @property
    def is_open(self) -> bool:
        """True while the timer is still running."""
        return self.end_time is None


class TimeEntryWithAmount(TimeEntry):
    """Time entry annotated with its billable amount on hourly projects."""

    amount: Optional[Decimal] = None
