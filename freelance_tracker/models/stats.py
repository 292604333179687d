"""Derived statistics returned by the billing calculator and analytics."""
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel


class ProjectStats(BaseModel):
    """Aggregate hours, income and effective rate for one project."""

    total_hours: Decimal
    total_income: Decimal
    effective_hourly_rate: Optional[Decimal] = None


class PeriodRate(BaseModel):
    """Hours and effective rate within one recurring billing period."""

    period: str
    hours: Decimal
    rate: Decimal


class PeriodTime(BaseModel):
    """Tracked time within one reporting period."""

    period: str
    total_minutes: int
    total_hours: Decimal


class ProjectTime(BaseModel):
    """Tracked time for one project."""

    project_id: str
    project_name: str
    total_minutes: int
    total_hours: Decimal


class PeriodEarnings(BaseModel):
    """Payments received within one reporting period."""

    period: str
    total_amount: Decimal
    currency: str


class ProjectEarnings(BaseModel):
    """Payments received for one project."""

    project_id: str
    project_name: str
    total_amount: Decimal
    currency: str


class TopProject(BaseModel):
    """Dashboard entry for a project ranked by income."""

    project_id: str
    project_name: str
    total_hours: Decimal
    total_income: Decimal
    effective_hourly_rate: Optional[Decimal] = None


class DashboardStats(BaseModel):
    """Headline figures for the current month plus the yearly income trend."""

    total_income_month: Decimal
    total_hours_month: Decimal
    active_projects_count: int
    income_by_month: list[PeriodEarnings]
    top_projects: list[TopProject]


class ProjectAnalytics(ProjectStats):
    """Project statistics with recent monthly hours and income."""

    hours_by_period: list[PeriodTime]
    income_by_period: list[PeriodEarnings]
