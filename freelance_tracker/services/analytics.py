"""Grouping helpers for income and time analytics."""
from collections import defaultdict
from datetime import date, datetime
from decimal import Decimal
from typing import Iterable, Literal

from freelance_tracker.models.payment import Payment
from freelance_tracker.models.stats import PeriodEarnings, PeriodTime, ProjectEarnings, ProjectTime
from freelance_tracker.models.time_entry import TimeEntry
from freelance_tracker.services.billing import ZERO, calendar_date, minutes_to_hours, week_start

GroupBy = Literal["day", "week", "month"]


def group_key(moment: datetime | date, group_by: GroupBy) -> str:
    """
    Reporting bucket for a timestamp or date.

    Days and weeks are keyed by ISO date (weeks by their starting Sunday),
    months by "YYYY-MM".
    """
    day = calendar_date(moment)
    if group_by == "day":
        return day.isoformat()
    if group_by == "week":
        return week_start(day).isoformat()
    if group_by == "month":
        return f"{day.year:04d}-{day.month:02d}"
    raise ValueError(f"Unsupported grouping: {group_by}")


def month_start(moment: datetime | date, months_back: int = 0) -> date:
    """First day of the month ``months_back`` months before ``moment``."""
    day = calendar_date(moment)
    index = day.year * 12 + (day.month - 1) - months_back
    return date(index // 12, index % 12 + 1, 1)


def time_by_period(entries: Iterable[TimeEntry], group_by: GroupBy) -> list[PeriodTime]:
    """Sum recorded minutes per period, sorted by period."""
    minutes: dict[str, int] = defaultdict(int)
    for entry in entries:
        if entry.duration_minutes is not None:
            minutes[group_key(entry.start_time, group_by)] += entry.duration_minutes

    return [
        PeriodTime(
            period=period,
            total_minutes=minutes[period],
            total_hours=minutes_to_hours(minutes[period]),
        )
        for period in sorted(minutes)
    ]


def time_by_project(
    entries: Iterable[TimeEntry],
    project_names: dict[str, str],
) -> list[ProjectTime]:
    """Sum recorded minutes per project, most tracked first."""
    minutes: dict[str, int] = defaultdict(int)
    for entry in entries:
        if entry.duration_minutes is not None:
            minutes[entry.project_id] += entry.duration_minutes

    totals = [
        ProjectTime(
            project_id=project_id,
            project_name=project_names.get(project_id, "Unknown"),
            total_minutes=total,
            total_hours=minutes_to_hours(total),
        )
        for project_id, total in minutes.items()
    ]
    return sorted(totals, key=lambda item: item.total_minutes, reverse=True)


def earnings_by_period(
    payments: Iterable[Payment],
    group_by: GroupBy,
    currency: str,
) -> list[PeriodEarnings]:
    """Sum payment amounts per period, sorted by period."""
    amounts: dict[str, Decimal] = defaultdict(lambda: ZERO)
    for payment in payments:
        amounts[group_key(payment.payment_date, group_by)] += payment.amount

    return [
        PeriodEarnings(period=period, total_amount=amounts[period], currency=currency)
        for period in sorted(amounts)
    ]


def earnings_by_project(
    payments: Iterable[Payment],
    project_names: dict[str, str],
    currency: str,
) -> list[ProjectEarnings]:
    """Sum payment amounts per project, highest first. Unlinked payments are skipped."""
    amounts: dict[str, Decimal] = defaultdict(lambda: ZERO)
    for payment in payments:
        if payment.project_id:
            amounts[payment.project_id] += payment.amount

    totals = [
        ProjectEarnings(
            project_id=project_id,
            project_name=project_names.get(project_id, "Unknown"),
            total_amount=amount,
            currency=currency,
        )
        for project_id, amount in amounts.items()
    ]
    return sorted(totals, key=lambda item: item.total_amount, reverse=True)


def income_by_month(
    payments: Iterable[Payment],
    now: datetime,
    currency: str,
    months: int = 12,
) -> list[PeriodEarnings]:
    """
    Monthly income for the last ``months`` months, current month included.

    Months without payments are reported with a zero amount.
    """
    keys = [group_key(month_start(now, back), "month") for back in range(months)]
    amounts: dict[str, Decimal] = {key: ZERO for key in keys}
    for payment in payments:
        key = group_key(payment.payment_date, "month")
        if key in amounts:
            amounts[key] += payment.amount

    return [
        PeriodEarnings(period=key, total_amount=amounts[key], currency=currency)
        for key in sorted(amounts)
    ]
