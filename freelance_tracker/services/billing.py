"""
Billing calculator - derives hours, income and rates from tracked time.

All functions are pure: they take already-loaded projects, time entries and
payments and never touch the database. Rate arithmetic always works on true
decimal hours; the "hours.minutes" display form lives in
``freelance_tracker.utils.hours`` and is never fed back in here.
"""
from collections import defaultdict
from datetime import date, datetime, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional

from freelance_tracker.models.payment import Payment
from freelance_tracker.models.project import BillingMode, Project, RecurringPeriodType
from freelance_tracker.models.stats import PeriodRate, ProjectStats
from freelance_tracker.models.time_entry import TimeEntry

CENTS = Decimal("0.01")
MINUTES_PER_HOUR = Decimal(60)
ZERO = Decimal("0")


def round2(value: Decimal) -> Decimal:
    """Round a money or hours value to two decimals, halves away from zero."""
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def minutes_to_hours(minutes: int) -> Decimal:
    """Convert minutes to decimal hours rounded to two places (90 -> 1.50)."""
    return round2(Decimal(minutes) / MINUTES_PER_HOUR)


def is_completed(entry: TimeEntry) -> bool:
    """
    A completed entry is closed and has at least one recorded minute.

    Zero-minute stops are valid sessions but are kept out of hours and rate
    figures.
    """
    return (
        entry.end_time is not None
        and entry.duration_minutes is not None
        and entry.duration_minutes > 0
    )


def calendar_date(moment: datetime | date) -> date:
    """UTC calendar date of a timestamp; plain dates pass through."""
    if isinstance(moment, datetime):
        if moment.tzinfo is not None:
            moment = moment.astimezone(timezone.utc)
        return moment.date()
    return moment


def week_start(day: date) -> date:
    """Sunday that starts the week containing ``day``."""
    # weekday(): Monday=0 .. Sunday=6
    return day - timedelta(days=(day.weekday() + 1) % 7)


def period_key(moment: datetime | date, period_type: Optional[RecurringPeriodType]) -> str:
    """
    Bucket a timestamp into its billing period.

    WEEKLY keys are the ISO date of the Sunday that starts the week. MONTHLY,
    CUSTOM and unset period types all bucket by calendar month ("YYYY-MM").
    Both forms sort lexicographically in chronological order.
    """
    day = calendar_date(moment)
    if period_type == RecurringPeriodType.WEEKLY:
        return week_start(day).isoformat()
    return f"{day.year:04d}-{day.month:02d}"


def count_billing_periods(
    entries: Iterable[TimeEntry],
    period_type: Optional[RecurringPeriodType],
) -> int:
    """Count the distinct billing periods the given entries started in."""
    return len({period_key(entry.start_time, period_type) for entry in entries})


def calculate_entry_amount(duration_minutes: int, hourly_rate: Decimal) -> Decimal:
    """Amount owed for a single entry on an hourly project."""
    return round2(hourly_rate * Decimal(duration_minutes) / MINUTES_PER_HOUR)


def entry_amount(project: Project, entry: TimeEntry) -> Optional[Decimal]:
    """Billable amount of one entry, or None outside hourly billing."""
    if (
        project.billing_mode == BillingMode.HOURLY
        and project.hourly_rate
        and entry.duration_minutes
    ):
        return calculate_entry_amount(entry.duration_minutes, project.hourly_rate)
    return None


def compute_project_stats(
    project: Project,
    entries: Iterable[TimeEntry],
    payments: Iterable[Payment],
) -> ProjectStats:
    """
    Compute total hours, total income and effective hourly rate.

    Args:
        project: Project whose billing mode selects the rate formula
        entries: Time entries of the project; only completed ones count
        payments: Payments recorded for the project, summed as stored

    Returns:
        ProjectStats. The rate is None whenever it is undefined: no completed
        time, or no configured amount for the billing mode.

    Raises:
        ValueError: If the project has an unsupported billing mode
    """
    completed = [entry for entry in entries if is_completed(entry)]
    total_minutes = sum(entry.duration_minutes for entry in completed)
    total_hours = minutes_to_hours(total_minutes)
    total_income = sum((payment.amount for payment in payments), ZERO)

    effective_hourly_rate: Optional[Decimal] = None

    if project.billing_mode == BillingMode.FIXED_TOTAL:
        if total_hours > 0 and project.fixed_total_amount:
            effective_hourly_rate = round2(project.fixed_total_amount / total_hours)

    elif project.billing_mode == BillingMode.RECURRING_PERIOD:
        # Average across observed periods, not a per-period rate.
        period_count = count_billing_periods(completed, project.recurring_period_type)
        if total_hours > 0 and project.recurring_amount and period_count > 0:
            effective_hourly_rate = round2(
                project.recurring_amount * period_count / total_hours
            )

    elif project.billing_mode == BillingMode.HOURLY:
        if completed and project.hourly_rate is not None:
            effective_hourly_rate = project.hourly_rate

    else:
        raise ValueError(f"Unsupported billing mode: {project.billing_mode}")

    return ProjectStats(
        total_hours=total_hours,
        total_income=total_income,
        effective_hourly_rate=effective_hourly_rate,
    )


def compute_billable_amount(project: Project, entries: Iterable[TimeEntry]) -> Decimal:
    """
    Amount the project should have earned, independent of payments.

    Unlike ``compute_project_stats`` this counts every entry with a recorded
    duration, zero-minute ones included, so a period containing only a
    zero-minute session still counts as a billed recurring period.

    Raises:
        ValueError: If the project has an unsupported billing mode
    """
    tracked = [entry for entry in entries if entry.duration_minutes is not None]
    total_minutes = sum(entry.duration_minutes for entry in tracked)

    if project.billing_mode == BillingMode.FIXED_TOTAL:
        return round2(project.fixed_total_amount or ZERO)

    if project.billing_mode == BillingMode.RECURRING_PERIOD:
        period_count = count_billing_periods(tracked, project.recurring_period_type)
        return round2((project.recurring_amount or ZERO) * period_count)

    if project.billing_mode == BillingMode.HOURLY:
        return round2(
            (project.hourly_rate or ZERO) * Decimal(total_minutes) / MINUTES_PER_HOUR
        )

    raise ValueError(f"Unsupported billing mode: {project.billing_mode}")


def compute_period_rates(
    project: Project,
    entries: Iterable[TimeEntry],
) -> list[PeriodRate]:
    """
    Effective hourly rate per billing period for recurring projects.

    Returns an empty list for any other billing mode. Periods are sorted
    ascending by key.
    """
    if project.billing_mode != BillingMode.RECURRING_PERIOD:
        return []

    minutes_by_period: dict[str, int] = defaultdict(int)
    for entry in entries:
        if is_completed(entry):
            key = period_key(entry.start_time, project.recurring_period_type)
            minutes_by_period[key] += entry.duration_minutes

    recurring_amount = project.recurring_amount or ZERO
    rates = []
    for period in sorted(minutes_by_period):
        hours = minutes_to_hours(minutes_by_period[period])
        rate = round2(recurring_amount / hours) if hours > 0 else round2(ZERO)
        rates.append(PeriodRate(period=period, hours=hours, rate=rate))
    return rates
