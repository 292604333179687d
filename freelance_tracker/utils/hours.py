"""Display helpers for tracked durations."""
from decimal import Decimal


def to_hours_minutes(minutes: int) -> Decimal:
    """
    Encode minutes as "hours.minutes" for display.

    100 minutes becomes 1.40 (one hour, forty minutes), not 1.67 decimal
    hours. The result is for presentation only and must never be used in
    rate arithmetic.

    Example:
        >>> to_hours_minutes(100)
        Decimal('1.40')
    """
    hours, mins = divmod(minutes, 60)
    return Decimal(f"{hours}.{mins:02d}")


def format_minutes(minutes: int) -> str:
    """
    Format minutes as a compact label.

    Example:
        >>> format_minutes(100)
        '1h 40m'
        >>> format_minutes(120)
        '2h'
        >>> format_minutes(5)
        '5m'
    """
    hours, mins = divmod(minutes, 60)
    if hours > 0 and mins > 0:
        return f"{hours}h {mins}m"
    if hours > 0:
        return f"{hours}h"
    return f"{mins}m"
