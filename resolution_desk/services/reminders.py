"""
Reminder window evaluation.

Reminder bounds are stored as month/day strings (``MM/DD``; ``MM-DD`` and
full ISO dates are accepted, the year is ignored). A window whose start lies
after its end wraps past the year end (``11/01``–``02/15``).

    once / yearly  → today's month/day within [start, end]
    monthly        → today's day-of-month within [start day, end day]
    quarterly      → today's position in the 3-month cycle anchored at the
                     start month within the window's span
"""

import re
from datetime import date

REMINDER_NONE = "none"

_MONTH_DAY = re.compile(r"^(?:\d{4}[-/])?(\d{1,2})[-/](\d{1,2})$")


def parse_month_day(value) -> tuple[int, int] | None:
    """Parse ``MM/DD`` (or ``YYYY-MM-DD``) into ``(month, day)``; None when absent or malformed."""
    if not value:
        return None
    m = _MONTH_DAY.match(str(value).strip())
    if not m:
        return None
    month, day = int(m.group(1)), int(m.group(2))
    if not (1 <= month <= 12 and 1 <= day <= 31):
        return None
    return month, day


def is_valid_month_day(value) -> bool:
    return parse_month_day(value) is not None


def _within(point, start, end) -> bool:
    if start <= end:
        return start <= point <= end
    return point >= start or point <= end


def _quarter_position(month: int, day: int, anchor_month: int) -> tuple[int, int]:
    return ((month - anchor_month) % 3, day)


def is_window_active(reminder_type, start_value, end_value, today: date | None = None) -> bool:
    """True when ``today`` falls inside the reminder window of the given type."""
    if not reminder_type or reminder_type == REMINDER_NONE:
        return False
    start = parse_month_day(start_value)
    end = parse_month_day(end_value)
    if start is None or end is None:
        return False
    today = today or date.today()

    if reminder_type in ("once", "yearly"):
        return _within((today.month, today.day), start, end)
    if reminder_type == "monthly":
        return _within(today.day, start[1], end[1])
    if reminder_type == "quarterly":
        anchor = start[0]
        return _within(
            _quarter_position(today.month, today.day, anchor),
            _quarter_position(start[0], start[1], anchor),
            _quarter_position(end[0], end[1], anchor),
        )
    return False


def is_reminder_active(resolution, today: date | None = None) -> bool:
    """Reminder-active predicate for a resolution, independent of its completion."""
    return is_window_active(
        resolution.reminder_type,
        resolution.reminder_start_date,
        resolution.reminder_end_date,
        today,
    )
