"""RecruitDash — Calendar Helpers.

The engines never read the clock themselves: callers resolve "today" and the
reporting month here and pass them in.
"""

import calendar
import re
from datetime import date, datetime
from typing import Optional
from zoneinfo import ZoneInfo

from dateutil.relativedelta import relativedelta

from recruitdash.config import settings
from recruitdash.core.errors import ValidationError

DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
MONTH_PATTERN = re.compile(r"^\d{4}-\d{2}$")


def local_now() -> datetime:
    """Current time in the clinics' local timezone."""
    return datetime.now(ZoneInfo(settings.timezone))


def local_today() -> date:
    return local_now().date()


def is_iso_date(value: object) -> bool:
    """True for a real calendar date written exactly as YYYY-MM-DD."""
    if not isinstance(value, str) or not DATE_PATTERN.match(value):
        return False
    try:
        datetime.strptime(value, "%Y-%m-%d")
    except ValueError:
        return False
    return True


def resolve_month(month: Optional[str], today: Optional[date] = None) -> tuple[int, int]:
    """Resolve a YYYY-MM query value into (year, month), defaulting to the current month."""
    if not month:
        today = today or local_today()
        return today.year, today.month
    if not MONTH_PATTERN.match(month):
        raise ValidationError(f"Invalid month: {month}. Must be YYYY-MM")
    year, mon = int(month[:4]), int(month[5:])
    if not 1 <= mon <= 12:
        raise ValidationError(f"Invalid month: {month}. Must be YYYY-MM")
    return year, mon


def month_bounds(year: int, month: int) -> tuple[str, str]:
    """First and last calendar day of a month as YYYY-MM-DD strings (inclusive)."""
    last_day = calendar.monthrange(year, month)[1]
    return f"{year:04d}-{month:02d}-01", f"{year:04d}-{month:02d}-{last_day:02d}"


def add_months(start: date, months: int) -> date:
    """Calendar month arithmetic; day-of-month is clamped (Jan 31 + 1 → Feb 28/29)."""
    return start + relativedelta(months=months)
