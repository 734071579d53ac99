from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

from dateutil.relativedelta import relativedelta

from microcrm.models.recurring_invoice import Frequency

_STEPS = {
    Frequency.WEEKLY: timedelta(weeks=1),
    Frequency.BIWEEKLY: timedelta(weeks=2),
    Frequency.MONTHLY: relativedelta(months=1),
    Frequency.QUARTERLY: relativedelta(months=3),
    Frequency.YEARLY: relativedelta(years=1),
}


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


def advance(frequency: Frequency | str, today: date | None = None) -> date:
    """Next billing date for a template that has just been invoiced.

    The step is taken from the generation day, not from the previous
    scheduled date, so a template that fell behind resumes one period after
    it caught up instead of replaying the missed periods. Month based steps
    clamp to the last day of shorter months (31 Jan + 1 month is 28/29 Feb).
    """
    base = today or utc_today()
    return base + _STEPS[Frequency(frequency)]
