"""Calendar arithmetic for billing intervals.

Periods are true calendar periods: one month, three months or one year.
When the target month is shorter than the source day, the date clamps to the
last day of that month (2024-01-31 + 1 month = 2024-02-29). The next advance
starts from the clamped date, so schedules anchored on a month end settle on
the shortest month's last day.
"""

from datetime import date

from dateutil.relativedelta import relativedelta

from tracksubs.billing.models import BillingInterval

INTERVAL_PERIODS: dict[BillingInterval, relativedelta] = {
    BillingInterval.MONTHLY: relativedelta(months=1),
    BillingInterval.QUARTERLY: relativedelta(months=3),
    BillingInterval.YEARLY: relativedelta(years=1),
}


def interval_period(interval: BillingInterval | str) -> relativedelta:
    """Return the calendar period for an interval value.

    Raises:
        ValueError: If ``interval`` is not one of the enumerated values.
    """
    return INTERVAL_PERIODS[BillingInterval(interval)]


def advance_billing_date(
    billing_date: date,
    interval: BillingInterval | str,
    periods: int = 1,
) -> date:
    """Move ``billing_date`` forward by ``periods`` billing periods.

    Each period is applied to the result of the previous one, matching what
    repeated ledger advances produce.
    """
    if periods < 0:
        raise ValueError("periods must be non-negative")

    step = interval_period(interval)
    result = billing_date
    for _ in range(periods):
        result = result + step
    return result
