"""Tests for billing interval calendar arithmetic."""

from datetime import date

import pytest
from dateutil.relativedelta import relativedelta

from tracksubs.billing.intervals import advance_billing_date, interval_period
from tracksubs.billing.models import BillingInterval


class TestIntervalPeriod:
    """Tests for interval -> period mapping."""

    def test_periods_are_calendar_units(self) -> None:
        assert interval_period(BillingInterval.MONTHLY) == relativedelta(months=1)
        assert interval_period(BillingInterval.QUARTERLY) == relativedelta(months=3)
        assert interval_period(BillingInterval.YEARLY) == relativedelta(years=1)

    def test_accepts_raw_values(self) -> None:
        assert interval_period("QUARTERLY") == relativedelta(months=3)

    def test_rejects_unknown_interval(self) -> None:
        with pytest.raises(ValueError):
            interval_period("WEEKLY")


class TestAdvanceBillingDate:
    """Tests for advancing a billing date."""

    def test_monthly_is_calendar_month(self) -> None:
        assert advance_billing_date(date(2024, 1, 1), BillingInterval.MONTHLY) == date(2024, 2, 1)

    def test_quarterly(self) -> None:
        assert advance_billing_date(date(2024, 11, 15), BillingInterval.QUARTERLY) == date(
            2025, 2, 15
        )

    def test_yearly(self) -> None:
        assert advance_billing_date(date(2023, 6, 30), BillingInterval.YEARLY) == date(2024, 6, 30)

    def test_month_end_clamps_to_shorter_month(self) -> None:
        assert advance_billing_date(date(2024, 1, 31), BillingInterval.MONTHLY) == date(2024, 2, 29)
        assert advance_billing_date(date(2023, 1, 31), BillingInterval.MONTHLY) == date(2023, 2, 28)

    def test_leap_day_yearly_clamps(self) -> None:
        assert advance_billing_date(date(2024, 2, 29), BillingInterval.YEARLY) == date(2025, 2, 28)

    def test_clamped_day_carries_forward(self) -> None:
        # Each period is applied to the previous result.
        assert advance_billing_date(date(2024, 1, 31), BillingInterval.MONTHLY, periods=2) == date(
            2024, 3, 29
        )

    def test_multiple_periods(self) -> None:
        assert advance_billing_date(date(2024, 1, 1), BillingInterval.MONTHLY, periods=12) == date(
            2025, 1, 1
        )

    def test_zero_periods_is_identity(self) -> None:
        assert advance_billing_date(date(2024, 5, 5), "YEARLY", periods=0) == date(2024, 5, 5)

    def test_negative_periods_rejected(self) -> None:
        with pytest.raises(ValueError):
            advance_billing_date(date(2024, 5, 5), BillingInterval.MONTHLY, periods=-1)
