"""
AMC 保養排程日期與分期金額純函數測試。
"""
from datetime import date
from decimal import Decimal

import pytest

from agentcare.services.amc_plan import (
    installment_plan, months_between, schedule_dates, stride_days, visits_per_year,
)


def test_monthly_over_one_year_gives_thirteen_visits():
    """固定間隔 30 天，跨距 365 天含頭含尾 → 13 筆"""
    dates = schedule_dates(date(2025, 1, 1), date(2026, 1, 1), visits_per_year("MONTHLY"))
    assert len(dates) == 13
    assert dates[0] == date(2025, 1, 1)
    assert dates[1] == date(2025, 1, 31)
    assert dates[-1] == date(2025, 12, 27)


def test_weekly_and_annual_strides():
    assert stride_days(visits_per_year("WEEKLY")) == 7
    assert len(schedule_dates(date(2025, 1, 1), date(2025, 12, 31), 52)) == 53
    assert schedule_dates(date(2025, 1, 1), date(2025, 12, 31), visits_per_year("ANNUAL")) == [date(2025, 1, 1)]


def test_stride_never_below_one_day():
    assert stride_days(365) == 1
    assert stride_days(500) == 1
    with pytest.raises(ValueError):
        stride_days(0)


def test_unknown_frequency_and_terms():
    with pytest.raises(ValueError):
        visits_per_year("DAILY")
    with pytest.raises(ValueError):
        installment_plan(date(2025, 1, 1), date(2025, 12, 31), Decimal("100"), "WEEKLY")


def test_months_between_counts_calendar_months():
    assert months_between(date(2025, 1, 1), date(2025, 12, 31)) == 11
    assert months_between(date(2025, 1, 1), date(2026, 1, 1)) == 12
    assert months_between(date(2025, 1, 15), date(2025, 3, 10)) == 2
    assert months_between(date(2025, 1, 31), date(2025, 2, 1)) == 1
    assert months_between(date(2025, 1, 1), date(2025, 1, 15)) == 1


def test_short_contract_counts_started_months():
    plan = installment_plan(date(2030, 1, 15), date(2030, 3, 10), Decimal("200"), "MONTHLY")
    assert plan == [(1, date(2030, 1, 15), Decimal("100.000")), (2, date(2030, 2, 15), Decimal("100.000"))]


def test_monthly_installments_even_split():
    plan = installment_plan(date(2025, 1, 1), date(2026, 1, 1), Decimal("1200.000"), "MONTHLY")
    assert len(plan) == 12
    assert [no for no, _, _ in plan] == list(range(1, 13))
    assert all(amount == Decimal("100.000") for _, _, amount in plan)
    assert plan[11][1] == date(2025, 12, 1)


def test_remainder_goes_to_last_installment():
    """每期取到 0.001 無條件捨去，尾差併入最後一期，總和等於合約金額"""
    plan = installment_plan(date(2025, 1, 1), date(2026, 1, 1), Decimal("1000"), "MONTHLY")
    amounts = [amount for _, _, amount in plan]
    assert amounts[0] == Decimal("83.333")
    assert amounts[-1] == Decimal("83.337")
    assert sum(amounts) == Decimal("1000")


def test_quarterly_and_upfront():
    quarterly = installment_plan(date(2025, 1, 1), date(2025, 12, 31), Decimal("999.999"), "QUARTERLY")
    assert [due for _, due, _ in quarterly] == [date(2025, 1, 1), date(2025, 4, 1), date(2025, 7, 1), date(2025, 10, 1)]
    assert sum(amount for _, _, amount in quarterly) == Decimal("999.999")
    upfront = installment_plan(date(2025, 1, 1), date(2025, 12, 31), Decimal("500"), "UPFRONT")
    assert upfront == [(1, date(2025, 1, 1), Decimal("500"))]


def test_due_dates_clamp_to_month_end():
    plan = installment_plan(date(2025, 1, 31), date(2026, 1, 30), Decimal("1200"), "MONTHLY")
    assert plan[1][1] == date(2025, 2, 28)
    assert plan[2][1] == date(2025, 3, 31)
