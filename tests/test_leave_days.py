"""
請假天數與日期區間純函數測試（不需 DB）。
"""
from datetime import date

import pytest

from agentcare.errors import ValidationError
from agentcare.services.leave import count_leave_days
from agentcare.utils.dates import resolve_period


def test_count_leave_days_inclusive():
    """含頭含尾：同一天 = 1 天"""
    assert count_leave_days(date(2030, 3, 1), date(2030, 3, 1)) == 1
    assert count_leave_days(date(2030, 3, 1), date(2030, 3, 5)) == 5


def test_count_leave_days_across_month_and_year():
    assert count_leave_days(date(2030, 2, 27), date(2030, 3, 2)) == 4
    assert count_leave_days(date(2030, 12, 30), date(2031, 1, 2)) == 4


def test_count_leave_days_end_before_start():
    with pytest.raises(ValidationError):
        count_leave_days(date(2030, 3, 5), date(2030, 3, 1))


def test_resolve_period_defaults_end_to_start():
    start, end = resolve_period(date(2030, 6, 1), None)
    assert start == end == date(2030, 6, 1)
    start, end = resolve_period(date(2030, 6, 1), date(2030, 6, 3))
    assert (start, end) == (date(2030, 6, 1), date(2030, 6, 3))
