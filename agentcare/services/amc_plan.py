"""
年度維護合約（AMC）排程與分期之純函式。

保養拜訪日：固定間隔 stride = floor(365 / visits_per_year) 天，從 start_date 起每 stride 天一筆，
含 end_date（不依月曆對齊；WEEKLY 一律間隔 7 天，MONTHLY 間隔 30 天）。
例：MONTHLY（12 次/年）、start 2025-01-01、end 2026-01-01（365 天跨距）
→ stride 30，共 floor(365 / 30) + 1 = 13 筆。

分期付款：
- 合約月數 = 兩端日期的曆月差（忽略日，至少 1）；2025-01-01 ~ 2025-12-31 = 11 個月，2025-01-01 ~ 2026-01-01 = 12 個月。
- 期數 = ceil(月數 / (12 / 每年期數))；到期日 = start + i * (12 / 每年期數) 個月（月底自動收斂）。
- 每期金額取到 0.001（BHD 三位小數，無條件捨去），尾差併入最後一期，總和必等於合約金額。
"""
from datetime import date, timedelta
from decimal import Decimal, ROUND_DOWN
from math import ceil
from typing import List, Tuple

from dateutil.relativedelta import relativedelta

VISITS_PER_YEAR = {
    "WEEKLY": 52,
    "BI_WEEKLY": 26,
    "MONTHLY": 12,
    "BI_MONTHLY": 6,
    "QUARTERLY": 4,
    "SEMI_ANNUAL": 2,
    "ANNUAL": 1,
}

INSTALLMENTS_PER_YEAR = {
    "UPFRONT": 1,
    "MONTHLY": 12,
    "QUARTERLY": 4,
    "SEMI_ANNUAL": 2,
    "ANNUAL": 1,
}

AMOUNT_QUANT = Decimal("0.001")


def visits_per_year(frequency: str) -> int:
    try:
        return VISITS_PER_YEAR[frequency]
    except KeyError:
        raise ValueError(f"Unknown service frequency: {frequency}")


def installments_per_year(payment_terms: str) -> int:
    try:
        return INSTALLMENTS_PER_YEAR[payment_terms]
    except KeyError:
        raise ValueError(f"Unknown payment terms: {payment_terms}")


def stride_days(visits: int) -> int:
    """拜訪間隔天數，最少 1 天"""
    if visits < 1:
        raise ValueError("visits_per_year must be at least 1")
    return max(1, 365 // visits)


def schedule_dates(start: date, end: date, visits: int) -> List[date]:
    """start 起每 stride 天一筆，含 end"""
    step = timedelta(days=stride_days(visits))
    out = []
    current = start
    while current <= end:
        out.append(current)
        current += step
    return out


def months_between(start: date, end: date) -> int:
    """曆月差：只看年月不看日，最少 1"""
    return max(1, (end.year - start.year) * 12 + (end.month - start.month))


def installment_plan(
    start: date, end: date, contract_value: Decimal, payment_terms: str
) -> List[Tuple[int, date, Decimal]]:
    """回傳 [(期數, 到期日, 金額)]"""
    interval_months = 12 // installments_per_year(payment_terms)
    total = ceil(months_between(start, end) / interval_months)
    value = Decimal(contract_value)
    base = (value / total).quantize(AMOUNT_QUANT, rounding=ROUND_DOWN)
    plan = []
    for i in range(total):
        amount = base if i < total - 1 else value - base * (total - 1)
        plan.append((i + 1, start + relativedelta(months=interval_months * i), amount))
    return plan
