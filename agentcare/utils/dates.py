"""
日期工具：營運時區的「今天」與查詢區間預設值。
排程與報修的預約日以營運時區（預設 Asia/Bahrain）為準，不用伺服器本機時區。
"""
from datetime import date, datetime, timedelta
from typing import Optional
from zoneinfo import ZoneInfo

from agentcare.config import settings


def local_now() -> datetime:
    return datetime.now(ZoneInfo(settings.scheduler_timezone))


def local_today() -> date:
    return local_now().date()


def local_tomorrow() -> date:
    return local_today() + timedelta(days=1)


def resolve_period(start: Optional[date], end: Optional[date]) -> tuple[date, date]:
    """未給 start 取今天；未給 end 取 start（單日）"""
    start = start or local_today()
    return start, end or start
