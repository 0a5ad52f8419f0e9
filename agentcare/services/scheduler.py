"""
排程工作登記表：名稱 → (cron, 說明, handler)。

APScheduler 只負責依 cron 觸發；handler 本身可由 trigger_job 直接呼叫（手動執行、測試）。
每次執行開一個獨立 session，成功 commit、失敗 rollback；排程觸發時例外只記 log，不影響下一輪。
"""
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, List, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from agentcare.config import settings
from agentcare.database import AsyncSessionLocal
from agentcare.errors import NotFoundError
from agentcare.services.email_client import EmailClient
from agentcare.services.notifications import process_scheduled_notifications, send_zone_head_notifications

logger = logging.getLogger(__name__)

JobHandler = Callable[[AsyncSession], Awaitable[dict]]


@dataclass
class ScheduledJob:
    name: str
    schedule: str
    description: str
    handler: JobHandler
    enabled: bool = True


class SchedulerService:
    def __init__(
        self,
        session_factory: async_sessionmaker = AsyncSessionLocal,
        email_client: Optional[EmailClient] = None,
        timezone: Optional[str] = None,
    ):
        self.session_factory = session_factory
        self.email_client = email_client
        self.timezone = timezone or settings.scheduler_timezone
        self._scheduler: Optional[AsyncIOScheduler] = None
        self.jobs: Dict[str, ScheduledJob] = {}
        self._register(
            "zone-head-evening", settings.zone_head_evening_cron,
            "Send tomorrow's tasks to zone heads", self._zone_head_evening,
        )
        self._register(
            "zone-head-morning", settings.zone_head_morning_cron,
            "Send today's tasks reminder to zone heads", self._zone_head_morning,
        )
        self._register(
            "notification-processor", settings.notification_processor_cron,
            "Process scheduled notifications", self._notification_processor,
        )

    def _register(self, name: str, schedule: str, description: str, handler: JobHandler) -> None:
        self.jobs[name] = ScheduledJob(name=name, schedule=schedule, description=description, handler=handler)

    # ---------- handlers ----------
    async def _zone_head_evening(self, db: AsyncSession) -> dict:
        return await send_zone_head_notifications(db, for_today=False, for_tomorrow=True, email_client=self.email_client)

    async def _zone_head_morning(self, db: AsyncSession) -> dict:
        return await send_zone_head_notifications(db, for_today=True, for_tomorrow=False, email_client=self.email_client)

    async def _notification_processor(self, db: AsyncSession) -> dict:
        return await process_scheduled_notifications(db, email_client=self.email_client)

    # ---------- lifecycle ----------
    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    def start(self) -> None:
        """建立 AsyncIOScheduler 並依 cron 掛上所有已啟用的工作；需在 event loop 內呼叫"""
        if self.running:
            return
        self._scheduler = AsyncIOScheduler(timezone=self.timezone)
        for job in self.jobs.values():
            self._scheduler.add_job(
                self._run_scheduled,
                CronTrigger.from_crontab(job.schedule, timezone=self.timezone),
                args=[job.name],
                id=job.name,
                replace_existing=True,
            )
            if not job.enabled:
                self._scheduler.pause_job(job.name)
        self._scheduler.start()
        logger.info("Scheduler started with %s jobs (%s)", len(self.jobs), self.timezone)

    def shutdown(self) -> None:
        if self._scheduler is not None:
            self._scheduler.shutdown(wait=False)
            self._scheduler = None
            logger.info("Scheduler stopped")

    async def _run_scheduled(self, name: str) -> None:
        logger.info("Running scheduled job %s", name)
        try:
            result = await self.trigger_job(name)
        except Exception:
            logger.exception("Scheduled job %s failed", name)
            return
        logger.info("Scheduled job %s completed: %s", name, result)

    # ---------- 管理 ----------
    def _get(self, name: str) -> ScheduledJob:
        job = self.jobs.get(name)
        if job is None:
            raise NotFoundError(f"Job '{name}' not found")
        return job

    def get_job_status(self, name: str) -> Optional[dict]:
        job = self.jobs.get(name)
        if job is None:
            return None
        next_run = None
        if self.running:
            aps_job = self._scheduler.get_job(name)
            next_run = aps_job.next_run_time if aps_job is not None else None
        return {
            "name": job.name,
            "schedule": job.schedule,
            "description": job.description,
            "enabled": job.enabled,
            "next_run_time": next_run,
        }

    def list_jobs(self) -> List[dict]:
        return [self.get_job_status(name) for name in self.jobs]

    async def trigger_job(self, name: str) -> dict:
        """直接執行 handler（不等 cron），回傳 handler 結果"""
        job = self._get(name)
        async with self.session_factory() as db:
            try:
                result = await job.handler(db)
                await db.commit()
            except Exception:
                await db.rollback()
                raise
        return result

    def stop_job(self, name: str) -> None:
        job = self._get(name)
        job.enabled = False
        if self.running:
            self._scheduler.pause_job(name)
        logger.info("Stopped scheduled job %s", name)

    def start_job(self, name: str) -> None:
        job = self._get(name)
        job.enabled = True
        if self.running:
            self._scheduler.resume_job(name)
        logger.info("Started scheduled job %s", name)

    def stop_all(self) -> None:
        for name in self.jobs:
            self.stop_job(name)

    def start_all(self) -> None:
        for name in self.jobs:
            self.start_job(name)


scheduler_service = SchedulerService()
