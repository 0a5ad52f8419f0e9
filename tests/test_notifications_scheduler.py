"""
排程通知與排程服務測試：負責人每日摘要（含代理）、通知佇列處理、手動觸發與啟停。
寄信以 FakeEmailClient 取代，不連 SMTP。
"""
import smtplib
from datetime import datetime

import pytest
from sqlalchemy import select

from agentcare import crud
from agentcare.errors import NotFoundError
from agentcare.models import LeaveRequest, Notification
from agentcare.schemas import ServiceRequestCreate, ZoneCreate
from agentcare.services import notifications
from agentcare.services import service_requests as sr_service
from agentcare.services import zone_coverage
from agentcare.services.email_client import EmailClient, EmailNotConfiguredError
from agentcare.services.scheduler import SchedulerService
from agentcare.utils.dates import local_tomorrow


class FakeEmailClient:
    def __init__(self, fail_for=()):
        self.fail_for = set(fail_for)
        self.sent = []

    async def send(self, recipients, subject, text_body, html_body=None):
        if recipients[0] in self.fail_for:
            raise smtplib.SMTPRecipientsRefused({recipients[0]: (550, b"mailbox unavailable")})
        self.sent.append({"to": recipients, "subject": subject, "body": text_body})


async def _tomorrow_request(db, world, zone_id=None, **kw):
    data = {
        "customer_id": world.customer_id,
        "complaint_type_id": world.plumbing_id,
        "title": "AC not cooling",
        "preferred_date": local_tomorrow(),
        "preferred_time_slot": "09:00-11:00",
    }
    if zone_id is None:
        data["unit_id"] = world.unit_id
    else:
        data["property_id"] = world.orphan_property_id
        data["zone_id"] = zone_id
    data.update(kw)
    return await sr_service.create_service_request(db, ServiceRequestCreate(**data))


@pytest.mark.asyncio
async def test_zone_head_gets_tomorrow_summary(db, world):
    sr = await _tomorrow_request(db, world)
    client = FakeEmailClient()
    result = await notifications.send_zone_head_notifications(db, email_client=client)
    assert result["total_notifications"] == 1
    assert result["sent"] == 1
    assert result["failed"] == 0
    assert client.sent[0]["to"] == ["ali@example.com"]
    assert sr.request_no in client.sent[0]["body"]
    assert "09:00-11:00" in client.sent[0]["body"]
    detail = result["details"][0]
    assert detail["zone_id"] == world.zone_id
    assert detail["task_count"] == 1
    assert detail["status"] == "SENT"


@pytest.mark.asyncio
async def test_secondary_head_notified_when_primary_on_leave(db, world):
    await _tomorrow_request(db, world)
    tomorrow = local_tomorrow()
    db.add(LeaveRequest(
        employee_id=world.primary_id, leave_type_id=world.annual_id,
        start_date=tomorrow, end_date=tomorrow, total_days=1, status="APPROVED",
    ))
    await db.flush()
    client = FakeEmailClient()
    result = await notifications.send_zone_head_notifications(db, email_client=client)
    assert result["sent"] == 1
    assert client.sent[0]["to"] == ["sara@example.com"]
    assert "covering zone Zone A" in client.sent[0]["body"]


@pytest.mark.asyncio
async def test_missing_head_or_email_counted_as_failed(db, world):
    zone_b = await crud.create_zone(db, ZoneCreate(name="Zone B", governorate_id=world.governorate_id))
    zone_c = await crud.create_zone(db, ZoneCreate(name="Zone C", governorate_id=world.governorate_id))
    await zone_coverage.assign_employee_to_zone(db, zone_c.id, world.tech_id, "PRIMARY_HEAD")
    await _tomorrow_request(db, world, zone_id=zone_b.id)
    await _tomorrow_request(db, world, zone_id=zone_c.id)

    result = await notifications.send_zone_head_notifications(db, email_client=FakeEmailClient())
    assert result["sent"] == 0
    assert result["failed"] == 2
    errors = {d["zone_name"]: d["error"] for d in result["details"]}
    assert errors["Zone B"] == "No zone head assigned"
    assert errors["Zone C"] == "Zone head Omar Khalid has no email"


@pytest.mark.asyncio
async def test_send_failure_counted_and_closed_requests_skipped(db, world):
    sr = await _tomorrow_request(db, world)
    await _tomorrow_request(db, world, title="Second visit")
    result = await notifications.send_zone_head_notifications(
        db, email_client=FakeEmailClient(fail_for={"ali@example.com"})
    )
    assert result["failed"] == 1
    assert result["details"][0]["task_count"] == 2
    assert result["details"][0]["recipient"] == "ali@example.com"

    sr.status = "COMPLETED"
    await db.flush()
    result = await notifications.send_zone_head_notifications(db, email_client=FakeEmailClient())
    assert result["details"][0]["task_count"] == 1


@pytest.mark.asyncio
async def test_no_work_means_no_notifications(db, world):
    result = await notifications.send_zone_head_notifications(db, for_today=True, email_client=FakeEmailClient())
    assert result == {"total_notifications": 0, "sent": 0, "failed": 0, "details": []}


@pytest.mark.asyncio
async def test_process_due_notifications(db, world):
    now = datetime(2030, 1, 1, 8, 0)
    due = await notifications.queue_notification(db, "a@example.com", "Reminder", "body", datetime(2030, 1, 1, 7, 0))
    bad = await notifications.queue_notification(db, "bad@example.com", "Reminder", "body", datetime(2030, 1, 1, 7, 30))
    later = await notifications.queue_notification(db, "b@example.com", "Later", "body", datetime(2030, 1, 1, 9, 0))

    client = FakeEmailClient(fail_for={"bad@example.com"})
    result = await notifications.process_scheduled_notifications(db, now=now, email_client=client)
    assert result == {"processed": 1, "failed": 1}
    assert due.status == "SENT"
    assert due.sent_at is not None
    assert bad.status == "FAILED"
    assert "mailbox unavailable" in bad.error
    assert later.status == "PENDING"
    # 已處理的不會再寄
    result = await notifications.process_scheduled_notifications(db, now=now, email_client=client)
    assert result == {"processed": 0, "failed": 0}


@pytest.mark.asyncio
async def test_unconfigured_smtp_keeps_queue_pending(db, world):
    """沒設 smtp_host 不算寄出：佇列維持 PENDING，計為失敗"""
    n = await notifications.queue_notification(db, "a@example.com", "Reminder", "body", datetime(2030, 1, 1, 7, 0))
    client = EmailClient(smtp_host=None, smtp_port=25)
    result = await notifications.process_scheduled_notifications(db, now=datetime(2030, 1, 1, 8, 0), email_client=client)
    assert result == {"processed": 0, "failed": 1}
    assert n.status == "PENDING"
    assert n.sent_at is None
    assert n.error == "SMTP is not configured"

    result = await notifications.process_scheduled_notifications(
        db, now=datetime(2030, 1, 1, 8, 0), email_client=FakeEmailClient()
    )
    assert result == {"processed": 1, "failed": 0}
    assert n.status == "SENT"


@pytest.mark.asyncio
async def test_unconfigured_smtp_counts_zone_head_as_failed(db, world):
    await _tomorrow_request(db, world)
    result = await notifications.send_zone_head_notifications(
        db, email_client=EmailClient(smtp_host=None, smtp_port=25)
    )
    assert (result["sent"], result["failed"]) == (0, 1)
    assert result["details"][0]["status"] == "FAILED"
    assert result["details"][0]["error"] == "SMTP is not configured"


def test_unconfigured_client_raises():
    with pytest.raises(EmailNotConfiguredError):
        EmailClient(smtp_host="", smtp_port=25).send_email(["a@example.com"], "s", "b")


# ---------- SchedulerService ----------
@pytest.mark.asyncio
async def test_trigger_job_commits_in_own_session(async_engine_and_session, world):
    _, async_session = async_engine_and_session
    async with async_session() as session:
        await notifications.queue_notification(session, "a@example.com", "Hi", "body", datetime(2020, 1, 1))
        await session.commit()

    client = FakeEmailClient()
    svc = SchedulerService(session_factory=async_session, email_client=client, timezone="UTC")
    result = await svc.trigger_job("notification-processor")
    assert result == {"processed": 1, "failed": 0}
    async with async_session() as session:
        statuses = (await session.execute(select(Notification.status))).scalars().all()
    assert statuses == ["SENT"]


@pytest.mark.asyncio
async def test_zone_head_jobs_return_counts(async_engine_and_session, world):
    _, async_session = async_engine_and_session
    svc = SchedulerService(session_factory=async_session, email_client=FakeEmailClient(), timezone="UTC")
    for name in ("zone-head-evening", "zone-head-morning"):
        result = await svc.trigger_job(name)
        assert result["total_notifications"] == 0


@pytest.mark.asyncio
async def test_unknown_job_and_status(async_engine_and_session):
    _, async_session = async_engine_and_session
    svc = SchedulerService(session_factory=async_session, timezone="UTC")
    assert [j["name"] for j in svc.list_jobs()] == ["zone-head-evening", "zone-head-morning", "notification-processor"]
    assert svc.get_job_status("nope") is None
    with pytest.raises(NotFoundError):
        await svc.trigger_job("nope")
    with pytest.raises(NotFoundError):
        svc.stop_job("nope")


@pytest.mark.asyncio
async def test_start_stop_jobs_with_running_scheduler(async_engine_and_session):
    _, async_session = async_engine_and_session
    svc = SchedulerService(session_factory=async_session, timezone="UTC")
    svc.stop_job("zone-head-morning")
    svc.start()
    try:
        assert svc.running
        assert svc.get_job_status("zone-head-evening")["next_run_time"] is not None
        paused = svc.get_job_status("zone-head-morning")
        assert paused["enabled"] is False
        assert paused["next_run_time"] is None
        svc.start_job("zone-head-morning")
        assert svc.get_job_status("zone-head-morning")["next_run_time"] is not None
        svc.stop_all()
        assert all(not j["enabled"] for j in svc.list_jobs())
    finally:
        svc.shutdown()
    assert not svc.running


@pytest.mark.asyncio
async def test_scheduled_run_swallows_errors(async_engine_and_session):
    """cron 觸發時 handler 例外只記 log，不往外丟"""
    _, async_session = async_engine_and_session
    svc = SchedulerService(session_factory=async_session, timezone="UTC")

    async def broken(db):
        raise RuntimeError("boom")

    svc.jobs["notification-processor"].handler = broken
    await svc._run_scheduled("notification-processor")
    with pytest.raises(RuntimeError):
        await svc.trigger_job("notification-processor")
