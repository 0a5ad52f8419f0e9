"""
排程通知：
- 責任區負責人每日工作摘要（晚上寄明天、早上寄今天），收件人取「當天有效負責人」（主負責人請假時為副負責人）
- 佇列通知處理：寄出 scheduled_at 已到的 PENDING 通知

寄送失敗只記 log 與計數，不重試；下一輪排程照常執行。
SMTP 未設定時一律計為失敗；佇列通知維持 PENDING，待設定後由下一輪寄出。
"""
import logging
import smtplib
from collections import defaultdict
from datetime import date, datetime
from typing import Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from agentcare.config import settings
from agentcare.models import Notification, ServiceRequest, Zone, OPEN_SERVICE_REQUEST_STATUSES
from agentcare.services.email_client import EmailClient, EmailNotConfiguredError, get_email_client
from agentcare.services.zone_coverage import get_active_zone_head
from agentcare.utils.dates import local_today, local_tomorrow

logger = logging.getLogger(__name__)

SEND_ERRORS = (smtplib.SMTPException, OSError, EmailNotConfiguredError)


def _task_summary(zone: Zone, head_name: str, target: date, requests: List[ServiceRequest], covering: bool) -> str:
    lines = [f"Dear {head_name},", ""]
    if covering:
        lines.append(f"You are covering zone {zone.name} while the primary head is on leave.")
    lines.append(f"Service requests scheduled in zone {zone.name} for {target:%A, %d %B %Y}:")
    lines.append("")
    for sr in requests:
        slot = f" ({sr.preferred_time_slot})" if sr.preferred_time_slot else ""
        lines.append(f"- {sr.request_no} [{sr.priority}] {sr.title}{slot}")
    lines.extend(["", f"Open the back office: {settings.back_office_url}"])
    return "\n".join(lines)


async def _open_requests_by_zone(db: AsyncSession, target: date) -> Dict[int, List[ServiceRequest]]:
    r = await db.execute(
        select(ServiceRequest)
        .join(Zone, Zone.id == ServiceRequest.zone_id)
        .where(
            ServiceRequest.preferred_date == target,
            ServiceRequest.status.in_(OPEN_SERVICE_REQUEST_STATUSES),
            Zone.is_active == True,  # noqa: E712
        )
        .order_by(ServiceRequest.zone_id, ServiceRequest.preferred_time_slot, ServiceRequest.id)
    )
    grouped: Dict[int, List[ServiceRequest]] = defaultdict(list)
    for sr in r.scalars().all():
        grouped[sr.zone_id].append(sr)
    return grouped


async def send_zone_head_notifications(
    db: AsyncSession,
    for_today: bool = False,
    for_tomorrow: bool = True,
    email_client: Optional[EmailClient] = None,
) -> dict:
    """每個有工作的 zone 寄一封給當天有效負責人；無負責人或無 e-mail 計為失敗"""
    client = email_client or get_email_client()
    targets = []
    if for_today:
        targets.append(local_today())
    if for_tomorrow:
        targets.append(local_tomorrow())

    sent = failed = 0
    details = []
    for target in targets:
        for zone_id, requests in (await _open_requests_by_zone(db, target)).items():
            info = await get_active_zone_head(db, zone_id, target)
            zone, head = info["zone"], info["active_head"]
            detail = {"zone_id": zone_id, "zone_name": zone.name, "date": target, "task_count": len(requests)}
            if head is None or not head.email:
                failed += 1
                reason = "No zone head assigned" if head is None else f"Zone head {head.full_name} has no email"
                logger.warning("zone %s on %s: %s", zone_id, target, reason)
                details.append({**detail, "status": "FAILED", "error": reason})
                continue
            subject = f"[{zone.name}] {len(requests)} task(s) for {target:%d %b %Y}"
            body = _task_summary(zone, head.full_name, target, requests, info["is_using_secondary"])
            try:
                await client.send([head.email], subject, body)
            except SEND_ERRORS as e:
                failed += 1
                logger.warning("zone head email to %s failed: %s", head.email, e)
                details.append({**detail, "recipient": head.email, "status": "FAILED", "error": str(e)})
                continue
            sent += 1
            details.append({**detail, "recipient": head.email, "status": "SENT"})

    logger.info("zone head notifications: %s sent, %s failed", sent, failed)
    return {"total_notifications": sent + failed, "sent": sent, "failed": failed, "details": details}


# ---------- 通知佇列 ----------
async def queue_notification(
    db: AsyncSession, recipient_email: str, subject: str, body: str, scheduled_at: Optional[datetime] = None
) -> Notification:
    n = Notification(
        recipient_email=recipient_email,
        subject=subject,
        body=body,
        scheduled_at=scheduled_at or datetime.utcnow(),
        status="PENDING",
    )
    db.add(n)
    await db.flush()
    await db.refresh(n)
    return n


async def process_scheduled_notifications(
    db: AsyncSession, now: Optional[datetime] = None, email_client: Optional[EmailClient] = None
) -> dict:
    """寄出到期的 PENDING 通知，逐筆標記 SENT / FAILED；SMTP 未設定者保留 PENDING"""
    client = email_client or get_email_client()
    now = now or datetime.utcnow()
    r = await db.execute(
        select(Notification)
        .where(Notification.status == "PENDING", Notification.scheduled_at <= now)
        .order_by(Notification.scheduled_at, Notification.id)
    )
    processed = failed = 0
    for n in r.scalars().all():
        try:
            await client.send([n.recipient_email], n.subject, n.body)
        except EmailNotConfiguredError as e:
            n.error = str(e)
            failed += 1
            logger.warning("notification %s to %s not sent: %s", n.id, n.recipient_email, e)
            continue
        except SEND_ERRORS as e:
            n.status = "FAILED"
            n.error = str(e)
            failed += 1
            logger.warning("notification %s to %s failed: %s", n.id, n.recipient_email, e)
            continue
        n.status = "SENT"
        n.sent_at = datetime.utcnow()
        processed += 1
    await db.flush()
    return {"processed": processed, "failed": failed}
