"""
報修單：建立時自動派工、時間軸、狀態變更、手動指派、取消、統計。

自動派工順序（責任區必須可解析，否則 400）：
1. 區內有效成員中，部門與報修類別部門相同的在職員工
2. 區內有效的負責人，依 HEAD_ROLE_RANK（PRIMARY_HEAD 先於 SECONDARY_HEAD），且員工仍在職
找不到時維持 NEW、不指派。
"""
import logging
import secrets
import string
from datetime import date
from typing import List, Optional, Tuple

from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from agentcare.crud import area_id_for_premise, get_or_404, paginate, resolve_zone_for_area
from agentcare.errors import BadRequestError, NotFoundError
from agentcare.models import (
    ComplaintType, Customer, Employee, EmployeeZone, RequestTimeline, ServiceRequest, Zone,
    HEAD_ROLES, HEAD_ROLE_RANK,
)
from agentcare.schemas import ServiceRequestCreate, ServiceRequestUpdate
from agentcare.utils.dates import local_today

logger = logging.getLogger(__name__)

CANCELLABLE_STATUSES = ("NEW", "CANCELLED")
_REQUEST_NO_ALPHABET = string.ascii_uppercase + string.digits


def generate_request_no(today: Optional[date] = None) -> str:
    """SRyymm-XXXXXX"""
    today = today or local_today()
    suffix = "".join(secrets.choice(_REQUEST_NO_ALPHABET) for _ in range(6))
    return f"SR{today:%y%m}-{suffix}"


async def _unique_request_no(db: AsyncSession) -> str:
    while True:
        no = generate_request_no()
        r = await db.execute(select(ServiceRequest.id).where(ServiceRequest.request_no == no))
        if r.first() is None:
            return no


def _add_timeline(
    db: AsyncSession, sr: ServiceRequest, action: str, description: str, performed_by: Optional[str] = None
) -> None:
    db.add(RequestTimeline(
        service_request_id=sr.id, action=action, description=description, performed_by=performed_by,
    ))


async def find_auto_assignee(
    db: AsyncSession, zone: Zone, complaint_type: ComplaintType
) -> Tuple[Optional[Employee], Optional[str]]:
    """回傳 (員工, 派工原因)；無人可派為 (None, None)"""
    if complaint_type.department_id is not None:
        r = await db.execute(
            select(Employee)
            .join(EmployeeZone, EmployeeZone.employee_id == Employee.id)
            .where(
                EmployeeZone.zone_id == zone.id,
                EmployeeZone.is_active == True,  # noqa: E712
                Employee.is_active == True,  # noqa: E712
                Employee.department_id == complaint_type.department_id,
            )
            .order_by(EmployeeZone.id)
        )
        emp = r.scalars().first()
        if emp is not None:
            return emp, f"Auto-assigned to {emp.full_name} (department match in zone {zone.name})"

    r = await db.execute(
        select(EmployeeZone.role, Employee)
        .join(Employee, Employee.id == EmployeeZone.employee_id)
        .where(
            EmployeeZone.zone_id == zone.id,
            EmployeeZone.is_active == True,  # noqa: E712
            EmployeeZone.role.in_(HEAD_ROLES),
            Employee.is_active == True,  # noqa: E712
        )
    )
    heads = sorted(r.all(), key=lambda row: HEAD_ROLE_RANK[row[0]])
    if heads:
        role, emp = heads[0]
        label = "primary" if role == "PRIMARY_HEAD" else "secondary"
        return emp, f"Auto-assigned to {emp.full_name} ({label} head of zone {zone.name})"
    return None, None


async def create_service_request(
    db: AsyncSession, data: ServiceRequestCreate, performed_by: Optional[str] = None
) -> ServiceRequest:
    await get_or_404(db, Customer, data.customer_id, "Customer")
    if (data.unit_id is None) == (data.property_id is None):
        raise BadRequestError("Exactly one of unitId or propertyId is required")
    area_id = await area_id_for_premise(db, unit_id=data.unit_id, property_id=data.property_id)
    complaint_type = await get_or_404(db, ComplaintType, data.complaint_type_id, "Complaint type")

    if data.zone_id is not None:
        zone = await get_or_404(db, Zone, data.zone_id, "Zone")
    else:
        zone = await resolve_zone_for_area(db, area_id)
        if zone is None:
            raise BadRequestError("Could not determine zone for this property; please specify zoneId")

    assignee, reason = await find_auto_assignee(db, zone, complaint_type)

    sr = ServiceRequest(
        request_no=await _unique_request_no(db),
        customer_id=data.customer_id,
        unit_id=data.unit_id,
        property_id=data.property_id,
        zone_id=zone.id,
        complaint_type_id=complaint_type.id,
        assigned_to_id=assignee.id if assignee else None,
        request_type=data.request_type,
        priority=data.priority,
        status="ASSIGNED" if assignee else "NEW",
        title=data.title,
        description=data.description,
        preferred_date=data.preferred_date,
        preferred_time_slot=data.preferred_time_slot,
    )
    db.add(sr)
    await db.flush()
    _add_timeline(db, sr, "REQUEST_CREATED", "Service request created", performed_by)
    if assignee is not None:
        _add_timeline(db, sr, "AUTO_ASSIGNED", reason)
    await db.flush()
    await db.refresh(sr)
    if assignee is None:
        logger.info("service request %s created in zone %s without assignee", sr.request_no, zone.id)
    else:
        logger.info("service request %s auto-assigned to employee %s", sr.request_no, assignee.id)
    return sr


async def get_service_request(db: AsyncSession, request_id: int, load_timeline: bool = False) -> ServiceRequest:
    if not load_timeline:
        return await get_or_404(db, ServiceRequest, request_id, "Service request")
    r = await db.execute(
        select(ServiceRequest)
        .options(selectinload(ServiceRequest.timeline))
        .where(ServiceRequest.id == request_id)
        .execution_options(populate_existing=True)
    )
    sr = r.scalar_one_or_none()
    if sr is None:
        raise NotFoundError("Service request not found")
    return sr


async def list_service_requests(
    db: AsyncSession,
    *,
    page: int = 1,
    limit: int = 20,
    q: Optional[str] = None,
    status: Optional[str] = None,
    priority: Optional[str] = None,
    customer_id: Optional[int] = None,
    assigned_to_id: Optional[int] = None,
    zone_id: Optional[int] = None,
) -> Tuple[List[ServiceRequest], int]:
    stmt = select(ServiceRequest)
    if q and q.strip():
        kw = f"%{q.strip()}%"
        stmt = stmt.where(or_(
            ServiceRequest.request_no.ilike(kw),
            ServiceRequest.title.ilike(kw),
            ServiceRequest.description.ilike(kw),
        ))
    if status:
        stmt = stmt.where(ServiceRequest.status == status)
    if priority:
        stmt = stmt.where(ServiceRequest.priority == priority)
    if customer_id is not None:
        stmt = stmt.where(ServiceRequest.customer_id == customer_id)
    if assigned_to_id is not None:
        stmt = stmt.where(ServiceRequest.assigned_to_id == assigned_to_id)
    if zone_id is not None:
        stmt = stmt.where(ServiceRequest.zone_id == zone_id)
    return await paginate(db, stmt.order_by(ServiceRequest.created_at.desc(), ServiceRequest.id.desc()), page, limit)


async def update_service_request(
    db: AsyncSession, request_id: int, data: ServiceRequestUpdate, performed_by: Optional[str] = None
) -> ServiceRequest:
    sr = await get_service_request(db, request_id)
    update_data = data.model_dump(exclude_unset=True)
    old_status = sr.status
    for k, v in update_data.items():
        if v is None and k in ("status", "priority", "title"):
            continue
        setattr(sr, k, v)
    if sr.status != old_status:
        _add_timeline(db, sr, "STATUS_CHANGED", f"Status changed from {old_status} to {sr.status}", performed_by)
    await db.flush()
    await db.refresh(sr)
    return sr


async def assign_service_request(
    db: AsyncSession, request_id: int, employee_id: int, performed_by: Optional[str] = None, notes: Optional[str] = None
) -> ServiceRequest:
    sr = await get_service_request(db, request_id)
    if sr.status in ("CANCELLED", "CLOSED", "COMPLETED"):
        raise BadRequestError(f"Cannot assign a {sr.status.lower()} request")
    emp = await get_or_404(db, Employee, employee_id, "Employee")
    if not emp.is_active:
        raise BadRequestError("Employee is not active")
    sr.assigned_to_id = emp.id
    sr.status = "ASSIGNED"
    description = f"Assigned to {emp.full_name}"
    if notes:
        description = f"{description}: {notes}"
    _add_timeline(db, sr, "ASSIGNED", description, performed_by)
    await db.flush()
    await db.refresh(sr)
    return sr


async def cancel_service_request(
    db: AsyncSession, request_id: int, performed_by: Optional[str] = None, reason: Optional[str] = None
) -> ServiceRequest:
    """只有 NEW（或已取消）可取消；已派工的單需走狀態流程"""
    sr = await get_service_request(db, request_id)
    if sr.status not in CANCELLABLE_STATUSES:
        raise BadRequestError("Can only cancel new or cancelled requests")
    if sr.status != "CANCELLED":
        sr.status = "CANCELLED"
        _add_timeline(db, sr, "STATUS_CHANGED", reason or "Service request cancelled", performed_by)
        await db.flush()
        await db.refresh(sr)
    return sr


async def get_service_request_stats(db: AsyncSession) -> dict:
    total = (await db.execute(select(func.count(ServiceRequest.id)))).scalar_one()
    r = await db.execute(select(ServiceRequest.status, func.count(ServiceRequest.id)).group_by(ServiceRequest.status))
    by_status = {status: cnt for status, cnt in r.all()}
    r = await db.execute(select(ServiceRequest.priority, func.count(ServiceRequest.id)).group_by(ServiceRequest.priority))
    by_priority = {priority: cnt for priority, cnt in r.all()}
    return {"total": total, "by_status": by_status, "by_priority": by_priority}
