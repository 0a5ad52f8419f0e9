"""
責任區團隊與代理判斷。

正副負責人只記錄在 employee_zones（role = PRIMARY_HEAD / SECONDARY_HEAD，is_active=True）。
每個 zone 同一時間最多一位有效的 PRIMARY_HEAD、一位有效的 SECONDARY_HEAD：
指派新負責人時，先停用該角色的前一位。

代理判斷：主負責人在目標日有已核准的請假 → 由副負責人代理；
找不到負責人時不丟例外，而以 None / 布林旗標回報。
"""
import logging
from collections import defaultdict
from datetime import date
from typing import Dict, List, Optional, Tuple

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from agentcare.crud import get_or_404
from agentcare.errors import BadRequestError, NotFoundError
from agentcare.models import (
    Employee, EmployeeZone, LeaveRequest, ServiceRequest, Zone, HEAD_ROLES, OPEN_SERVICE_REQUEST_STATUSES, ZONE_ROLES,
)
from agentcare.utils.dates import local_today, resolve_period

logger = logging.getLogger(__name__)


async def _get_zone(db: AsyncSession, zone_id: int) -> Zone:
    return await get_or_404(db, Zone, zone_id, "Zone")


async def get_zone_heads(db: AsyncSession, zone_id: int) -> Tuple[Optional[Employee], Optional[Employee]]:
    """(primary_head, secondary_head)；未指派為 None"""
    heads = await _heads_by_zone(db, [zone_id])
    return heads.get(zone_id, (None, None))


async def _heads_by_zone(db: AsyncSession, zone_ids: List[int]) -> Dict[int, Tuple[Optional[Employee], Optional[Employee]]]:
    if not zone_ids:
        return {}
    r = await db.execute(
        select(EmployeeZone.zone_id, EmployeeZone.role, Employee)
        .join(Employee, Employee.id == EmployeeZone.employee_id)
        .where(
            EmployeeZone.zone_id.in_(zone_ids),
            EmployeeZone.is_active == True,  # noqa: E712
            EmployeeZone.role.in_(HEAD_ROLES),
        )
        .order_by(EmployeeZone.id)
    )
    out: Dict[int, List[Optional[Employee]]] = defaultdict(lambda: [None, None])
    for zone_id, role, emp in r.all():
        out[zone_id][0 if role == "PRIMARY_HEAD" else 1] = emp
    return {k: (v[0], v[1]) for k, v in out.items()}


async def _approved_leaves(
    db: AsyncSession, employee_ids: List[int], start: date, end: date
) -> List[LeaveRequest]:
    """employee_ids 在 [start, end] 內有重疊的已核准請假，一次查完"""
    if not employee_ids:
        return []
    r = await db.execute(
        select(LeaveRequest)
        .where(
            LeaveRequest.employee_id.in_(employee_ids),
            LeaveRequest.status == "APPROVED",
            LeaveRequest.overlaps(start, end),
        )
        .order_by(LeaveRequest.start_date, LeaveRequest.id)
    )
    return list(r.scalars().all())


# ---------- 團隊 team ----------
async def get_zone_team(db: AsyncSession, zone_id: int) -> dict:
    zone = await _get_zone(db, zone_id)
    r = await db.execute(
        select(EmployeeZone.role, Employee)
        .join(Employee, Employee.id == EmployeeZone.employee_id)
        .where(EmployeeZone.zone_id == zone_id, EmployeeZone.is_active == True)  # noqa: E712
        .order_by(Employee.first_name, Employee.last_name)
    )
    team = {"zone": zone, "primary_head": None, "secondary_head": None, "technicians": [], "helpers": []}
    for role, emp in r.all():
        if role == "PRIMARY_HEAD":
            team["primary_head"] = emp
        elif role == "SECONDARY_HEAD":
            team["secondary_head"] = emp
        elif role == "TECHNICIAN":
            team["technicians"].append(emp)
        else:
            team["helpers"].append(emp)
    return team


async def assign_employee_to_zone(
    db: AsyncSession, zone_id: int, employee_id: int, role: str, is_primary: bool = False
) -> EmployeeZone:
    """新增或更新 (employee, zone) 成員列；負責人角色會先停用同 zone 的前一位"""
    if role not in ZONE_ROLES:
        raise BadRequestError(f"role must be one of {', '.join(ZONE_ROLES)}")
    await _get_zone(db, zone_id)
    await get_or_404(db, Employee, employee_id, "Employee")

    if role in HEAD_ROLES:
        r = await db.execute(
            select(EmployeeZone).where(
                EmployeeZone.zone_id == zone_id,
                EmployeeZone.role == role,
                EmployeeZone.is_active == True,  # noqa: E712
                EmployeeZone.employee_id != employee_id,
            )
        )
        for previous in r.scalars().all():
            previous.is_active = False
            logger.info("zone %s: %s employee %s replaced by %s", zone_id, role, previous.employee_id, employee_id)

    r = await db.execute(
        select(EmployeeZone).where(EmployeeZone.zone_id == zone_id, EmployeeZone.employee_id == employee_id)
    )
    member = r.scalar_one_or_none()
    if member is None:
        member = EmployeeZone(zone_id=zone_id, employee_id=employee_id)
        db.add(member)
    member.role = role
    member.is_primary = is_primary
    member.is_active = True
    await db.flush()
    await db.refresh(member)
    return member


async def remove_employee_from_zone(db: AsyncSession, zone_id: int, employee_id: int) -> EmployeeZone:
    await _get_zone(db, zone_id)
    r = await db.execute(
        select(EmployeeZone).where(
            EmployeeZone.zone_id == zone_id,
            EmployeeZone.employee_id == employee_id,
            EmployeeZone.is_active == True,  # noqa: E712
        )
    )
    member = r.scalar_one_or_none()
    if member is None:
        raise NotFoundError("Employee is not assigned to this zone")
    member.is_active = False
    await db.flush()
    await db.refresh(member)
    return member


async def _clear_head(db: AsyncSession, zone_id: int, role: str) -> None:
    r = await db.execute(
        select(EmployeeZone).where(
            EmployeeZone.zone_id == zone_id,
            EmployeeZone.role == role,
            EmployeeZone.is_active == True,  # noqa: E712
        )
    )
    for member in r.scalars().all():
        member.is_active = False
    await db.flush()


async def update_zone_heads(db: AsyncSession, zone_id: int, changes: dict) -> dict:
    """changes 可含 primary_head_id / secondary_head_id；值為 None 表示解除"""
    await _get_zone(db, zone_id)
    primary_id = changes.get("primary_head_id")
    secondary_id = changes.get("secondary_head_id")
    if primary_id is not None and primary_id == secondary_id:
        raise BadRequestError("Primary and secondary head must be different employees")
    for key, role in (("primary_head_id", "PRIMARY_HEAD"), ("secondary_head_id", "SECONDARY_HEAD")):
        if key not in changes:
            continue
        if changes[key] is None:
            await _clear_head(db, zone_id, role)
        else:
            await assign_employee_to_zone(db, zone_id, changes[key], role)
    return await get_zone_team(db, zone_id)


# ---------- 代理判斷 coverage ----------
async def get_active_zone_head(db: AsyncSession, zone_id: int, on_date: Optional[date] = None) -> dict:
    target = on_date or local_today()
    zone = await _get_zone(db, zone_id)
    primary, secondary = await get_zone_heads(db, zone_id)

    primary_on_leave = False
    if primary is not None:
        primary_on_leave = bool(await _approved_leaves(db, [primary.id], target, target))

    using_secondary = primary_on_leave and secondary is not None
    return {
        "zone": zone,
        "date": target,
        "primary_head": primary,
        "secondary_head": secondary,
        "active_head": secondary if using_secondary else primary,
        "is_primary_on_leave": primary_on_leave,
        "is_using_secondary": using_secondary,
    }


def classify_coverage(
    primary_on_leave: bool, has_secondary: bool, secondary_on_leave: bool, team_on_leave: int
) -> Tuple[str, str]:
    """負責人狀況優先；只有在原本 FULL 時才看一般成員請假（PARTIAL）"""
    status, note = "FULL", "Zone fully covered"
    if primary_on_leave:
        if has_secondary and not secondary_on_leave:
            status, note = "SECONDARY", "Primary head on leave. Secondary head covering."
        elif has_secondary:
            status, note = "CRITICAL", "Both primary and secondary heads on leave!"
        else:
            status, note = "CRITICAL", "Primary head on leave and no secondary head assigned!"
    if team_on_leave > 0 and status == "FULL":
        status, note = "PARTIAL", f"{team_on_leave} team member(s) on leave"
    return status, note


async def get_zone_coverage_status(
    db: AsyncSession, zone_id: int, start: Optional[date] = None, end: Optional[date] = None
) -> dict:
    start, end = resolve_period(start, end)
    if end < start:
        raise BadRequestError("endDate must not be before startDate")
    zone = await _get_zone(db, zone_id)
    primary, secondary = await get_zone_heads(db, zone_id)

    r = await db.execute(
        select(EmployeeZone.employee_id).where(
            EmployeeZone.zone_id == zone_id, EmployeeZone.is_active == True  # noqa: E712
        )
    )
    member_ids = {row[0] for row in r.all()}
    head_ids = {e.id for e in (primary, secondary) if e is not None}
    leaves = await _approved_leaves(db, sorted(member_ids | head_ids), start, end)

    on_leave = {lr.employee_id for lr in leaves}
    primary_on_leave = primary is not None and primary.id in on_leave
    secondary_on_leave = secondary is not None and secondary.id in on_leave
    team_leaves = [lr for lr in leaves if lr.employee_id not in head_ids]
    status, note = classify_coverage(primary_on_leave, secondary is not None, secondary_on_leave, len(team_leaves))
    if status == "SECONDARY":
        note = f"Primary head on leave. Secondary head ({secondary.full_name}) covering."

    return {
        "zone": zone,
        "period": {"start_date": start, "end_date": end},
        "coverage_status": status,
        "coverage_note": note,
        "primary_head": primary,
        "secondary_head": secondary,
        "is_primary_on_leave": primary_on_leave,
        "is_secondary_on_leave": secondary_on_leave,
        "leave_requests": leaves,
        "team_count": len(member_ids),
        "on_leave_count": len(leaves),
    }


async def get_all_zones_coverage_status(db: AsyncSession, on_date: Optional[date] = None) -> dict:
    """所有啟用中 zone 的負責人覆蓋狀況；負責人、請假、人數、未結報修數各一次查詢"""
    target = on_date or local_today()
    r = await db.execute(select(Zone).where(Zone.is_active == True).order_by(Zone.name, Zone.id))  # noqa: E712
    zones = list(r.scalars().all())
    zone_ids = [z.id for z in zones]

    heads = await _heads_by_zone(db, zone_ids)
    head_ids = sorted({e.id for pair in heads.values() for e in pair if e is not None})
    on_leave = {lr.employee_id for lr in await _approved_leaves(db, head_ids, target, target)}

    team_counts: Dict[int, int] = {}
    request_counts: Dict[int, int] = {}
    if zone_ids:
        r = await db.execute(
            select(EmployeeZone.zone_id, func.count(EmployeeZone.id))
            .where(EmployeeZone.zone_id.in_(zone_ids), EmployeeZone.is_active == True)  # noqa: E712
            .group_by(EmployeeZone.zone_id)
        )
        team_counts = {zid: cnt for zid, cnt in r.all()}
        r = await db.execute(
            select(ServiceRequest.zone_id, func.count(ServiceRequest.id))
            .where(ServiceRequest.zone_id.in_(zone_ids), ServiceRequest.status.in_(OPEN_SERVICE_REQUEST_STATUSES))
            .group_by(ServiceRequest.zone_id)
        )
        request_counts = {zid: cnt for zid, cnt in r.all()}

    summary = []
    for zone in zones:
        primary, secondary = heads.get(zone.id, (None, None))
        primary_on_leave = primary is not None and primary.id in on_leave
        secondary_on_leave = secondary is not None and secondary.id in on_leave
        status, _ = classify_coverage(primary_on_leave, secondary is not None, secondary_on_leave, 0)
        summary.append({
            "zone": zone,
            "primary_head": primary,
            "secondary_head": secondary,
            "is_primary_on_leave": primary_on_leave,
            "is_secondary_on_leave": secondary_on_leave,
            "status": status,
            "team_count": team_counts.get(zone.id, 0),
            "active_requests": request_counts.get(zone.id, 0),
        })

    critical = sum(1 for z in summary if z["status"] == "CRITICAL")
    secondary_count = sum(1 for z in summary if z["status"] == "SECONDARY")
    return {
        "date": target,
        "total_zones": len(zones),
        "full_coverage": len(zones) - critical - secondary_count,
        "secondary_coverage": secondary_count,
        "critical_coverage": critical,
        "zones": summary,
    }
