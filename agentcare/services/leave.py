"""
請假：假別、請假單狀態機、年度假別餘額。

狀態：PENDING → APPROVED / REJECTED / CANCELLED；APPROVED → CANCELLED。不可回到 PENDING。
餘額計數（皆以請假單 total_days 為單位）：
- 建立 PENDING：pending += days
- 建立時即核准（假別不需審核）：used += days，pending 不動
- 核准：pending -= days、used += days
- 駁回 / 取消 PENDING：pending -= days
- 取消 APPROVED：used -= days
餘額列一律以 SELECT ... FOR UPDATE 取得，讀取、檢查、寫入在同一個 request transaction 內完成。
"""
import logging
from datetime import date, datetime
from typing import List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from agentcare.crud import get_or_404, paginate
from agentcare.errors import ConflictError, ValidationError
from agentcare.models import Employee, EmployeeZone, LeaveBalance, LeaveRequest, LeaveType
from agentcare.schemas import LeaveRequestCreate, LeaveRequestUpdate, LeaveTypeCreate, LeaveTypeUpdate
from agentcare.utils.dates import local_today

logger = logging.getLogger(__name__)


def count_leave_days(start: date, end: date) -> int:
    """含頭含尾的天數；end 早於 start 時 ValidationError"""
    if end < start:
        raise ValidationError("End date must be after start date")
    return (end - start).days + 1


def _check_max_consecutive(leave_type: LeaveType, total_days: int) -> None:
    if leave_type.max_consecutive_days and total_days > leave_type.max_consecutive_days:
        raise ValidationError(
            f"Maximum consecutive days for {leave_type.name} is {leave_type.max_consecutive_days}"
        )


# ---------- 假別 leave types ----------
async def create_leave_type(db: AsyncSession, data: LeaveTypeCreate) -> LeaveType:
    r = await db.execute(select(LeaveType.id).where(LeaveType.name == data.name))
    if r.first():
        raise ConflictError("Leave type with this name already exists")
    lt = LeaveType(**data.model_dump())
    db.add(lt)
    await db.flush()
    await db.refresh(lt)
    return lt


async def get_leave_type(db: AsyncSession, leave_type_id: int) -> LeaveType:
    return await get_or_404(db, LeaveType, leave_type_id, "Leave type")


async def list_leave_types(db: AsyncSession, is_active: Optional[bool] = None) -> List[LeaveType]:
    q = select(LeaveType).order_by(LeaveType.name)
    if is_active is not None:
        q = q.where(LeaveType.is_active == is_active)
    r = await db.execute(q)
    return list(r.scalars().all())


async def update_leave_type(db: AsyncSession, leave_type_id: int, data: LeaveTypeUpdate) -> LeaveType:
    lt = await get_leave_type(db, leave_type_id)
    update_data = data.model_dump(exclude_unset=True)
    new_name = update_data.get("name")
    if new_name and new_name != lt.name:
        r = await db.execute(select(LeaveType.id).where(LeaveType.name == new_name))
        if r.first():
            raise ConflictError("Leave type with this name already exists")
    for k, v in update_data.items():
        setattr(lt, k, v)
    await db.flush()
    await db.refresh(lt)
    return lt


async def delete_leave_type(db: AsyncSession, leave_type_id: int) -> LeaveType:
    """軟刪除"""
    lt = await get_leave_type(db, leave_type_id)
    lt.is_active = False
    await db.flush()
    await db.refresh(lt)
    return lt


# ---------- 餘額 balances ----------
async def _locked_balance(
    db: AsyncSession, employee_id: int, leave_type: LeaveType, year: int, create: bool = True
) -> Optional[LeaveBalance]:
    """取得 (employee, type, year) 餘額列並加鎖；create=True 時不存在就以假別預設天數建立"""
    r = await db.execute(
        select(LeaveBalance)
        .where(
            LeaveBalance.employee_id == employee_id,
            LeaveBalance.leave_type_id == leave_type.id,
            LeaveBalance.year == year,
        )
        .with_for_update()
    )
    balance = r.scalar_one_or_none()
    if balance is None and create:
        balance = LeaveBalance(
            employee_id=employee_id,
            leave_type_id=leave_type.id,
            year=year,
            total_days=leave_type.default_days,
            used_days=0,
            pending_days=0,
            carry_over_days=0,
        )
        db.add(balance)
        await db.flush()
    return balance


async def _shift_balance(
    db: AsyncSession, req: LeaveRequest, year: int, pending: int = 0, used: int = 0
) -> None:
    leave_type = await db.get(LeaveType, req.leave_type_id)
    balance = await _locked_balance(db, req.employee_id, leave_type, year)
    balance.pending_days += pending
    balance.used_days += used
    if balance.pending_days < 0 or balance.used_days < 0:
        logger.warning(
            "leave balance %s went negative (pending=%s used=%s)", balance.id, balance.pending_days, balance.used_days
        )
    await db.flush()


def _balance_dict(b: LeaveBalance, leave_type_name: Optional[str]) -> dict:
    return {
        "id": b.id,
        "employee_id": b.employee_id,
        "leave_type_id": b.leave_type_id,
        "leave_type_name": leave_type_name,
        "year": b.year,
        "total_days": b.total_days,
        "used_days": b.used_days,
        "pending_days": b.pending_days,
        "carry_over_days": b.carry_over_days,
        "available_days": b.available_days,
    }


async def get_leave_balance(db: AsyncSession, employee_id: int, year: Optional[int] = None) -> List[dict]:
    await get_or_404(db, Employee, employee_id, "Employee")
    year = year or local_today().year
    r = await db.execute(
        select(LeaveBalance, LeaveType.name)
        .join(LeaveType, LeaveType.id == LeaveBalance.leave_type_id)
        .where(LeaveBalance.employee_id == employee_id, LeaveBalance.year == year)
        .order_by(LeaveType.name)
    )
    return [_balance_dict(b, name) for b, name in r.all()]


async def initialize_leave_balance(db: AsyncSession, employee_id: int, year: int) -> List[dict]:
    """為每個啟用中的假別補上缺少的年度餘額列（total = default_days）"""
    await get_or_404(db, Employee, employee_id, "Employee")
    r = await db.execute(select(LeaveType).where(LeaveType.is_active == True))  # noqa: E712
    leave_types = list(r.scalars().all())
    r = await db.execute(
        select(LeaveBalance.leave_type_id).where(LeaveBalance.employee_id == employee_id, LeaveBalance.year == year)
    )
    existing = {row[0] for row in r.all()}
    for lt in leave_types:
        if lt.id not in existing:
            db.add(LeaveBalance(
                employee_id=employee_id, leave_type_id=lt.id, year=year,
                total_days=lt.default_days, used_days=0, pending_days=0, carry_over_days=0,
            ))
    await db.flush()
    return await get_leave_balance(db, employee_id, year)


async def adjust_leave_balance(
    db: AsyncSession, employee_id: int, leave_type_id: int, year: int, adjustment: int, reason: Optional[str] = None
) -> dict:
    await get_or_404(db, Employee, employee_id, "Employee")
    leave_type = await get_leave_type(db, leave_type_id)
    balance = await _locked_balance(db, employee_id, leave_type, year)
    new_total = balance.total_days + adjustment
    if new_total < 0:
        raise ValidationError("Adjustment would result in negative balance")
    balance.total_days = new_total
    await db.flush()
    logger.info("leave balance %s adjusted by %s to %s (%s)", balance.id, adjustment, new_total, reason or "-")
    return _balance_dict(balance, leave_type.name)


# ---------- 請假單 leave requests ----------
async def create_leave_request(db: AsyncSession, data: LeaveRequestCreate) -> LeaveRequest:
    await get_or_404(db, Employee, data.employee_id, "Employee")
    leave_type = await get_leave_type(db, data.leave_type_id)
    if data.covering_employee_id is not None:
        await get_or_404(db, Employee, data.covering_employee_id, "Covering employee")

    total_days = count_leave_days(data.start_date, data.end_date)
    _check_max_consecutive(leave_type, total_days)

    r = await db.execute(
        select(LeaveRequest.id).where(
            LeaveRequest.employee_id == data.employee_id,
            LeaveRequest.status.in_(("PENDING", "APPROVED")),
            LeaveRequest.overlaps(data.start_date, data.end_date),
        ).limit(1)
    )
    if r.first():
        raise ConflictError("Employee already has a leave request during this period")

    balance = await _locked_balance(db, data.employee_id, leave_type, data.start_date.year)
    available = balance.available_days
    if total_days > available:
        raise ValidationError(
            f"Insufficient leave balance. Available: {available} days, Requested: {total_days} days"
        )

    auto_approved = not leave_type.requires_approval
    req = LeaveRequest(
        employee_id=data.employee_id,
        leave_type_id=leave_type.id,
        start_date=data.start_date,
        end_date=data.end_date,
        total_days=total_days,
        reason=data.reason,
        covering_employee_id=data.covering_employee_id,
        status="APPROVED" if auto_approved else "PENDING",
        approved_at=datetime.utcnow() if auto_approved else None,
    )
    db.add(req)
    if auto_approved:
        balance.used_days += total_days
    else:
        balance.pending_days += total_days
    await db.flush()
    await db.refresh(req)
    logger.info("leave request %s created for employee %s (%s days, %s)", req.id, req.employee_id, total_days, req.status)
    return req


async def get_leave_request(db: AsyncSession, request_id: int) -> LeaveRequest:
    return await get_or_404(db, LeaveRequest, request_id, "Leave request")


async def list_leave_requests(
    db: AsyncSession,
    *,
    page: int = 1,
    limit: int = 20,
    employee_id: Optional[int] = None,
    leave_type_id: Optional[int] = None,
    status: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> Tuple[List[LeaveRequest], int]:
    stmt = select(LeaveRequest)
    if employee_id is not None:
        stmt = stmt.where(LeaveRequest.employee_id == employee_id)
    if leave_type_id is not None:
        stmt = stmt.where(LeaveRequest.leave_type_id == leave_type_id)
    if status:
        stmt = stmt.where(LeaveRequest.status == status)
    if start_date is not None:
        stmt = stmt.where(LeaveRequest.end_date >= start_date)
    if end_date is not None:
        stmt = stmt.where(LeaveRequest.start_date <= end_date)
    return await paginate(db, stmt.order_by(LeaveRequest.start_date.desc(), LeaveRequest.id.desc()), page, limit)


async def update_leave_request(db: AsyncSession, request_id: int, data: LeaveRequestUpdate) -> LeaveRequest:
    """僅 PENDING 可改；改日期時重算天數並搬移 pending（不重檢重疊與餘額）"""
    req = await get_leave_request(db, request_id)
    if req.status != "PENDING":
        raise ValidationError("Only pending leave requests can be updated")
    update_data = data.model_dump(exclude_unset=True)

    if "start_date" in update_data or "end_date" in update_data:
        start = update_data.get("start_date") or req.start_date
        end = update_data.get("end_date") or req.end_date
        total_days = count_leave_days(start, end)
        leave_type = await db.get(LeaveType, req.leave_type_id)
        _check_max_consecutive(leave_type, total_days)
        await _shift_balance(db, req, req.start_date.year, pending=-req.total_days)
        await _shift_balance(db, req, start.year, pending=total_days)
        req.start_date, req.end_date, req.total_days = start, end, total_days

    if "covering_employee_id" in update_data and update_data["covering_employee_id"] is not None:
        await get_or_404(db, Employee, update_data["covering_employee_id"], "Covering employee")
    for k in ("reason", "covering_employee_id"):
        if k in update_data:
            setattr(req, k, update_data[k])
    await db.flush()
    await db.refresh(req)
    return req


async def approve_leave_request(db: AsyncSession, request_id: int, approver_id: Optional[int] = None) -> LeaveRequest:
    req = await get_leave_request(db, request_id)
    if req.status != "PENDING":
        raise ValidationError("Only pending leave requests can be approved")
    if approver_id is not None:
        await get_or_404(db, Employee, approver_id, "Approver")
    await _shift_balance(db, req, req.start_date.year, pending=-req.total_days, used=req.total_days)
    req.status = "APPROVED"
    req.approver_id = approver_id
    req.approved_at = datetime.utcnow()
    await db.flush()
    await db.refresh(req)
    logger.info("leave request %s approved", req.id)
    return req


async def reject_leave_request(
    db: AsyncSession, request_id: int, rejection_reason: str, approver_id: Optional[int] = None
) -> LeaveRequest:
    req = await get_leave_request(db, request_id)
    if req.status != "PENDING":
        raise ValidationError("Only pending leave requests can be rejected")
    if not rejection_reason or not rejection_reason.strip():
        raise ValidationError("Rejection reason is required")
    await _shift_balance(db, req, req.start_date.year, pending=-req.total_days)
    req.status = "REJECTED"
    req.approver_id = approver_id
    req.rejection_reason = rejection_reason.strip()
    await db.flush()
    await db.refresh(req)
    return req


async def cancel_leave_request(db: AsyncSession, request_id: int) -> LeaveRequest:
    req = await get_leave_request(db, request_id)
    if req.status == "PENDING":
        await _shift_balance(db, req, req.start_date.year, pending=-req.total_days)
    elif req.status == "APPROVED":
        await _shift_balance(db, req, req.start_date.year, used=-req.total_days)
    else:
        raise ValidationError(f"Leave request in status {req.status} cannot be cancelled")
    req.status = "CANCELLED"
    await db.flush()
    await db.refresh(req)
    return req


async def get_employees_on_leave(
    db: AsyncSession, start: date, end: date, zone_id: Optional[int] = None
) -> List[LeaveRequest]:
    """期間內有重疊的已核准請假；給 zone_id 時只看該區有效成員（含正副負責人）"""
    if end < start:
        raise ValidationError("End date must be after start date")
    stmt = (
        select(LeaveRequest)
        .options(selectinload(LeaveRequest.employee))
        .where(
            LeaveRequest.status == "APPROVED",
            LeaveRequest.overlaps(start, end),
        )
        .order_by(LeaveRequest.start_date, LeaveRequest.id)
        .execution_options(populate_existing=True)
    )
    if zone_id is not None:
        members = select(EmployeeZone.employee_id).where(
            EmployeeZone.zone_id == zone_id, EmployeeZone.is_active == True  # noqa: E712
        )
        stmt = stmt.where(LeaveRequest.employee_id.in_(members))
    r = await db.execute(stmt)
    return list(r.scalars().all())
