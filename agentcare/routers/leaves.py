"""請假：假別、請假單狀態流程、年度餘額、期間內請假名單。"""
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from agentcare import schemas
from agentcare.auth import require_permission
from agentcare.database import get_db
from agentcare.services import leave as leave_service
from agentcare.utils.dates import local_today

router = APIRouter(prefix="/api/v1/leaves", tags=["leaves"])

READ = Depends(require_permission("leaves:read"))
WRITE = Depends(require_permission("leaves:write"))
APPROVE = Depends(require_permission("leaves:approve"))
DELETE = Depends(require_permission("leaves:delete"))


# ---------- 假別 ----------
@router.get("/types", response_model=schemas.ApiResponse[List[schemas.LeaveTypeRead]], dependencies=[READ])
async def list_leave_types(
    is_active: Optional[bool] = Query(None, alias="isActive"), db: AsyncSession = Depends(get_db)
):
    items = await leave_service.list_leave_types(db, is_active=is_active)
    return schemas.ok([schemas.LeaveTypeRead.model_validate(t) for t in items])


@router.post("/types", response_model=schemas.ApiResponse[schemas.LeaveTypeRead], status_code=201, dependencies=[WRITE])
async def create_leave_type(data: schemas.LeaveTypeCreate, db: AsyncSession = Depends(get_db)):
    return schemas.ok(schemas.LeaveTypeRead.model_validate(await leave_service.create_leave_type(db, data)))


@router.get("/types/{leave_type_id}", response_model=schemas.ApiResponse[schemas.LeaveTypeRead], dependencies=[READ])
async def get_leave_type(leave_type_id: int, db: AsyncSession = Depends(get_db)):
    return schemas.ok(schemas.LeaveTypeRead.model_validate(await leave_service.get_leave_type(db, leave_type_id)))


@router.patch("/types/{leave_type_id}", response_model=schemas.ApiResponse[schemas.LeaveTypeRead], dependencies=[WRITE])
async def update_leave_type(leave_type_id: int, data: schemas.LeaveTypeUpdate, db: AsyncSession = Depends(get_db)):
    lt = await leave_service.update_leave_type(db, leave_type_id, data)
    return schemas.ok(schemas.LeaveTypeRead.model_validate(lt))


@router.delete("/types/{leave_type_id}", response_model=schemas.ApiResponse[schemas.LeaveTypeRead], dependencies=[DELETE])
async def delete_leave_type(leave_type_id: int, db: AsyncSession = Depends(get_db)):
    """軟刪除"""
    lt = await leave_service.delete_leave_type(db, leave_type_id)
    return schemas.ok(schemas.LeaveTypeRead.model_validate(lt))


# ---------- 請假單 ----------
@router.get("/requests", response_model=schemas.ApiResponse[List[schemas.LeaveRequestRead]], dependencies=[READ])
async def list_leave_requests(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    employee_id: Optional[int] = Query(None, alias="employeeId"),
    leave_type_id: Optional[int] = Query(None, alias="leaveTypeId"),
    status: Optional[schemas.LeaveStatus] = Query(None),
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    db: AsyncSession = Depends(get_db),
):
    items, total = await leave_service.list_leave_requests(
        db, page=page, limit=limit, employee_id=employee_id, leave_type_id=leave_type_id,
        status=status, start_date=start_date, end_date=end_date,
    )
    return schemas.ok([schemas.LeaveRequestRead.model_validate(x) for x in items], schemas.page_of(page, limit, total))


@router.post("/requests", response_model=schemas.ApiResponse[schemas.LeaveRequestRead], status_code=201, dependencies=[WRITE])
async def create_leave_request(data: schemas.LeaveRequestCreate, db: AsyncSession = Depends(get_db)):
    req = await leave_service.create_leave_request(db, data)
    return schemas.ok(schemas.LeaveRequestRead.model_validate(req))


@router.get("/requests/{request_id}", response_model=schemas.ApiResponse[schemas.LeaveRequestRead], dependencies=[READ])
async def get_leave_request(request_id: int, db: AsyncSession = Depends(get_db)):
    return schemas.ok(schemas.LeaveRequestRead.model_validate(await leave_service.get_leave_request(db, request_id)))


@router.patch("/requests/{request_id}", response_model=schemas.ApiResponse[schemas.LeaveRequestRead], dependencies=[WRITE])
async def update_leave_request(request_id: int, data: schemas.LeaveRequestUpdate, db: AsyncSession = Depends(get_db)):
    req = await leave_service.update_leave_request(db, request_id, data)
    return schemas.ok(schemas.LeaveRequestRead.model_validate(req))


@router.post("/requests/{request_id}/approve", response_model=schemas.ApiResponse[schemas.LeaveRequestRead], dependencies=[APPROVE])
async def approve_leave_request(
    request_id: int, data: Optional[schemas.LeaveApproveRequest] = None, db: AsyncSession = Depends(get_db)
):
    approver_id = data.approver_id if data else None
    req = await leave_service.approve_leave_request(db, request_id, approver_id)
    return schemas.ok(schemas.LeaveRequestRead.model_validate(req))


@router.post("/requests/{request_id}/reject", response_model=schemas.ApiResponse[schemas.LeaveRequestRead], dependencies=[APPROVE])
async def reject_leave_request(request_id: int, data: schemas.LeaveRejectRequest, db: AsyncSession = Depends(get_db)):
    req = await leave_service.reject_leave_request(db, request_id, data.rejection_reason)
    return schemas.ok(schemas.LeaveRequestRead.model_validate(req))


@router.post("/requests/{request_id}/cancel", response_model=schemas.ApiResponse[schemas.LeaveRequestRead], dependencies=[WRITE])
async def cancel_leave_request(request_id: int, db: AsyncSession = Depends(get_db)):
    req = await leave_service.cancel_leave_request(db, request_id)
    return schemas.ok(schemas.LeaveRequestRead.model_validate(req))


# ---------- 餘額 ----------
@router.get("/balances/{employee_id}", response_model=schemas.ApiResponse[List[schemas.LeaveBalanceRead]], dependencies=[READ])
async def get_leave_balance(
    employee_id: int, year: Optional[int] = Query(None, ge=2000, le=2100), db: AsyncSession = Depends(get_db)
):
    rows = await leave_service.get_leave_balance(db, employee_id, year)
    return schemas.ok([schemas.LeaveBalanceRead.model_validate(b) for b in rows])


@router.post("/balances/{employee_id}/initialize", response_model=schemas.ApiResponse[List[schemas.LeaveBalanceRead]], dependencies=[APPROVE])
async def initialize_leave_balance(
    employee_id: int, year: Optional[int] = Query(None, ge=2000, le=2100), db: AsyncSession = Depends(get_db)
):
    rows = await leave_service.initialize_leave_balance(db, employee_id, year or local_today().year)
    return schemas.ok([schemas.LeaveBalanceRead.model_validate(b) for b in rows])


@router.post("/balances/adjust", response_model=schemas.ApiResponse[schemas.LeaveBalanceRead], dependencies=[APPROVE])
async def adjust_leave_balance(data: schemas.LeaveBalanceAdjust, db: AsyncSession = Depends(get_db)):
    row = await leave_service.adjust_leave_balance(db, data.employee_id, data.leave_type_id, data.year, data.adjustment, data.reason)
    return schemas.ok(schemas.LeaveBalanceRead.model_validate(row))


# ---------- 請假名單 ----------
@router.get("/on-leave", response_model=schemas.ApiResponse[List[schemas.EmployeeOnLeaveRead]], dependencies=[READ])
async def employees_on_leave(
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    zone_id: Optional[int] = Query(None, alias="zoneId"),
    db: AsyncSession = Depends(get_db),
):
    start = start_date or local_today()
    items = await leave_service.get_employees_on_leave(db, start, end_date or start, zone_id)
    return schemas.ok([schemas.EmployeeOnLeaveRead.model_validate(x) for x in items])
