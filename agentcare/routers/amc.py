"""年度維護合約：合約 CRUD 與狀態、涵蓋項目、排程與分期產生、付款登錄、續約、儀表板。"""
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from agentcare import schemas
from agentcare.auth import Principal, require_permission
from agentcare.database import get_db
from agentcare.services import amc as amc_service

router = APIRouter(prefix="/api/v1/amc", tags=["amc"])

READ = Depends(require_permission("amc:read"))
WRITE = Depends(require_permission("amc:write"))
DELETE = Depends(require_permission("amc:delete"))


def _detail(contract) -> dict:
    return schemas.ok(schemas.AmcContractDetail.model_validate(contract))


# ---------- 清單 / 統計 ----------
@router.get("", response_model=schemas.ApiResponse[List[schemas.AmcContractRead]], dependencies=[READ])
async def list_contracts(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    q: Optional[str] = Query(None, description="合約編號、客戶名稱搜尋"),
    customer_id: Optional[int] = Query(None, alias="customerId"),
    status: Optional[schemas.AmcStatus] = Query(None),
    expiring_within_days: Optional[int] = Query(None, alias="expiringWithinDays", ge=0),
    db: AsyncSession = Depends(get_db),
):
    items, total = await amc_service.list_contracts(
        db, page=page, limit=limit, q=q, customer_id=customer_id, status=status,
        expiring_within_days=expiring_within_days,
    )
    return schemas.ok([schemas.AmcContractRead.model_validate(c) for c in items], schemas.page_of(page, limit, total))


@router.post("", response_model=schemas.ApiResponse[schemas.AmcContractDetail], status_code=201)
async def create_contract(
    data: schemas.AmcContractCreate,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_permission("amc:write")),
):
    return _detail(await amc_service.create_contract(db, data, created_by=principal.subject))


@router.get("/dashboard", response_model=schemas.ApiResponse[schemas.AmcDashboardStats], dependencies=[READ])
async def dashboard(db: AsyncSession = Depends(get_db)):
    return schemas.ok(schemas.AmcDashboardStats.model_validate(await amc_service.get_dashboard_stats(db)))


# ---------- 保養排程 ----------
@router.get("/schedules", response_model=schemas.ApiResponse[List[schemas.AmcScheduleRead]], dependencies=[READ])
async def list_schedules(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    contract_id: Optional[int] = Query(None, alias="contractId"),
    status: Optional[schemas.ScheduleStatus] = Query(None),
    from_date: Optional[date] = Query(None, alias="fromDate"),
    to_date: Optional[date] = Query(None, alias="toDate"),
    db: AsyncSession = Depends(get_db),
):
    items, total = await amc_service.list_schedules(
        db, page=page, limit=limit, contract_id=contract_id, status=status, from_date=from_date, to_date=to_date,
    )
    return schemas.ok([schemas.AmcScheduleRead.model_validate(s) for s in items], schemas.page_of(page, limit, total))


@router.patch("/schedules/{schedule_id}/status", response_model=schemas.ApiResponse[schemas.AmcScheduleRead])
async def update_schedule_status(
    schedule_id: int,
    data: schemas.AmcScheduleStatusUpdate,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_permission("amc:write")),
):
    schedule = await amc_service.update_schedule_status(db, schedule_id, data.status, principal.subject, data.notes)
    return schemas.ok(schemas.AmcScheduleRead.model_validate(schedule))


# ---------- 付款 ----------
@router.get("/payments", response_model=schemas.ApiResponse[List[schemas.AmcPaymentRead]], dependencies=[READ])
async def list_payments(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    contract_id: Optional[int] = Query(None, alias="contractId"),
    status: Optional[schemas.PaymentStatus] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    items, total = await amc_service.list_payments(db, page=page, limit=limit, contract_id=contract_id, status=status)
    return schemas.ok([schemas.AmcPaymentRead.model_validate(p) for p in items], schemas.page_of(page, limit, total))


@router.post("/payments/{payment_id}/record", response_model=schemas.ApiResponse[schemas.AmcPaymentRead], dependencies=[WRITE])
async def record_payment(payment_id: int, data: schemas.RecordPayment, db: AsyncSession = Depends(get_db)):
    return schemas.ok(schemas.AmcPaymentRead.model_validate(await amc_service.record_payment(db, payment_id, data)))


# ---------- 單一合約 ----------
@router.get("/{contract_id}", response_model=schemas.ApiResponse[schemas.AmcContractDetail], dependencies=[READ])
async def get_contract(contract_id: int, db: AsyncSession = Depends(get_db)):
    return _detail(await amc_service.get_contract(db, contract_id, load_children=True))


@router.patch("/{contract_id}", response_model=schemas.ApiResponse[schemas.AmcContractDetail], dependencies=[WRITE])
async def update_contract(contract_id: int, data: schemas.AmcContractUpdate, db: AsyncSession = Depends(get_db)):
    """僅 DRAFT 可改"""
    return _detail(await amc_service.update_contract(db, contract_id, data))


@router.delete("/{contract_id}", response_model=schemas.ApiResponse[None], dependencies=[DELETE])
async def delete_contract(contract_id: int, db: AsyncSession = Depends(get_db)):
    """僅 DRAFT 可刪"""
    await amc_service.delete_contract(db, contract_id)
    return schemas.ok()


@router.patch("/{contract_id}/status", response_model=schemas.ApiResponse[schemas.AmcContractDetail])
async def change_status(
    contract_id: int,
    data: schemas.AmcStatusUpdate,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_permission("amc:write")),
):
    """轉為 ACTIVE 時自動產生排程與分期"""
    contract = await amc_service.change_status(db, contract_id, data.status, principal.subject, data.reason)
    return _detail(contract)


@router.post("/{contract_id}/properties", response_model=schemas.ApiResponse[schemas.ContractPropertyRead], status_code=201, dependencies=[WRITE])
async def add_property(contract_id: int, data: schemas.ContractPropertyInput, db: AsyncSession = Depends(get_db)):
    return schemas.ok(schemas.ContractPropertyRead.model_validate(await amc_service.add_property(db, contract_id, data)))


@router.delete("/{contract_id}/properties/{row_id}", response_model=schemas.ApiResponse[None], dependencies=[WRITE])
async def remove_property(contract_id: int, row_id: int, db: AsyncSession = Depends(get_db)):
    await amc_service.remove_property(db, contract_id, row_id)
    return schemas.ok()


@router.post("/{contract_id}/services", response_model=schemas.ApiResponse[schemas.ContractServiceRead], status_code=201, dependencies=[WRITE])
async def add_service(contract_id: int, data: schemas.ContractServiceInput, db: AsyncSession = Depends(get_db)):
    return schemas.ok(schemas.ContractServiceRead.model_validate(await amc_service.add_service(db, contract_id, data)))


@router.delete("/{contract_id}/services/{row_id}", response_model=schemas.ApiResponse[None], dependencies=[WRITE])
async def remove_service(contract_id: int, row_id: int, db: AsyncSession = Depends(get_db)):
    await amc_service.remove_service(db, contract_id, row_id)
    return schemas.ok()


@router.post("/{contract_id}/schedules/generate", response_model=schemas.ApiResponse[schemas.GenerateResult], dependencies=[WRITE])
async def generate_schedules(contract_id: int, db: AsyncSession = Depends(get_db)):
    return schemas.ok(schemas.GenerateResult.model_validate(await amc_service.generate_schedules(db, contract_id)))


@router.post("/{contract_id}/payments/generate", response_model=schemas.ApiResponse[schemas.GenerateResult], dependencies=[WRITE])
async def generate_payments(contract_id: int, db: AsyncSession = Depends(get_db)):
    return schemas.ok(schemas.GenerateResult.model_validate(await amc_service.generate_payment_schedule(db, contract_id)))


@router.post("/{contract_id}/renew", response_model=schemas.ApiResponse[schemas.AmcContractDetail], status_code=201)
async def renew_contract(
    contract_id: int,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_permission("amc:write")),
):
    return _detail(await amc_service.renew_contract(db, contract_id, principal.subject))
