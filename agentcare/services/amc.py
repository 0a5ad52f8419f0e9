"""
年度維護合約（AMC）：合約 CRUD、涵蓋物業與服務項目、排程/分期產生、付款登錄、續約、儀表板統計。

第一次轉為 ACTIVE 時自動產生保養排程與分期付款。
重新產生只刪除仍為 SCHEDULED 的排程與 PENDING 的付款；已有進度的列保留，且不會重複產生同一筆。
"""
import logging
import secrets
import string
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy import select, func, or_, delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from agentcare.crud import get_or_404, paginate
from agentcare.errors import BadRequestError, NotFoundError
from agentcare.models import (
    AmcContract, AmcContractProperty, AmcContractService, AmcPaymentSchedule, AmcServiceSchedule,
    ComplaintType, Customer, Property, Unit,
)
from agentcare.schemas import (
    AmcContractCreate, AmcContractUpdate, ContractPropertyInput, ContractServiceInput, RecordPayment,
)
from agentcare.services.amc_plan import installment_plan, schedule_dates, visits_per_year
from agentcare.utils.dates import local_today

logger = logging.getLogger(__name__)

RENEWABLE_STATUSES = ("ACTIVE", "EXPIRED")
_CONTRACT_NO_ALPHABET = string.ascii_uppercase + string.digits


def generate_contract_no(today: Optional[date] = None) -> str:
    """AMC-yyyymmdd-XXXX"""
    today = today or local_today()
    suffix = "".join(secrets.choice(_CONTRACT_NO_ALPHABET) for _ in range(4))
    return f"AMC-{today:%Y%m%d}-{suffix}"


async def _unique_contract_no(db: AsyncSession) -> str:
    while True:
        no = generate_contract_no()
        r = await db.execute(select(AmcContract.id).where(AmcContract.contract_no == no))
        if r.first() is None:
            return no


async def _check_premise(db: AsyncSession, data: ContractPropertyInput) -> None:
    if data.unit_id is not None:
        await get_or_404(db, Unit, data.unit_id, "Unit")
    if data.property_id is not None:
        await get_or_404(db, Property, data.property_id, "Property")


def _service_row(data: ContractServiceInput) -> AmcContractService:
    return AmcContractService(
        complaint_type_id=data.complaint_type_id,
        frequency=data.frequency,
        visits_per_year=data.visits_per_year or visits_per_year(data.frequency),
        service_cost=data.service_cost,
        notes=data.notes,
    )


# ---------- 合約 contracts ----------
async def get_contract(db: AsyncSession, contract_id: int, load_children: bool = False) -> AmcContract:
    q = select(AmcContract).where(AmcContract.id == contract_id)
    if load_children:
        q = q.options(
            selectinload(AmcContract.properties), selectinload(AmcContract.services)
        ).execution_options(populate_existing=True)
    r = await db.execute(q)
    contract = r.scalar_one_or_none()
    if contract is None:
        raise NotFoundError("AMC Contract not found")
    return contract


async def create_contract(db: AsyncSession, data: AmcContractCreate, created_by: Optional[str] = None) -> AmcContract:
    await get_or_404(db, Customer, data.customer_id, "Customer")
    for p in data.properties:
        await _check_premise(db, p)
    for s in data.services:
        await get_or_404(db, ComplaintType, s.complaint_type_id, "Complaint type")

    contract = AmcContract(
        contract_no=await _unique_contract_no(db),
        customer_id=data.customer_id,
        start_date=data.start_date,
        end_date=data.end_date,
        contract_value=data.contract_value,
        payment_terms=data.payment_terms,
        auto_renew=data.auto_renew,
        renewal_reminder_days=data.renewal_reminder_days,
        terms=data.terms,
        notes=data.notes,
        created_by=created_by,
        status="DRAFT",
        properties=[AmcContractProperty(**p.model_dump()) for p in data.properties],
        services=[_service_row(s) for s in data.services],
    )
    db.add(contract)
    await db.flush()
    logger.info("AMC contract %s created for customer %s", contract.contract_no, contract.customer_id)
    return await get_contract(db, contract.id, load_children=True)


async def list_contracts(
    db: AsyncSession,
    *,
    page: int = 1,
    limit: int = 20,
    q: Optional[str] = None,
    customer_id: Optional[int] = None,
    status: Optional[str] = None,
    expiring_within_days: Optional[int] = None,
) -> Tuple[List[AmcContract], int]:
    stmt = select(AmcContract)
    if q and q.strip():
        kw = f"%{q.strip()}%"
        stmt = stmt.join(Customer, Customer.id == AmcContract.customer_id).where(or_(
            AmcContract.contract_no.ilike(kw),
            Customer.first_name.ilike(kw),
            Customer.last_name.ilike(kw),
            Customer.org_name.ilike(kw),
        ))
    if customer_id is not None:
        stmt = stmt.where(AmcContract.customer_id == customer_id)
    if status:
        stmt = stmt.where(AmcContract.status == status)
    if expiring_within_days is not None:
        stmt = stmt.where(
            AmcContract.status == "ACTIVE",
            AmcContract.end_date <= local_today() + timedelta(days=expiring_within_days),
        )
    return await paginate(db, stmt.order_by(AmcContract.created_at.desc(), AmcContract.id.desc()), page, limit)


async def update_contract(db: AsyncSession, contract_id: int, data: AmcContractUpdate) -> AmcContract:
    contract = await get_contract(db, contract_id)
    if contract.status != "DRAFT":
        raise BadRequestError("Only draft contracts can be edited")
    update_data = {k: v for k, v in data.model_dump(exclude_unset=True).items() if v is not None}
    start = update_data.get("start_date", contract.start_date)
    end = update_data.get("end_date", contract.end_date)
    if end <= start:
        raise BadRequestError("endDate must be after startDate")
    for k, v in update_data.items():
        setattr(contract, k, v)
    await db.flush()
    return await get_contract(db, contract.id, load_children=True)


async def delete_contract(db: AsyncSession, contract_id: int) -> None:
    contract = await get_contract(db, contract_id)
    if contract.status != "DRAFT":
        raise BadRequestError("Only draft contracts can be deleted")
    # 子表逐一刪除，不觸發 relationship 的 lazy load
    for model in (AmcServiceSchedule, AmcPaymentSchedule, AmcContractProperty, AmcContractService):
        await db.execute(delete(model).where(model.contract_id == contract_id))
    await db.execute(delete(AmcContract).where(AmcContract.id == contract_id))
    await db.flush()
    logger.info("AMC contract %s deleted", contract.contract_no)


async def change_status(
    db: AsyncSession, contract_id: int, status: str, performed_by: Optional[str] = None, reason: Optional[str] = None
) -> AmcContract:
    contract = await get_contract(db, contract_id)
    previous = contract.status
    if status == "CANCELLED" and previous == "CANCELLED":
        raise BadRequestError("Contract is already cancelled")
    contract.status = status
    if status == "ACTIVE" and previous == "PENDING_APPROVAL":
        contract.approved_by = performed_by
        contract.approved_at = datetime.utcnow()
    if status == "CANCELLED":
        contract.cancelled_by = performed_by
        contract.cancelled_at = datetime.utcnow()
        contract.cancellation_reason = reason
    await db.flush()

    if status == "ACTIVE" and previous != "ACTIVE":
        schedules = await generate_schedules(db, contract.id)
        payments = await generate_payment_schedule(db, contract.id)
        logger.info(
            "AMC contract %s activated: %s schedules, %s payments",
            contract.contract_no, schedules["schedules_created"], payments["payments_created"],
        )
    return await get_contract(db, contract.id, load_children=True)


# ---------- 涵蓋物業 / 服務項目 ----------
async def add_property(db: AsyncSession, contract_id: int, data: ContractPropertyInput) -> AmcContractProperty:
    await get_contract(db, contract_id)
    await _check_premise(db, data)
    row = AmcContractProperty(contract_id=contract_id, **data.model_dump())
    db.add(row)
    await db.flush()
    await db.refresh(row)
    return row


async def remove_property(db: AsyncSession, contract_id: int, property_row_id: int) -> None:
    row = await db.get(AmcContractProperty, property_row_id)
    if row is None or row.contract_id != contract_id:
        raise NotFoundError("Contract property not found")
    await db.delete(row)
    await db.flush()


async def add_service(db: AsyncSession, contract_id: int, data: ContractServiceInput) -> AmcContractService:
    await get_contract(db, contract_id)
    await get_or_404(db, ComplaintType, data.complaint_type_id, "Complaint type")
    row = _service_row(data)
    row.contract_id = contract_id
    db.add(row)
    await db.flush()
    await db.refresh(row)
    return row


async def remove_service(db: AsyncSession, contract_id: int, service_row_id: int) -> None:
    row = await db.get(AmcContractService, service_row_id)
    if row is None or row.contract_id != contract_id:
        raise NotFoundError("Contract service not found")
    await db.delete(row)
    await db.flush()


# ---------- 排程 / 分期產生 ----------
async def generate_schedules(db: AsyncSession, contract_id: int) -> dict:
    """刪除 SCHEDULED 列後，依 (服務 × 物業) 重新產生；已有其他狀態的同日同項目不重複產生"""
    contract = await get_contract(db, contract_id, load_children=True)
    await db.execute(
        delete(AmcServiceSchedule).where(
            AmcServiceSchedule.contract_id == contract_id, AmcServiceSchedule.status == "SCHEDULED"
        )
    )
    r = await db.execute(
        select(
            AmcServiceSchedule.complaint_type_id, AmcServiceSchedule.unit_id,
            AmcServiceSchedule.property_id, AmcServiceSchedule.scheduled_date,
        ).where(AmcServiceSchedule.contract_id == contract_id)
    )
    kept = {tuple(row) for row in r.all()}

    rows = []
    for service in contract.services:
        dates = schedule_dates(contract.start_date, contract.end_date, service.visits_per_year)
        for prop in contract.properties:
            for d in dates:
                if (service.complaint_type_id, prop.unit_id, prop.property_id, d) in kept:
                    continue
                rows.append(AmcServiceSchedule(
                    contract_id=contract_id,
                    unit_id=prop.unit_id,
                    property_id=prop.property_id,
                    complaint_type_id=service.complaint_type_id,
                    scheduled_date=d,
                    status="SCHEDULED",
                ))
    db.add_all(rows)
    await db.flush()
    return {"schedules_created": len(rows)}


async def generate_payment_schedule(db: AsyncSession, contract_id: int) -> dict:
    """刪除 PENDING 付款後重新產生；已付款/部分付款等其他狀態的期數保留不重產"""
    contract = await get_contract(db, contract_id)
    await db.execute(
        delete(AmcPaymentSchedule).where(
            AmcPaymentSchedule.contract_id == contract_id, AmcPaymentSchedule.status == "PENDING"
        )
    )
    r = await db.execute(
        select(AmcPaymentSchedule.installment_no).where(AmcPaymentSchedule.contract_id == contract_id)
    )
    kept = {row[0] for row in r.all()}

    rows = [
        AmcPaymentSchedule(
            contract_id=contract_id, installment_no=no, due_date=due, amount=amount, status="PENDING",
        )
        for no, due, amount in installment_plan(
            contract.start_date, contract.end_date, contract.contract_value, contract.payment_terms
        )
        if no not in kept
    ]
    db.add_all(rows)
    await db.flush()
    return {"payments_created": len(rows)}


# ---------- 排程 schedules ----------
async def list_schedules(
    db: AsyncSession,
    *,
    page: int = 1,
    limit: int = 50,
    contract_id: Optional[int] = None,
    status: Optional[str] = None,
    from_date: Optional[date] = None,
    to_date: Optional[date] = None,
) -> Tuple[List[AmcServiceSchedule], int]:
    stmt = select(AmcServiceSchedule)
    if contract_id is not None:
        stmt = stmt.where(AmcServiceSchedule.contract_id == contract_id)
    if status:
        stmt = stmt.where(AmcServiceSchedule.status == status)
    if from_date is not None:
        stmt = stmt.where(AmcServiceSchedule.scheduled_date >= from_date)
    if to_date is not None:
        stmt = stmt.where(AmcServiceSchedule.scheduled_date <= to_date)
    return await paginate(db, stmt.order_by(AmcServiceSchedule.scheduled_date, AmcServiceSchedule.id), page, limit)


async def update_schedule_status(
    db: AsyncSession, schedule_id: int, status: str, performed_by: Optional[str] = None, notes: Optional[str] = None
) -> AmcServiceSchedule:
    schedule = await get_or_404(db, AmcServiceSchedule, schedule_id, "Schedule")
    schedule.status = status
    if notes is not None:
        schedule.notes = notes
    if status == "COMPLETED":
        schedule.completed_at = datetime.utcnow()
        schedule.completed_by = performed_by
    await db.flush()
    await db.refresh(schedule)
    return schedule


# ---------- 付款 payments ----------
async def list_payments(
    db: AsyncSession,
    *,
    page: int = 1,
    limit: int = 50,
    contract_id: Optional[int] = None,
    status: Optional[str] = None,
) -> Tuple[List[AmcPaymentSchedule], int]:
    stmt = select(AmcPaymentSchedule)
    if contract_id is not None:
        stmt = stmt.where(AmcPaymentSchedule.contract_id == contract_id)
    if status:
        stmt = stmt.where(AmcPaymentSchedule.status == status)
    return await paginate(
        db, stmt.order_by(AmcPaymentSchedule.due_date, AmcPaymentSchedule.installment_no, AmcPaymentSchedule.id),
        page, limit,
    )


async def record_payment(db: AsyncSession, payment_id: int, data: RecordPayment) -> AmcPaymentSchedule:
    payment = await get_or_404(db, AmcPaymentSchedule, payment_id, "Payment schedule")
    if payment.status in ("PAID", "WAIVED"):
        raise BadRequestError(f"Payment is already {payment.status.lower()}")
    payment.paid_at = datetime.utcnow()
    payment.paid_amount = data.paid_amount
    payment.payment_method = data.payment_method
    payment.payment_reference = data.payment_reference
    payment.notes = data.notes
    payment.status = "PAID" if Decimal(data.paid_amount) >= Decimal(payment.amount) else "PARTIALLY_PAID"
    await db.flush()
    await db.refresh(payment)
    return payment


# ---------- 續約 / 統計 ----------
async def renew_contract(db: AsyncSession, contract_id: int, performed_by: Optional[str] = None) -> AmcContract:
    """複製成新的 DRAFT 合約：舊約到期隔天起、同樣天數；舊約標記 RENEWED"""
    old = await get_contract(db, contract_id, load_children=True)
    if old.status not in RENEWABLE_STATUSES:
        raise BadRequestError("Only active or expired contracts can be renewed")
    new_start = old.end_date + timedelta(days=1)
    new_end = new_start + (old.end_date - old.start_date)
    new = AmcContract(
        contract_no=await _unique_contract_no(db),
        customer_id=old.customer_id,
        start_date=new_start,
        end_date=new_end,
        contract_value=old.contract_value,
        payment_terms=old.payment_terms,
        auto_renew=old.auto_renew,
        renewal_reminder_days=old.renewal_reminder_days,
        terms=old.terms,
        notes=f"Renewed from {old.contract_no}",
        renewed_from_id=old.id,
        created_by=performed_by,
        status="DRAFT",
        properties=[
            AmcContractProperty(unit_id=p.unit_id, property_id=p.property_id, notes=p.notes) for p in old.properties
        ],
        services=[
            AmcContractService(
                complaint_type_id=s.complaint_type_id, frequency=s.frequency,
                visits_per_year=s.visits_per_year, service_cost=s.service_cost, notes=s.notes,
            )
            for s in old.services
        ],
    )
    db.add(new)
    old.status = "RENEWED"
    await db.flush()
    logger.info("AMC contract %s renewed as %s", old.contract_no, new.contract_no)
    return await get_contract(db, new.id, load_children=True)


async def get_dashboard_stats(db: AsyncSession, today: Optional[date] = None) -> dict:
    today = today or local_today()
    horizon = today + timedelta(days=30)

    async def count(stmt) -> int:
        return (await db.execute(stmt)).scalar_one()

    return {
        "total_contracts": await count(select(func.count(AmcContract.id))),
        "active_contracts": await count(select(func.count(AmcContract.id)).where(AmcContract.status == "ACTIVE")),
        "expiring_contracts": await count(
            select(func.count(AmcContract.id)).where(
                AmcContract.status == "ACTIVE", AmcContract.end_date >= today, AmcContract.end_date <= horizon,
            )
        ),
        "pending_payments": await count(
            select(func.count(AmcPaymentSchedule.id)).where(AmcPaymentSchedule.status.in_(("PENDING", "DUE")))
        ),
        "overdue_payments": await count(
            select(func.count(AmcPaymentSchedule.id)).where(AmcPaymentSchedule.status == "OVERDUE")
        ),
        "upcoming_schedules": await count(
            select(func.count(AmcServiceSchedule.id)).where(
                AmcServiceSchedule.status == "SCHEDULED",
                AmcServiceSchedule.scheduled_date >= today,
                AmcServiceSchedule.scheduled_date <= horizon,
            )
        ),
    }
