"""
請假單狀態機與年度餘額測試。
覆蓋：pending / used 計數、免審核假別、重疊與餘額檢查、跨年改期、駁回與取消、區內請假查詢。
"""
from datetime import date

import pytest
from sqlalchemy import select

from agentcare.errors import ConflictError, NotFoundError, ValidationError
from agentcare.models import LeaveBalance
from agentcare.schemas import LeaveRequestCreate, LeaveRequestUpdate
from agentcare.services import leave as leave_service


async def _balance(db, employee_id: int, leave_type_id: int, year: int) -> LeaveBalance:
    r = await db.execute(
        select(LeaveBalance).where(
            LeaveBalance.employee_id == employee_id,
            LeaveBalance.leave_type_id == leave_type_id,
            LeaveBalance.year == year,
        )
    )
    return r.scalar_one()


def _req(world, start: date, end: date, employee_id=None, leave_type_id=None) -> LeaveRequestCreate:
    return LeaveRequestCreate(
        employee_id=employee_id or world.primary_id,
        leave_type_id=leave_type_id or world.annual_id,
        start_date=start,
        end_date=end,
        reason="family trip",
    )


@pytest.mark.asyncio
async def test_create_pending_request_reserves_days(db, world):
    """建立待審請假：pending += 天數，available 相應減少"""
    req = await leave_service.create_leave_request(db, _req(world, date(2030, 3, 1), date(2030, 3, 3)))
    assert req.status == "PENDING"
    assert req.total_days == 3
    bal = await _balance(db, world.primary_id, world.annual_id, 2030)
    assert bal.total_days == 30
    assert bal.pending_days == 3
    assert bal.used_days == 0
    assert bal.available_days == 27


@pytest.mark.asyncio
async def test_approve_moves_pending_to_used(db, world):
    req = await leave_service.create_leave_request(db, _req(world, date(2030, 3, 1), date(2030, 3, 3)))
    approved = await leave_service.approve_leave_request(db, req.id, approver_id=world.secondary_id)
    assert approved.status == "APPROVED"
    assert approved.approver_id == world.secondary_id
    assert approved.approved_at is not None
    bal = await _balance(db, world.primary_id, world.annual_id, 2030)
    assert (bal.pending_days, bal.used_days) == (0, 3)


@pytest.mark.asyncio
async def test_leave_type_without_approval_is_auto_approved(db, world):
    """不需審核的假別：直接 APPROVED，只增加 used"""
    req = await leave_service.create_leave_request(
        db, _req(world, date(2030, 5, 1), date(2030, 5, 2), leave_type_id=world.emergency_id)
    )
    assert req.status == "APPROVED"
    bal = await _balance(db, world.primary_id, world.emergency_id, 2030)
    assert (bal.pending_days, bal.used_days) == (0, 2)


@pytest.mark.asyncio
async def test_insufficient_balance_rejected(db, world):
    with pytest.raises(ValidationError) as exc:
        await leave_service.create_leave_request(
            db, _req(world, date(2030, 5, 1), date(2030, 5, 4), leave_type_id=world.emergency_id)
        )
    assert "Insufficient leave balance" in exc.value.message


@pytest.mark.asyncio
async def test_max_consecutive_days_enforced(db, world):
    with pytest.raises(ValidationError):
        await leave_service.create_leave_request(db, _req(world, date(2030, 7, 1), date(2030, 7, 21)))


@pytest.mark.asyncio
async def test_overlapping_request_conflicts(db, world):
    await leave_service.create_leave_request(db, _req(world, date(2030, 3, 1), date(2030, 3, 5)))
    with pytest.raises(ConflictError):
        await leave_service.create_leave_request(db, _req(world, date(2030, 3, 5), date(2030, 3, 8)))


@pytest.mark.asyncio
async def test_on_leave_range_edges_are_inclusive(db, world):
    """區間首尾當天都算重疊，前一天 / 後一天不算"""
    req = await leave_service.create_leave_request(db, _req(world, date(2030, 3, 5), date(2030, 3, 9)))
    await leave_service.approve_leave_request(db, req.id)
    for start, end in ((date(2030, 3, 1), date(2030, 3, 5)), (date(2030, 3, 9), date(2030, 3, 12))):
        assert [lr.id for lr in await leave_service.get_employees_on_leave(db, start, end)] == [req.id]
    assert await leave_service.get_employees_on_leave(db, date(2030, 3, 1), date(2030, 3, 4)) == []
    assert await leave_service.get_employees_on_leave(db, date(2030, 3, 10), date(2030, 3, 12)) == []


@pytest.mark.asyncio
async def test_rejected_request_does_not_block_new_one(db, world):
    req = await leave_service.create_leave_request(db, _req(world, date(2030, 3, 1), date(2030, 3, 5)))
    await leave_service.reject_leave_request(db, req.id, "busy season")
    again = await leave_service.create_leave_request(db, _req(world, date(2030, 3, 2), date(2030, 3, 3)))
    assert again.status == "PENDING"
    bal = await _balance(db, world.primary_id, world.annual_id, 2030)
    assert bal.pending_days == 2


@pytest.mark.asyncio
async def test_reject_requires_reason_and_releases_pending(db, world):
    req = await leave_service.create_leave_request(db, _req(world, date(2030, 3, 1), date(2030, 3, 3)))
    with pytest.raises(ValidationError):
        await leave_service.reject_leave_request(db, req.id, "   ")
    rejected = await leave_service.reject_leave_request(db, req.id, " short staffed ")
    assert rejected.status == "REJECTED"
    assert rejected.rejection_reason == "short staffed"
    bal = await _balance(db, world.primary_id, world.annual_id, 2030)
    assert bal.pending_days == 0


@pytest.mark.asyncio
async def test_cancel_approved_request_returns_used_days(db, world):
    req = await leave_service.create_leave_request(db, _req(world, date(2030, 3, 1), date(2030, 3, 3)))
    await leave_service.approve_leave_request(db, req.id)
    cancelled = await leave_service.cancel_leave_request(db, req.id)
    assert cancelled.status == "CANCELLED"
    bal = await _balance(db, world.primary_id, world.annual_id, 2030)
    assert (bal.pending_days, bal.used_days) == (0, 0)


@pytest.mark.asyncio
async def test_cannot_cancel_rejected_or_approve_twice(db, world):
    req = await leave_service.create_leave_request(db, _req(world, date(2030, 3, 1), date(2030, 3, 3)))
    await leave_service.reject_leave_request(db, req.id, "no cover")
    with pytest.raises(ValidationError):
        await leave_service.cancel_leave_request(db, req.id)
    with pytest.raises(ValidationError):
        await leave_service.approve_leave_request(db, req.id)


@pytest.mark.asyncio
async def test_update_moves_pending_between_years(db, world):
    """改期跨年：舊年度 pending 扣回，新年度 pending 增加"""
    req = await leave_service.create_leave_request(db, _req(world, date(2030, 12, 30), date(2030, 12, 31)))
    updated = await leave_service.update_leave_request(
        db, req.id, LeaveRequestUpdate(start_date=date(2031, 1, 2), end_date=date(2031, 1, 4))
    )
    assert updated.total_days == 3
    assert (await _balance(db, world.primary_id, world.annual_id, 2030)).pending_days == 0
    assert (await _balance(db, world.primary_id, world.annual_id, 2031)).pending_days == 3


@pytest.mark.asyncio
async def test_update_only_pending(db, world):
    req = await leave_service.create_leave_request(db, _req(world, date(2030, 3, 1), date(2030, 3, 3)))
    await leave_service.approve_leave_request(db, req.id)
    with pytest.raises(ValidationError):
        await leave_service.update_leave_request(db, req.id, LeaveRequestUpdate(reason="changed"))


@pytest.mark.asyncio
async def test_unknown_employee_not_found(db, world):
    with pytest.raises(NotFoundError):
        await leave_service.create_leave_request(db, _req(world, date(2030, 3, 1), date(2030, 3, 3), employee_id=9999))


@pytest.mark.asyncio
async def test_balance_initialize_and_adjust(db, world):
    rows = await leave_service.initialize_leave_balance(db, world.tech_id, 2030)
    assert [r["leave_type_name"] for r in rows] == ["Annual", "Emergency"]
    adjusted = await leave_service.adjust_leave_balance(db, world.tech_id, world.annual_id, 2030, 5, "overtime")
    assert adjusted["total_days"] == 35
    assert adjusted["available_days"] == 35
    with pytest.raises(ValidationError):
        await leave_service.adjust_leave_balance(db, world.tech_id, world.annual_id, 2030, -100)


@pytest.mark.asyncio
async def test_employees_on_leave_filtered_by_zone(db, world):
    """只回傳已核准且與期間重疊者；給 zone 時排除非該區成員"""
    mine = await leave_service.create_leave_request(db, _req(world, date(2030, 4, 1), date(2030, 4, 3)))
    await leave_service.approve_leave_request(db, mine.id)
    other = await leave_service.create_leave_request(
        db, _req(world, date(2030, 4, 2), date(2030, 4, 2), employee_id=world.outsider_id)
    )
    await leave_service.approve_leave_request(db, other.id)
    await leave_service.create_leave_request(
        db, _req(world, date(2030, 4, 2), date(2030, 4, 2), employee_id=world.tech_id)
    )

    everyone = await leave_service.get_employees_on_leave(db, date(2030, 4, 2), date(2030, 4, 2))
    assert {lr.employee_id for lr in everyone} == {world.primary_id, world.outsider_id}
    in_zone = await leave_service.get_employees_on_leave(db, date(2030, 4, 1), date(2030, 4, 30), zone_id=world.zone_id)
    assert [lr.employee_id for lr in in_zone] == [world.primary_id]
    assert in_zone[0].employee.first_name == "Ali"
