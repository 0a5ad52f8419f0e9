"""
責任區負責人、代理與覆蓋狀況測試。
"""
from datetime import date

import pytest

from agentcare import crud
from agentcare.errors import BadRequestError, ConflictError, NotFoundError
from agentcare.models import LeaveRequest
from agentcare.schemas import ServiceRequestCreate, ZoneCreate
from agentcare.services import service_requests as sr_service
from agentcare.services import zone_coverage
from agentcare.services.zone_coverage import classify_coverage

D = date(2030, 6, 10)


async def _leave(db, world, employee_id: int, start: date, end: date, status: str = "APPROVED") -> LeaveRequest:
    lr = LeaveRequest(
        employee_id=employee_id,
        leave_type_id=world.annual_id,
        start_date=start,
        end_date=end,
        total_days=(end - start).days + 1,
        status=status,
    )
    db.add(lr)
    await db.flush()
    return lr


# 純函數
def test_classify_full_and_partial():
    assert classify_coverage(False, True, False, 0)[0] == "FULL"
    status, note = classify_coverage(False, True, False, 2)
    assert status == "PARTIAL"
    assert note == "2 team member(s) on leave"


def test_classify_head_states_take_precedence_over_team():
    """負責人狀況優先，不會被一般成員請假覆寫為 PARTIAL"""
    assert classify_coverage(True, True, False, 3)[0] == "SECONDARY"
    assert classify_coverage(True, True, True, 0) == ("CRITICAL", "Both primary and secondary heads on leave!")
    assert classify_coverage(True, False, False, 0) == (
        "CRITICAL", "Primary head on leave and no secondary head assigned!"
    )


# DB
@pytest.mark.asyncio
async def test_active_head_is_primary_without_leave(db, world):
    info = await zone_coverage.get_active_zone_head(db, world.zone_id, D)
    assert info["active_head"].id == world.primary_id
    assert info["is_primary_on_leave"] is False
    assert info["is_using_secondary"] is False


@pytest.mark.asyncio
async def test_secondary_covers_when_primary_on_approved_leave(db, world):
    await _leave(db, world, world.primary_id, date(2030, 6, 8), date(2030, 6, 12))
    info = await zone_coverage.get_active_zone_head(db, world.zone_id, D)
    assert info["active_head"].id == world.secondary_id
    assert info["is_primary_on_leave"] is True
    assert info["is_using_secondary"] is True
    # 請假區間外回到主負責人
    info = await zone_coverage.get_active_zone_head(db, world.zone_id, date(2030, 6, 13))
    assert info["active_head"].id == world.primary_id


@pytest.mark.asyncio
async def test_pending_leave_does_not_trigger_cover(db, world):
    await _leave(db, world, world.primary_id, D, D, status="PENDING")
    info = await zone_coverage.get_active_zone_head(db, world.zone_id, D)
    assert info["active_head"].id == world.primary_id


@pytest.mark.asyncio
async def test_primary_on_leave_without_secondary_keeps_primary(db, world):
    await zone_coverage.update_zone_heads(db, world.zone_id, {"secondary_head_id": None})
    await _leave(db, world, world.primary_id, D, D)
    info = await zone_coverage.get_active_zone_head(db, world.zone_id, D)
    assert info["secondary_head"] is None
    assert info["active_head"].id == world.primary_id
    assert info["is_primary_on_leave"] is True
    assert info["is_using_secondary"] is False


@pytest.mark.asyncio
async def test_assigning_new_primary_replaces_previous(db, world):
    """同一 zone 同一時間只有一位有效的主負責人"""
    await zone_coverage.assign_employee_to_zone(db, world.zone_id, world.outsider_id, "PRIMARY_HEAD")
    primary, secondary = await zone_coverage.get_zone_heads(db, world.zone_id)
    assert primary.id == world.outsider_id
    assert secondary.id == world.secondary_id
    team = await zone_coverage.get_zone_team(db, world.zone_id)
    assert team["primary_head"].id == world.outsider_id
    assert [e.id for e in team["technicians"]] == [world.tech_id]


@pytest.mark.asyncio
async def test_update_heads_validation(db, world):
    with pytest.raises(BadRequestError):
        await zone_coverage.update_zone_heads(
            db, world.zone_id, {"primary_head_id": world.tech_id, "secondary_head_id": world.tech_id}
        )
    with pytest.raises(BadRequestError):
        await zone_coverage.assign_employee_to_zone(db, world.zone_id, world.tech_id, "MANAGER")
    with pytest.raises(NotFoundError):
        await zone_coverage.get_active_zone_head(db, 9999, D)


@pytest.mark.asyncio
async def test_remove_member(db, world):
    member = await zone_coverage.remove_employee_from_zone(db, world.zone_id, world.tech_id)
    assert member.is_active is False
    with pytest.raises(NotFoundError):
        await zone_coverage.remove_employee_from_zone(db, world.zone_id, world.tech_id)


@pytest.mark.asyncio
async def test_coverage_partial_when_team_member_on_leave(db, world):
    await _leave(db, world, world.tech_id, D, D)
    result = await zone_coverage.get_zone_coverage_status(db, world.zone_id, D, D)
    assert result["coverage_status"] == "PARTIAL"
    assert result["team_count"] == 3
    assert result["on_leave_count"] == 1


@pytest.mark.asyncio
async def test_coverage_secondary_and_critical(db, world):
    await _leave(db, world, world.primary_id, date(2030, 6, 1), date(2030, 6, 5))
    result = await zone_coverage.get_zone_coverage_status(db, world.zone_id, date(2030, 6, 1), date(2030, 6, 30))
    assert result["coverage_status"] == "SECONDARY"
    assert result["coverage_note"] == "Primary head on leave. Secondary head (Sara Ahmed) covering."

    await _leave(db, world, world.secondary_id, date(2030, 6, 20), date(2030, 6, 21))
    result = await zone_coverage.get_zone_coverage_status(db, world.zone_id, date(2030, 6, 1), date(2030, 6, 30))
    assert result["coverage_status"] == "CRITICAL"
    assert result["is_secondary_on_leave"] is True
    assert len(result["leave_requests"]) == 2


@pytest.mark.asyncio
async def test_coverage_rejects_reversed_period(db, world):
    with pytest.raises(BadRequestError):
        await zone_coverage.get_zone_coverage_status(db, world.zone_id, date(2030, 6, 2), date(2030, 6, 1))


@pytest.mark.asyncio
async def test_all_zones_coverage_counts(db, world):
    zone_b = await crud.create_zone(db, ZoneCreate(name="Zone B", governorate_id=world.governorate_id))
    for _ in range(2):
        await sr_service.create_service_request(db, ServiceRequestCreate(
            customer_id=world.customer_id, unit_id=world.unit_id, complaint_type_id=world.plumbing_id, title="Leak",
        ))
    closed = await sr_service.create_service_request(db, ServiceRequestCreate(
        customer_id=world.customer_id, property_id=world.orphan_property_id, zone_id=zone_b.id,
        complaint_type_id=world.plumbing_id, title="Leak",
    ))
    await sr_service.cancel_service_request(db, closed.id)
    await _leave(db, world, world.primary_id, D, D)
    result = await zone_coverage.get_all_zones_coverage_status(db, D)
    assert result["total_zones"] == 2
    assert result["secondary_coverage"] == 1
    assert result["critical_coverage"] == 0
    assert result["full_coverage"] == 1
    by_name = {z["zone"].name: z for z in result["zones"]}
    assert by_name["Zone A"]["status"] == "SECONDARY"
    assert by_name["Zone A"]["team_count"] == 3
    assert by_name["Zone B"]["team_count"] == 0
    assert by_name["Zone A"]["active_requests"] == 2
    assert by_name["Zone B"]["active_requests"] == 0


@pytest.mark.asyncio
async def test_area_belongs_to_one_zone(db, world):
    zone_b = await crud.create_zone(db, ZoneCreate(name="Zone B", governorate_id=world.governorate_id))
    with pytest.raises(ConflictError):
        await crud.set_zone_areas(db, zone_b, [world.area_id])
    assert await crud.set_zone_areas(db, zone_b, [world.unmapped_area_id]) == [world.unmapped_area_id]
    resolved = await crud.resolve_zone_for_area(db, world.unmapped_area_id)
    assert resolved.id == zone_b.id


@pytest.mark.asyncio
async def test_zone_name_unique_within_governorate(db, world):
    with pytest.raises(ConflictError):
        await crud.create_zone(db, ZoneCreate(name="Zone A", governorate_id=world.governorate_id))
