"""
報修單：自動派工順序、責任區解析、時間軸、指派與取消。
"""
import re
from datetime import date

import pytest

from agentcare import crud
from agentcare.errors import BadRequestError
from agentcare.models import Employee
from agentcare.schemas import ServiceRequestCreate, ServiceRequestUpdate, ZoneCreate
from agentcare.services import service_requests as sr_service


def _create(world, complaint_type_id=None, **kw) -> ServiceRequestCreate:
    data = {
        "customer_id": world.customer_id,
        "complaint_type_id": complaint_type_id or world.plumbing_id,
        "title": "Leaking kitchen tap",
        "preferred_date": date(2030, 6, 10),
    }
    if "property_id" not in kw:
        data["unit_id"] = world.unit_id
    data.update(kw)
    return ServiceRequestCreate(**data)


def test_request_no_format():
    no = sr_service.generate_request_no(date(2030, 6, 10))
    assert re.fullmatch(r"SR3006-[A-Z0-9]{6}", no)


def test_exactly_one_premise_required():
    with pytest.raises(ValueError):
        ServiceRequestCreate(customer_id=1, complaint_type_id=1, title="x")
    with pytest.raises(ValueError):
        ServiceRequestCreate(customer_id=1, complaint_type_id=1, title="x", unit_id=1, property_id=2)


@pytest.mark.asyncio
async def test_auto_assign_department_match_in_zone(db, world):
    """部門與報修類別相同的區內成員優先"""
    sr = await sr_service.create_service_request(db, _create(world), performed_by="tester")
    assert sr.zone_id == world.zone_id
    assert sr.assigned_to_id == world.tech_id
    assert sr.status == "ASSIGNED"
    detail = await sr_service.get_service_request(db, sr.id, load_timeline=True)
    actions = [t.action for t in detail.timeline]
    assert actions == ["AUTO_ASSIGNED", "REQUEST_CREATED"]
    assert detail.timeline[-1].performed_by == "tester"
    assert "department match" in detail.timeline[0].description


@pytest.mark.asyncio
async def test_auto_assign_falls_back_to_primary_head(db, world):
    sr = await sr_service.create_service_request(db, _create(world, complaint_type_id=world.painting_id))
    assert sr.assigned_to_id == world.primary_id


@pytest.mark.asyncio
async def test_inactive_department_member_skipped_for_primary_head(db, world):
    """同部門的區內成員已停用 → 改派主負責人"""
    tech = await db.get(Employee, world.tech_id)
    tech.is_active = False
    await db.flush()
    sr = await sr_service.create_service_request(db, _create(world))
    assert sr.assigned_to_id == world.primary_id
    assert sr.status == "ASSIGNED"
    detail = await sr_service.get_service_request(db, sr.id, load_timeline=True)
    assert "primary head of zone Zone A" in detail.timeline[0].description


@pytest.mark.asyncio
async def test_inactive_primary_falls_back_to_secondary(db, world):
    primary = await db.get(Employee, world.primary_id)
    primary.is_active = False
    await db.flush()
    sr = await sr_service.create_service_request(db, _create(world, complaint_type_id=world.painting_id))
    assert sr.assigned_to_id == world.secondary_id


@pytest.mark.asyncio
async def test_unresolvable_zone_is_rejected(db, world):
    """物業所在地區沒有對應 zone 又沒指定 zoneId → 400"""
    with pytest.raises(BadRequestError):
        await sr_service.create_service_request(db, _create(world, property_id=world.orphan_property_id))


@pytest.mark.asyncio
async def test_explicit_zone_without_staff_stays_new(db, world):
    zone_b = await crud.create_zone(db, ZoneCreate(name="Zone B", governorate_id=world.governorate_id))
    sr = await sr_service.create_service_request(
        db, _create(world, property_id=world.orphan_property_id, zone_id=zone_b.id)
    )
    assert sr.zone_id == zone_b.id
    assert sr.status == "NEW"
    assert sr.assigned_to_id is None
    detail = await sr_service.get_service_request(db, sr.id, load_timeline=True)
    assert [t.action for t in detail.timeline] == ["REQUEST_CREATED"]


@pytest.mark.asyncio
async def test_cancel_only_new_requests(db, world):
    zone_b = await crud.create_zone(db, ZoneCreate(name="Zone B", governorate_id=world.governorate_id))
    new_sr = await sr_service.create_service_request(
        db, _create(world, property_id=world.orphan_property_id, zone_id=zone_b.id)
    )
    cancelled = await sr_service.cancel_service_request(db, new_sr.id, reason="customer called off")
    assert cancelled.status == "CANCELLED"
    # 已取消再取消不報錯
    assert (await sr_service.cancel_service_request(db, new_sr.id)).status == "CANCELLED"
    with pytest.raises(BadRequestError):
        await sr_service.assign_service_request(db, new_sr.id, world.tech_id)

    assigned = await sr_service.create_service_request(db, _create(world))
    with pytest.raises(BadRequestError):
        await sr_service.cancel_service_request(db, assigned.id)


@pytest.mark.asyncio
async def test_manual_assign_and_status_change_logged(db, world):
    sr = await sr_service.create_service_request(db, _create(world))
    await sr_service.assign_service_request(db, sr.id, world.outsider_id, performed_by="dispatcher", notes="urgent")
    await sr_service.update_service_request(db, sr.id, ServiceRequestUpdate(status="IN_PROGRESS"), performed_by="dispatcher")
    detail = await sr_service.get_service_request(db, sr.id, load_timeline=True)
    assert detail.assigned_to_id == world.outsider_id
    assert detail.status == "IN_PROGRESS"
    latest, assigned = detail.timeline[0], detail.timeline[1]
    assert latest.action == "STATUS_CHANGED"
    assert latest.description == "Status changed from ASSIGNED to IN_PROGRESS"
    assert assigned.action == "ASSIGNED"
    assert assigned.description == "Assigned to Noor Saleh: urgent"


@pytest.mark.asyncio
async def test_assign_inactive_employee_rejected(db, world):
    sr = await sr_service.create_service_request(db, _create(world))
    outsider = await db.get(Employee, world.outsider_id)
    outsider.is_active = False
    await db.flush()
    with pytest.raises(BadRequestError):
        await sr_service.assign_service_request(db, sr.id, world.outsider_id)


@pytest.mark.asyncio
async def test_list_and_stats(db, world):
    await sr_service.create_service_request(db, _create(world))
    await sr_service.create_service_request(db, _create(world, complaint_type_id=world.painting_id, priority="HIGH", title="Wall paint"))
    items, total = await sr_service.list_service_requests(db, q="paint")
    assert total == 1
    assert items[0].title == "Wall paint"
    stats = await sr_service.get_service_request_stats(db)
    assert stats["total"] == 2
    assert stats["by_status"] == {"ASSIGNED": 2}
    assert stats["by_priority"] == {"MEDIUM": 1, "HIGH": 1}
