"""責任區：CRUD、地區對應、團隊與正副負責人、代理與覆蓋狀況。"""
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from agentcare import crud, schemas
from agentcare.auth import require_permission
from agentcare.database import get_db
from agentcare.errors import NotFoundError
from agentcare.models import Employee, EmployeeZone, Zone
from agentcare.services import zone_coverage

router = APIRouter(prefix="/api/v1/zones", tags=["zones"])

READ = Depends(require_permission("zones:read"))
WRITE = Depends(require_permission("zones:write"))
DELETE = Depends(require_permission("zones:delete"))


async def _zone_or_404(db: AsyncSession, zone_id: int) -> Zone:
    z = await crud.get_zone(db, zone_id)
    if not z:
        raise NotFoundError("Zone not found")
    return z


def _member_read(member: EmployeeZone, emp: Employee) -> schemas.ZoneMemberRead:
    return schemas.ZoneMemberRead(
        id=member.id,
        employee_id=member.employee_id,
        zone_id=member.zone_id,
        role=member.role,
        is_primary=member.is_primary,
        is_active=member.is_active,
        employee=schemas.EmployeeBrief.model_validate(emp),
    )


# ---------- zones CRUD ----------
@router.get("", response_model=schemas.ApiResponse[List[schemas.ZoneRead]], dependencies=[READ])
async def list_zones(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    q: Optional[str] = Query(None, description="名稱、代碼、說明搜尋"),
    governorate_id: Optional[int] = Query(None, alias="governorateId"),
    is_active: Optional[bool] = Query(None, alias="isActive"),
    db: AsyncSession = Depends(get_db),
):
    items, total = await crud.list_zones(
        db, page=page, limit=limit, q=q, governorate_id=governorate_id, is_active=is_active
    )
    return schemas.ok([schemas.ZoneRead.model_validate(z) for z in items], schemas.page_of(page, limit, total))


@router.post("", response_model=schemas.ApiResponse[schemas.ZoneRead], status_code=201, dependencies=[WRITE])
async def create_zone(data: schemas.ZoneCreate, db: AsyncSession = Depends(get_db)):
    return schemas.ok(schemas.ZoneRead.model_validate(await crud.create_zone(db, data)))


@router.get("/coverage/all", response_model=schemas.ApiResponse[schemas.AllZonesCoverageRead], dependencies=[READ])
async def all_zones_coverage(
    on_date: Optional[date] = Query(None, alias="date", description="預設為營運時區今天"),
    db: AsyncSession = Depends(get_db),
):
    result = await zone_coverage.get_all_zones_coverage_status(db, on_date)
    return schemas.ok(schemas.AllZonesCoverageRead.model_validate(result))


@router.get("/{zone_id}", response_model=schemas.ApiResponse[schemas.ZoneRead], dependencies=[READ])
async def get_zone(zone_id: int, db: AsyncSession = Depends(get_db)):
    return schemas.ok(schemas.ZoneRead.model_validate(await _zone_or_404(db, zone_id)))


@router.patch("/{zone_id}", response_model=schemas.ApiResponse[schemas.ZoneRead], dependencies=[WRITE])
async def update_zone(zone_id: int, data: schemas.ZoneUpdate, db: AsyncSession = Depends(get_db)):
    z = await _zone_or_404(db, zone_id)
    return schemas.ok(schemas.ZoneRead.model_validate(await crud.update_zone(db, z, data)))


@router.delete("/{zone_id}", response_model=schemas.ApiResponse[schemas.ZoneRead], dependencies=[DELETE])
async def delete_zone(zone_id: int, db: AsyncSession = Depends(get_db)):
    """軟刪除"""
    z = await _zone_or_404(db, zone_id)
    return schemas.ok(schemas.ZoneRead.model_validate(await crud.deactivate_zone(db, z)))


# ---------- 地區對應 ----------
@router.get("/{zone_id}/areas", response_model=schemas.ApiResponse[List[int]], dependencies=[READ])
async def get_zone_areas(zone_id: int, db: AsyncSession = Depends(get_db)):
    await _zone_or_404(db, zone_id)
    return schemas.ok(await crud.list_zone_area_ids(db, zone_id))


@router.put("/{zone_id}/areas", response_model=schemas.ApiResponse[List[int]], dependencies=[WRITE])
async def set_zone_areas(zone_id: int, data: schemas.ZoneAreasUpdate, db: AsyncSession = Depends(get_db)):
    z = await _zone_or_404(db, zone_id)
    return schemas.ok(await crud.set_zone_areas(db, z, data.area_ids))


# ---------- 團隊 ----------
@router.get("/{zone_id}/team", response_model=schemas.ApiResponse[schemas.ZoneTeamRead], dependencies=[READ])
async def get_zone_team(zone_id: int, db: AsyncSession = Depends(get_db)):
    team = await zone_coverage.get_zone_team(db, zone_id)
    return schemas.ok(schemas.ZoneTeamRead.model_validate(team))


@router.post("/{zone_id}/members", response_model=schemas.ApiResponse[schemas.ZoneMemberRead], status_code=201, dependencies=[WRITE])
async def assign_member(zone_id: int, data: schemas.ZoneAssignRequest, db: AsyncSession = Depends(get_db)):
    member = await zone_coverage.assign_employee_to_zone(db, zone_id, data.employee_id, data.role, data.is_primary)
    emp = await crud.get_employee(db, data.employee_id)
    return schemas.ok(_member_read(member, emp))


@router.delete("/{zone_id}/members/{employee_id}", response_model=schemas.ApiResponse[schemas.ZoneMemberRead], dependencies=[WRITE])
async def remove_member(zone_id: int, employee_id: int, db: AsyncSession = Depends(get_db)):
    member = await zone_coverage.remove_employee_from_zone(db, zone_id, employee_id)
    emp = await crud.get_employee(db, employee_id)
    return schemas.ok(_member_read(member, emp))


@router.put("/{zone_id}/heads", response_model=schemas.ApiResponse[schemas.ZoneTeamRead], dependencies=[WRITE])
async def update_heads(zone_id: int, data: schemas.ZoneHeadsUpdate, db: AsyncSession = Depends(get_db)):
    """省略的欄位不變；明確送 null 解除"""
    team = await zone_coverage.update_zone_heads(db, zone_id, data.model_dump(exclude_unset=True))
    return schemas.ok(schemas.ZoneTeamRead.model_validate(team))


# ---------- 代理與覆蓋 ----------
@router.get("/{zone_id}/active-head", response_model=schemas.ApiResponse[schemas.ActiveZoneHeadRead], dependencies=[READ])
async def active_head(
    zone_id: int,
    on_date: Optional[date] = Query(None, alias="date"),
    db: AsyncSession = Depends(get_db),
):
    result = await zone_coverage.get_active_zone_head(db, zone_id, on_date)
    return schemas.ok(schemas.ActiveZoneHeadRead.model_validate(result))


@router.get("/{zone_id}/coverage", response_model=schemas.ApiResponse[schemas.ZoneCoverageRead], dependencies=[READ])
async def zone_coverage_status(
    zone_id: int,
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    db: AsyncSession = Depends(get_db),
):
    result = await zone_coverage.get_zone_coverage_status(db, zone_id, start_date, end_date)
    return schemas.ok(schemas.ZoneCoverageRead.model_validate(result))
