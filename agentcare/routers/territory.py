"""行政區域：國家 / 州 / 區 / 省 / 地區。"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from agentcare import crud, schemas
from agentcare.auth import require_permission
from agentcare.database import get_db

router = APIRouter(prefix="/api/v1/territory", tags=["territory"])

READ = Depends(require_permission("territory:read"))
WRITE = Depends(require_permission("territory:write"))


@router.get("/countries", response_model=schemas.ApiResponse[List[schemas.CountryRead]], dependencies=[READ])
async def list_countries(db: AsyncSession = Depends(get_db)):
    items = await crud.list_countries(db)
    return schemas.ok([schemas.CountryRead.model_validate(x) for x in items])


@router.post("/countries", response_model=schemas.ApiResponse[schemas.CountryRead], status_code=201, dependencies=[WRITE])
async def create_country(data: schemas.CountryCreate, db: AsyncSession = Depends(get_db)):
    return schemas.ok(schemas.CountryRead.model_validate(await crud.create_country(db, data)))


@router.get("/states", response_model=schemas.ApiResponse[List[schemas.StateRead]], dependencies=[READ])
async def list_states(country_id: Optional[int] = Query(None, alias="countryId"), db: AsyncSession = Depends(get_db)):
    items = await crud.list_states(db, country_id=country_id)
    return schemas.ok([schemas.StateRead.model_validate(x) for x in items])


@router.post("/states", response_model=schemas.ApiResponse[schemas.StateRead], status_code=201, dependencies=[WRITE])
async def create_state(data: schemas.StateCreate, db: AsyncSession = Depends(get_db)):
    return schemas.ok(schemas.StateRead.model_validate(await crud.create_state(db, data)))


@router.get("/districts", response_model=schemas.ApiResponse[List[schemas.DistrictRead]], dependencies=[READ])
async def list_districts(state_id: Optional[int] = Query(None, alias="stateId"), db: AsyncSession = Depends(get_db)):
    items = await crud.list_districts(db, state_id=state_id)
    return schemas.ok([schemas.DistrictRead.model_validate(x) for x in items])


@router.post("/districts", response_model=schemas.ApiResponse[schemas.DistrictRead], status_code=201, dependencies=[WRITE])
async def create_district(data: schemas.DistrictCreate, db: AsyncSession = Depends(get_db)):
    return schemas.ok(schemas.DistrictRead.model_validate(await crud.create_district(db, data)))


@router.get("/governorates", response_model=schemas.ApiResponse[List[schemas.GovernorateRead]], dependencies=[READ])
async def list_governorates(
    district_id: Optional[int] = Query(None, alias="districtId"), db: AsyncSession = Depends(get_db)
):
    items = await crud.list_governorates(db, district_id=district_id)
    return schemas.ok([schemas.GovernorateRead.model_validate(x) for x in items])


@router.post("/governorates", response_model=schemas.ApiResponse[schemas.GovernorateRead], status_code=201, dependencies=[WRITE])
async def create_governorate(data: schemas.GovernorateCreate, db: AsyncSession = Depends(get_db)):
    return schemas.ok(schemas.GovernorateRead.model_validate(await crud.create_governorate(db, data)))


@router.get("/areas", response_model=schemas.ApiResponse[List[schemas.AreaRead]], dependencies=[READ])
async def list_areas(
    governorate_id: Optional[int] = Query(None, alias="governorateId"),
    q: Optional[str] = Query(None, description="名稱搜尋"),
    db: AsyncSession = Depends(get_db),
):
    items = await crud.list_areas(db, governorate_id=governorate_id, q=q)
    return schemas.ok([schemas.AreaRead.model_validate(x) for x in items])


@router.post("/areas", response_model=schemas.ApiResponse[schemas.AreaRead], status_code=201, dependencies=[WRITE])
async def create_area(data: schemas.AreaCreate, db: AsyncSession = Depends(get_db)):
    return schemas.ok(schemas.AreaRead.model_validate(await crud.create_area(db, data)))
