"""基本資料：部門、員工、報修類別、客戶、物業、大樓與單位。"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from agentcare import crud, schemas
from agentcare.auth import require_permission
from agentcare.database import get_db
from agentcare.errors import NotFoundError

router = APIRouter(prefix="/api/v1", tags=["master-data"])

READ = Depends(require_permission("master:read"))
WRITE = Depends(require_permission("master:write"))


# ---------- 部門 ----------
@router.get("/departments", response_model=schemas.ApiResponse[List[schemas.DepartmentRead]], dependencies=[READ])
async def list_departments(db: AsyncSession = Depends(get_db)):
    return schemas.ok([schemas.DepartmentRead.model_validate(d) for d in await crud.list_departments(db)])


@router.post("/departments", response_model=schemas.ApiResponse[schemas.DepartmentRead], status_code=201, dependencies=[WRITE])
async def create_department(data: schemas.DepartmentCreate, db: AsyncSession = Depends(get_db)):
    return schemas.ok(schemas.DepartmentRead.model_validate(await crud.create_department(db, data)))


# ---------- 員工 ----------
@router.get("/employees", response_model=schemas.ApiResponse[List[schemas.EmployeeRead]], dependencies=[READ])
async def list_employees(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    q: Optional[str] = Query(None, description="姓名、員工編號、e-mail 搜尋"),
    department_id: Optional[int] = Query(None, alias="departmentId"),
    is_active: Optional[bool] = Query(None, alias="isActive"),
    db: AsyncSession = Depends(get_db),
):
    items, total = await crud.list_employees(
        db, page=page, limit=limit, q=q, department_id=department_id, is_active=is_active
    )
    return schemas.ok([schemas.EmployeeRead.model_validate(e) for e in items], schemas.page_of(page, limit, total))


@router.get("/employees/{employee_id}", response_model=schemas.ApiResponse[schemas.EmployeeRead], dependencies=[READ])
async def get_employee(employee_id: int, db: AsyncSession = Depends(get_db)):
    emp = await crud.get_employee(db, employee_id)
    if not emp:
        raise NotFoundError("Employee not found")
    return schemas.ok(schemas.EmployeeRead.model_validate(emp))


@router.post("/employees", response_model=schemas.ApiResponse[schemas.EmployeeRead], status_code=201, dependencies=[WRITE])
async def create_employee(data: schemas.EmployeeCreate, db: AsyncSession = Depends(get_db)):
    return schemas.ok(schemas.EmployeeRead.model_validate(await crud.create_employee(db, data)))


@router.patch("/employees/{employee_id}", response_model=schemas.ApiResponse[schemas.EmployeeRead], dependencies=[WRITE])
async def update_employee(employee_id: int, data: schemas.EmployeeUpdate, db: AsyncSession = Depends(get_db)):
    emp = await crud.get_employee(db, employee_id)
    if not emp:
        raise NotFoundError("Employee not found")
    emp = await crud.update_employee(db, emp, data)
    return schemas.ok(schemas.EmployeeRead.model_validate(emp))


# ---------- 報修類別 ----------
@router.get("/complaint-types", response_model=schemas.ApiResponse[List[schemas.ComplaintTypeRead]], dependencies=[READ])
async def list_complaint_types(
    department_id: Optional[int] = Query(None, alias="departmentId"), db: AsyncSession = Depends(get_db)
):
    items = await crud.list_complaint_types(db, department_id=department_id)
    return schemas.ok([schemas.ComplaintTypeRead.model_validate(c) for c in items])


@router.post("/complaint-types", response_model=schemas.ApiResponse[schemas.ComplaintTypeRead], status_code=201, dependencies=[WRITE])
async def create_complaint_type(data: schemas.ComplaintTypeCreate, db: AsyncSession = Depends(get_db)):
    return schemas.ok(schemas.ComplaintTypeRead.model_validate(await crud.create_complaint_type(db, data)))


# ---------- 客戶與物業 ----------
@router.get("/customers", response_model=schemas.ApiResponse[List[schemas.CustomerRead]], dependencies=[READ])
async def list_customers(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    q: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    items, total = await crud.list_customers(db, page=page, limit=limit, q=q)
    return schemas.ok([schemas.CustomerRead.model_validate(c) for c in items], schemas.page_of(page, limit, total))


@router.post("/customers", response_model=schemas.ApiResponse[schemas.CustomerRead], status_code=201, dependencies=[WRITE])
async def create_customer(data: schemas.CustomerCreate, db: AsyncSession = Depends(get_db)):
    return schemas.ok(schemas.CustomerRead.model_validate(await crud.create_customer(db, data)))


@router.get("/properties", response_model=schemas.ApiResponse[List[schemas.PropertyRead]], dependencies=[READ])
async def list_properties(customer_id: Optional[int] = Query(None, alias="customerId"), db: AsyncSession = Depends(get_db)):
    items = await crud.list_properties(db, customer_id=customer_id)
    return schemas.ok([schemas.PropertyRead.model_validate(p) for p in items])


@router.post("/properties", response_model=schemas.ApiResponse[schemas.PropertyRead], status_code=201, dependencies=[WRITE])
async def create_property(data: schemas.PropertyCreate, db: AsyncSession = Depends(get_db)):
    return schemas.ok(schemas.PropertyRead.model_validate(await crud.create_property(db, data)))


@router.get("/buildings", response_model=schemas.ApiResponse[List[schemas.BuildingRead]], dependencies=[READ])
async def list_buildings(area_id: Optional[int] = Query(None, alias="areaId"), db: AsyncSession = Depends(get_db)):
    items = await crud.list_buildings(db, area_id=area_id)
    return schemas.ok([schemas.BuildingRead.model_validate(b) for b in items])


@router.post("/buildings", response_model=schemas.ApiResponse[schemas.BuildingRead], status_code=201, dependencies=[WRITE])
async def create_building(data: schemas.BuildingCreate, db: AsyncSession = Depends(get_db)):
    return schemas.ok(schemas.BuildingRead.model_validate(await crud.create_building(db, data)))


@router.get("/units", response_model=schemas.ApiResponse[List[schemas.UnitRead]], dependencies=[READ])
async def list_units(building_id: Optional[int] = Query(None, alias="buildingId"), db: AsyncSession = Depends(get_db)):
    items = await crud.list_units(db, building_id=building_id)
    return schemas.ok([schemas.UnitRead.model_validate(u) for u in items])


@router.post("/units", response_model=schemas.ApiResponse[schemas.UnitRead], status_code=201, dependencies=[WRITE])
async def create_unit(data: schemas.UnitCreate, db: AsyncSession = Depends(get_db)):
    return schemas.ok(schemas.UnitRead.model_validate(await crud.create_unit(db, data)))
