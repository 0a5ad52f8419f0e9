"""CRUD 操作 - 地區階層、責任區、部門/員工、報修類別、客戶與物業"""
from typing import Optional, List, Tuple, Type, TypeVar
from sqlalchemy import select, func, or_, delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Select

from agentcare.errors import ConflictError, NotFoundError, BadRequestError
from agentcare.models import (
    Country, State, District, Governorate, Area, Zone, ZoneArea,
    Department, Employee, ComplaintType, Customer, Property, Building, Unit,
)
from agentcare.schemas import (
    CountryCreate, StateCreate, DistrictCreate, GovernorateCreate, AreaCreate,
    ZoneCreate, ZoneUpdate,
    DepartmentCreate, EmployeeCreate, EmployeeUpdate, ComplaintTypeCreate,
    CustomerCreate, PropertyCreate, BuildingCreate, UnitCreate,
)

M = TypeVar("M")


async def paginate(db: AsyncSession, stmt: Select, page: int = 1, limit: int = 20) -> Tuple[list, int]:
    """回傳 (該頁資料, 總筆數)；stmt 需已帶 order_by"""
    count_stmt = select(func.count()).select_from(stmt.order_by(None).subquery())
    total = (await db.execute(count_stmt)).scalar_one()
    r = await db.execute(stmt.offset((page - 1) * limit).limit(limit))
    return list(r.scalars().all()), total


async def get_or_404(db: AsyncSession, model: Type[M], obj_id: int, label: Optional[str] = None) -> M:
    obj = await db.get(model, obj_id)
    if obj is None:
        raise NotFoundError(f"{label or model.__name__} not found")
    return obj


async def _create(db: AsyncSession, obj):
    db.add(obj)
    await db.flush()
    await db.refresh(obj)
    return obj


# ---------- 地區階層 territory ----------
async def create_country(db: AsyncSession, data: CountryCreate) -> Country:
    r = await db.execute(select(Country.id).where(func.lower(Country.name) == data.name.strip().lower()))
    if r.first():
        raise ConflictError("Country with this name already exists")
    return await _create(db, Country(**data.model_dump()))


async def list_countries(db: AsyncSession) -> List[Country]:
    r = await db.execute(select(Country).where(Country.is_active == True).order_by(Country.name))  # noqa: E712
    return list(r.scalars().all())


async def create_state(db: AsyncSession, data: StateCreate) -> State:
    await get_or_404(db, Country, data.country_id, "Country")
    return await _create(db, State(**data.model_dump()))


async def list_states(db: AsyncSession, country_id: Optional[int] = None) -> List[State]:
    q = select(State).where(State.is_active == True).order_by(State.name)  # noqa: E712
    if country_id is not None:
        q = q.where(State.country_id == country_id)
    r = await db.execute(q)
    return list(r.scalars().all())


async def create_district(db: AsyncSession, data: DistrictCreate) -> District:
    await get_or_404(db, State, data.state_id, "State")
    return await _create(db, District(**data.model_dump()))


async def list_districts(db: AsyncSession, state_id: Optional[int] = None) -> List[District]:
    q = select(District).where(District.is_active == True).order_by(District.name)  # noqa: E712
    if state_id is not None:
        q = q.where(District.state_id == state_id)
    r = await db.execute(q)
    return list(r.scalars().all())


async def create_governorate(db: AsyncSession, data: GovernorateCreate) -> Governorate:
    if data.district_id is not None:
        await get_or_404(db, District, data.district_id, "District")
    return await _create(db, Governorate(**data.model_dump()))


async def list_governorates(db: AsyncSession, district_id: Optional[int] = None) -> List[Governorate]:
    q = select(Governorate).where(Governorate.is_active == True).order_by(Governorate.name)  # noqa: E712
    if district_id is not None:
        q = q.where(Governorate.district_id == district_id)
    r = await db.execute(q)
    return list(r.scalars().all())


async def create_area(db: AsyncSession, data: AreaCreate) -> Area:
    if data.governorate_id is not None:
        await get_or_404(db, Governorate, data.governorate_id, "Governorate")
    return await _create(db, Area(**data.model_dump()))


async def list_areas(
    db: AsyncSession, governorate_id: Optional[int] = None, q: Optional[str] = None
) -> List[Area]:
    stmt = select(Area).where(Area.is_active == True).order_by(Area.name)  # noqa: E712
    if governorate_id is not None:
        stmt = stmt.where(Area.governorate_id == governorate_id)
    if q and q.strip():
        stmt = stmt.where(Area.name.ilike(f"%{q.strip()}%"))
    r = await db.execute(stmt)
    return list(r.scalars().all())


# ---------- 責任區 zones ----------
async def _check_zone_unique(
    db: AsyncSession, name: str, governorate_id: Optional[int], code: Optional[str], exclude_id: Optional[int] = None
) -> None:
    q = select(Zone.id).where(Zone.name == name)
    q = q.where(Zone.governorate_id == governorate_id) if governorate_id is not None else q.where(Zone.governorate_id.is_(None))
    if exclude_id is not None:
        q = q.where(Zone.id != exclude_id)
    if (await db.execute(q)).first():
        raise ConflictError("Zone with this name already exists in the governorate")
    if code:
        q = select(Zone.id).where(Zone.code == code)
        if exclude_id is not None:
            q = q.where(Zone.id != exclude_id)
        if (await db.execute(q)).first():
            raise ConflictError("Zone with this code already exists")


async def get_zone(db: AsyncSession, zone_id: int) -> Optional[Zone]:
    return await db.get(Zone, zone_id)


async def list_zones(
    db: AsyncSession,
    *,
    page: int = 1,
    limit: int = 20,
    q: Optional[str] = None,
    governorate_id: Optional[int] = None,
    is_active: Optional[bool] = None,
) -> Tuple[List[Zone], int]:
    stmt = select(Zone)
    if q and q.strip():
        kw = f"%{q.strip()}%"
        stmt = stmt.where(or_(Zone.name.ilike(kw), Zone.code.ilike(kw), Zone.description.ilike(kw)))
    if governorate_id is not None:
        stmt = stmt.where(Zone.governorate_id == governorate_id)
    if is_active is not None:
        stmt = stmt.where(Zone.is_active == is_active)
    return await paginate(db, stmt.order_by(Zone.name, Zone.id), page, limit)


async def create_zone(db: AsyncSession, data: ZoneCreate) -> Zone:
    if data.governorate_id is not None:
        await get_or_404(db, Governorate, data.governorate_id, "Governorate")
    await _check_zone_unique(db, data.name, data.governorate_id, data.code)
    return await _create(db, Zone(**data.model_dump()))


async def update_zone(db: AsyncSession, z: Zone, data: ZoneUpdate) -> Zone:
    update_data = data.model_dump(exclude_unset=True)
    if "governorate_id" in update_data and update_data["governorate_id"] is not None:
        await get_or_404(db, Governorate, update_data["governorate_id"], "Governorate")
    if {"name", "governorate_id", "code"} & update_data.keys():
        await _check_zone_unique(
            db,
            update_data.get("name", z.name),
            update_data.get("governorate_id", z.governorate_id),
            update_data.get("code") if "code" in update_data else None,
            exclude_id=z.id,
        )
    for k, v in update_data.items():
        setattr(z, k, v)
    await db.flush()
    await db.refresh(z)
    return z


async def deactivate_zone(db: AsyncSession, z: Zone) -> Zone:
    """軟刪除：is_active=False"""
    z.is_active = False
    await db.flush()
    await db.refresh(z)
    return z


async def set_zone_areas(db: AsyncSession, z: Zone, area_ids: List[int]) -> List[int]:
    """以 area_ids 取代責任區的地區對應；地區已屬其他責任區時 409"""
    area_ids = sorted(set(area_ids))
    if area_ids:
        r = await db.execute(select(Area.id).where(Area.id.in_(area_ids)))
        found = {row[0] for row in r.all()}
        missing = [a for a in area_ids if a not in found]
        if missing:
            raise NotFoundError(f"Area not found: {missing[0]}")
        r = await db.execute(select(ZoneArea).where(ZoneArea.area_id.in_(area_ids), ZoneArea.zone_id != z.id))
        taken = r.scalars().first()
        if taken is not None:
            raise ConflictError(f"Area {taken.area_id} is already mapped to zone {taken.zone_id}")
    await db.execute(delete(ZoneArea).where(ZoneArea.zone_id == z.id, ZoneArea.area_id.not_in(area_ids)))
    r = await db.execute(select(ZoneArea.area_id).where(ZoneArea.zone_id == z.id))
    existing = {row[0] for row in r.all()}
    for area_id in area_ids:
        if area_id not in existing:
            db.add(ZoneArea(zone_id=z.id, area_id=area_id))
    await db.flush()
    return area_ids


async def list_zone_area_ids(db: AsyncSession, zone_id: int) -> List[int]:
    r = await db.execute(select(ZoneArea.area_id).where(ZoneArea.zone_id == zone_id).order_by(ZoneArea.area_id))
    return [row[0] for row in r.all()]


async def resolve_zone_for_area(db: AsyncSession, area_id: Optional[int]) -> Optional[Zone]:
    """area → 所屬 zone（zone_areas）；無對應回傳 None"""
    if area_id is None:
        return None
    r = await db.execute(
        select(Zone).join(ZoneArea, ZoneArea.zone_id == Zone.id).where(ZoneArea.area_id == area_id)
    )
    return r.scalars().first()


# ---------- 部門 / 員工 ----------
async def create_department(db: AsyncSession, data: DepartmentCreate) -> Department:
    r = await db.execute(select(Department.id).where(Department.name == data.name))
    if r.first():
        raise ConflictError("Department with this name already exists")
    return await _create(db, Department(**data.model_dump()))


async def list_departments(db: AsyncSession) -> List[Department]:
    r = await db.execute(select(Department).order_by(Department.name))
    return list(r.scalars().all())


async def get_employee(db: AsyncSession, employee_id: int) -> Optional[Employee]:
    return await db.get(Employee, employee_id)


async def list_employees(
    db: AsyncSession,
    *,
    page: int = 1,
    limit: int = 20,
    q: Optional[str] = None,
    department_id: Optional[int] = None,
    is_active: Optional[bool] = None,
) -> Tuple[List[Employee], int]:
    stmt = select(Employee)
    if q and q.strip():
        kw = f"%{q.strip()}%"
        stmt = stmt.where(or_(
            Employee.first_name.ilike(kw), Employee.last_name.ilike(kw),
            Employee.employee_no.ilike(kw), Employee.email.ilike(kw),
        ))
    if department_id is not None:
        stmt = stmt.where(Employee.department_id == department_id)
    if is_active is not None:
        stmt = stmt.where(Employee.is_active == is_active)
    return await paginate(db, stmt.order_by(Employee.employee_no), page, limit)


async def create_employee(db: AsyncSession, data: EmployeeCreate) -> Employee:
    r = await db.execute(select(Employee.id).where(Employee.employee_no == data.employee_no))
    if r.first():
        raise ConflictError("Employee number already exists")
    if data.department_id is not None:
        await get_or_404(db, Department, data.department_id, "Department")
    return await _create(db, Employee(**data.model_dump()))


async def update_employee(db: AsyncSession, e: Employee, data: EmployeeUpdate) -> Employee:
    update_data = data.model_dump(exclude_unset=True)
    if update_data.get("department_id") is not None:
        await get_or_404(db, Department, update_data["department_id"], "Department")
    for k, v in update_data.items():
        setattr(e, k, v)
    await db.flush()
    await db.refresh(e)
    return e


# ---------- 報修類別 complaint types ----------
async def create_complaint_type(db: AsyncSession, data: ComplaintTypeCreate) -> ComplaintType:
    r = await db.execute(select(ComplaintType.id).where(ComplaintType.name == data.name))
    if r.first():
        raise ConflictError("Complaint type with this name already exists")
    if data.department_id is not None:
        await get_or_404(db, Department, data.department_id, "Department")
    return await _create(db, ComplaintType(**data.model_dump()))


async def list_complaint_types(db: AsyncSession, department_id: Optional[int] = None) -> List[ComplaintType]:
    q = select(ComplaintType).where(ComplaintType.is_active == True).order_by(ComplaintType.name)  # noqa: E712
    if department_id is not None:
        q = q.where(ComplaintType.department_id == department_id)
    r = await db.execute(q)
    return list(r.scalars().all())


# ---------- 客戶 / 物業 ----------
async def create_customer(db: AsyncSession, data: CustomerCreate) -> Customer:
    return await _create(db, Customer(**data.model_dump()))


async def list_customers(
    db: AsyncSession, *, page: int = 1, limit: int = 20, q: Optional[str] = None
) -> Tuple[List[Customer], int]:
    stmt = select(Customer).where(Customer.is_active == True)  # noqa: E712
    if q and q.strip():
        kw = f"%{q.strip()}%"
        stmt = stmt.where(or_(
            Customer.first_name.ilike(kw), Customer.last_name.ilike(kw),
            Customer.org_name.ilike(kw), Customer.phone.ilike(kw), Customer.email.ilike(kw),
        ))
    return await paginate(db, stmt.order_by(Customer.id), page, limit)


async def create_property(db: AsyncSession, data: PropertyCreate) -> Property:
    if data.customer_id is not None:
        await get_or_404(db, Customer, data.customer_id, "Customer")
    if data.area_id is not None:
        await get_or_404(db, Area, data.area_id, "Area")
    return await _create(db, Property(**data.model_dump()))


async def list_properties(db: AsyncSession, customer_id: Optional[int] = None) -> List[Property]:
    q = select(Property).order_by(Property.id)
    if customer_id is not None:
        q = q.where(Property.customer_id == customer_id)
    r = await db.execute(q)
    return list(r.scalars().all())


async def create_building(db: AsyncSession, data: BuildingCreate) -> Building:
    if data.area_id is not None:
        await get_or_404(db, Area, data.area_id, "Area")
    return await _create(db, Building(**data.model_dump()))


async def list_buildings(db: AsyncSession, area_id: Optional[int] = None) -> List[Building]:
    q = select(Building).order_by(Building.building_number)
    if area_id is not None:
        q = q.where(Building.area_id == area_id)
    r = await db.execute(q)
    return list(r.scalars().all())


async def create_unit(db: AsyncSession, data: UnitCreate) -> Unit:
    building = await get_or_404(db, Building, data.building_id, "Building")
    if data.customer_id is not None:
        await get_or_404(db, Customer, data.customer_id, "Customer")
    if data.flat_number:
        r = await db.execute(
            select(Unit.id).where(Unit.building_id == building.id, Unit.flat_number == data.flat_number)
        )
        if r.first():
            raise ConflictError("Unit with this flat number already exists in the building")
    unit_no = data.unit_no or (
        f"{building.building_number}-{data.flat_number}" if data.flat_number else building.building_number
    )
    if not unit_no:
        raise BadRequestError("unitNo is required")
    return await _create(db, Unit(
        building_id=building.id,
        customer_id=data.customer_id,
        flat_number=data.flat_number,
        unit_no=unit_no,
    ))


async def list_units(db: AsyncSession, building_id: Optional[int] = None) -> List[Unit]:
    q = select(Unit).order_by(Unit.id)
    if building_id is not None:
        q = q.where(Unit.building_id == building_id)
    r = await db.execute(q)
    return list(r.scalars().all())


async def area_id_for_premise(
    db: AsyncSession, unit_id: Optional[int] = None, property_id: Optional[int] = None
) -> Optional[int]:
    """Unit → building.area_id；legacy Property → property.area_id。物件不存在時 404"""
    if unit_id is not None:
        unit = await get_or_404(db, Unit, unit_id, "Unit")
        building = await db.get(Building, unit.building_id)
        return building.area_id if building else None
    if property_id is not None:
        prop = await get_or_404(db, Property, property_id, "Property")
        return prop.area_id
    return None
