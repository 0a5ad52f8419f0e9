"""
共用 fixture：in-memory SQLite（StaticPool）、基本資料、ASGI 測試 client。
"""
from decimal import Decimal
from types import SimpleNamespace

import httpx
import pytest
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from agentcare.config import settings
from agentcare.database import Base, get_db
from agentcare.models import (
    Area, Building, ComplaintType, Country, Customer, Department, District, Employee, EmployeeZone,
    Governorate, LeaveType, Property, State, Unit, Zone, ZoneArea,
)

TEST_API_KEY = "test-internal-key"


@pytest.fixture
async def async_engine_and_session():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    yield engine, async_session
    await engine.dispose()


@pytest.fixture
async def db(async_engine_and_session):
    _, async_session = async_engine_and_session
    async with async_session() as session:
        yield session


async def seed_world(session: AsyncSession) -> SimpleNamespace:
    """一個 governorate / area / zone，正副負責人與一位水電技師，兩種報修類別，一位客戶與一個單位"""
    country = Country(name="Bahrain", code="BH")
    session.add(country)
    await session.flush()
    state = State(country_id=country.id, name="Capital")
    session.add(state)
    await session.flush()
    district = District(state_id=state.id, name="Manama")
    session.add(district)
    await session.flush()
    gov = Governorate(district_id=district.id, name="Capital Governorate")
    session.add(gov)
    await session.flush()
    area = Area(governorate_id=gov.id, name="Juffair")
    other_area = Area(governorate_id=gov.id, name="Adliya")
    session.add_all([area, other_area])
    await session.flush()

    zone = Zone(governorate_id=gov.id, name="Zone A", code="ZA")
    session.add(zone)
    await session.flush()
    session.add(ZoneArea(zone_id=zone.id, area_id=area.id))

    plumbing_dept = Department(name="Plumbing")
    session.add(plumbing_dept)
    await session.flush()

    primary = Employee(employee_no="EMP-0001", first_name="Ali", last_name="Hassan", email="ali@example.com")
    secondary = Employee(employee_no="EMP-0002", first_name="Sara", last_name="Ahmed", email="sara@example.com")
    tech = Employee(employee_no="EMP-0003", first_name="Omar", last_name="Khalid", department_id=plumbing_dept.id)
    outsider = Employee(employee_no="EMP-0004", first_name="Noor", last_name="Saleh", email="noor@example.com")
    session.add_all([primary, secondary, tech, outsider])
    await session.flush()
    session.add_all([
        EmployeeZone(employee_id=primary.id, zone_id=zone.id, role="PRIMARY_HEAD", is_primary=True),
        EmployeeZone(employee_id=secondary.id, zone_id=zone.id, role="SECONDARY_HEAD"),
        EmployeeZone(employee_id=tech.id, zone_id=zone.id, role="TECHNICIAN"),
    ])

    plumbing = ComplaintType(name="Plumbing", department_id=plumbing_dept.id)
    painting = ComplaintType(name="Painting")
    session.add_all([plumbing, painting])

    customer = Customer(first_name="Fatima", last_name="Yousif", email="fatima@example.com")
    session.add(customer)
    await session.flush()
    building = Building(area_id=area.id, building_number="1203")
    session.add(building)
    await session.flush()
    unit = Unit(building_id=building.id, customer_id=customer.id, unit_no="1203-21", flat_number="21")
    orphan_property = Property(customer_id=customer.id, area_id=other_area.id, name="Villa 9")
    session.add_all([unit, orphan_property])

    annual = LeaveType(name="Annual", default_days=30, max_consecutive_days=20, requires_approval=True)
    emergency = LeaveType(name="Emergency", default_days=3, requires_approval=False)
    session.add_all([annual, emergency])
    await session.flush()

    return SimpleNamespace(
        country_id=country.id,
        governorate_id=gov.id,
        area_id=area.id,
        unmapped_area_id=other_area.id,
        zone_id=zone.id,
        department_id=plumbing_dept.id,
        primary_id=primary.id,
        secondary_id=secondary.id,
        tech_id=tech.id,
        outsider_id=outsider.id,
        plumbing_id=plumbing.id,
        painting_id=painting.id,
        customer_id=customer.id,
        building_id=building.id,
        unit_id=unit.id,
        orphan_property_id=orphan_property.id,
        annual_id=annual.id,
        emergency_id=emergency.id,
        contract_value=Decimal("1200.000"),
    )


@pytest.fixture
async def world(async_engine_and_session):
    _, async_session = async_engine_and_session
    async with async_session() as session:
        ids = await seed_world(session)
        await session.commit()
    return ids


@pytest.fixture
async def client(async_engine_and_session, monkeypatch):
    """ASGI client，get_db 改用測試 DB；預設帶內部 X-API-Key（全部權限）"""
    from agentcare.main import app

    _, async_session = async_engine_and_session

    async def override_get_db():
        async with async_session() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    monkeypatch.setattr(settings, "internal_api_key", TEST_API_KEY)
    app.dependency_overrides[get_db] = override_get_db
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(
        transport=transport, base_url="http://test", headers={"X-API-Key": TEST_API_KEY}
    ) as c:
        yield c
    app.dependency_overrides.clear()
