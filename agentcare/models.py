"""資料庫模型 - territory, organisation, premises, leave, service requests, AMC contracts.

Zone heads live only in ``employee_zones`` (role PRIMARY_HEAD / SECONDARY_HEAD); the zone row
carries no head columns, so there is a single place to read and write headship."""
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, List
from sqlalchemy import String, Date, Text, Numeric, ForeignKey, DateTime, Boolean, Integer, UniqueConstraint, and_
from sqlalchemy.orm import Mapped, mapped_column, relationship
from agentcare.database import Base


# ---------- enumerations (stored as strings) ----------
ZONE_ROLES = ("PRIMARY_HEAD", "SECONDARY_HEAD", "TECHNICIAN", "HELPER")
HEAD_ROLES = ("PRIMARY_HEAD", "SECONDARY_HEAD")
# explicit head precedence for fallback assignment; lower wins
HEAD_ROLE_RANK = {"PRIMARY_HEAD": 0, "SECONDARY_HEAD": 1}

LEAVE_STATUSES = ("PENDING", "APPROVED", "REJECTED", "CANCELLED")
COVERAGE_STATUSES = ("FULL", "SECONDARY", "PARTIAL", "CRITICAL")

SERVICE_REQUEST_STATUSES = ("NEW", "ASSIGNED", "IN_PROGRESS", "ON_HOLD", "COMPLETED", "CANCELLED", "CLOSED")
OPEN_SERVICE_REQUEST_STATUSES = ("NEW", "ASSIGNED", "IN_PROGRESS", "ON_HOLD")
SERVICE_REQUEST_PRIORITIES = ("LOW", "MEDIUM", "HIGH", "URGENT")
SERVICE_REQUEST_TYPES = ("ON_CALL", "CONTRACT", "WARRANTY", "EMERGENCY")

AMC_STATUSES = ("DRAFT", "PENDING_APPROVAL", "ACTIVE", "SUSPENDED", "EXPIRED", "CANCELLED", "RENEWED")
AMC_PAYMENT_TERMS = ("UPFRONT", "MONTHLY", "QUARTERLY", "SEMI_ANNUAL", "ANNUAL")
AMC_FREQUENCIES = ("WEEKLY", "BI_WEEKLY", "MONTHLY", "BI_MONTHLY", "QUARTERLY", "SEMI_ANNUAL", "ANNUAL")
AMC_SCHEDULE_STATUSES = ("SCHEDULED", "CONFIRMED", "IN_PROGRESS", "COMPLETED", "MISSED", "RESCHEDULED", "CANCELLED")
AMC_PAYMENT_STATUSES = ("PENDING", "DUE", "PAID", "OVERDUE", "PARTIALLY_PAID", "WAIVED")
PAYMENT_METHODS = ("CASH", "CARD", "BANK_TRANSFER", "CHEQUE", "ONLINE")

NOTIFICATION_STATUSES = ("PENDING", "SENT", "FAILED")


# ---------- territory ----------
class Country(Base):
    __tablename__ = "countries"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), unique=True)
    code: Mapped[Optional[str]] = mapped_column(String(10), comment="ISO code, e.g. BH")
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


class State(Base):
    __tablename__ = "states"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    country_id: Mapped[int] = mapped_column(ForeignKey("countries.id", ondelete="CASCADE"), index=True)
    name: Mapped[str] = mapped_column(String(100))
    code: Mapped[Optional[str]] = mapped_column(String(20))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


class District(Base):
    __tablename__ = "districts"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    state_id: Mapped[int] = mapped_column(ForeignKey("states.id", ondelete="CASCADE"), index=True)
    name: Mapped[str] = mapped_column(String(100))
    code: Mapped[Optional[str]] = mapped_column(String(20))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


class Governorate(Base):
    __tablename__ = "governorates"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    district_id: Mapped[Optional[int]] = mapped_column(ForeignKey("districts.id", ondelete="SET NULL"), index=True)
    name: Mapped[str] = mapped_column(String(100))
    code: Mapped[Optional[str]] = mapped_column(String(20))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


class Area(Base):
    """地區（block / neighbourhood），透過 zone_areas 對應到唯一的 zone"""
    __tablename__ = "areas"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    governorate_id: Mapped[Optional[int]] = mapped_column(ForeignKey("governorates.id", ondelete="SET NULL"), index=True)
    name: Mapped[str] = mapped_column(String(100), index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


class Zone(Base):
    """服務責任區。正副負責人記錄在 employee_zones。"""
    __tablename__ = "zones"
    __table_args__ = (UniqueConstraint("governorate_id", "name", name="uq_zone_governorate_name"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    governorate_id: Mapped[Optional[int]] = mapped_column(ForeignKey("governorates.id", ondelete="SET NULL"), index=True)
    name: Mapped[str] = mapped_column(String(100), index=True)
    code: Mapped[Optional[str]] = mapped_column(String(30), unique=True)
    description: Mapped[Optional[str]] = mapped_column(Text)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    members: Mapped[List["EmployeeZone"]] = relationship("EmployeeZone", back_populates="zone", cascade="all, delete-orphan")
    area_links: Mapped[List["ZoneArea"]] = relationship("ZoneArea", back_populates="zone", cascade="all, delete-orphan")


class ZoneArea(Base):
    """Area → Zone 對應；一個 area 只屬於一個 zone"""
    __tablename__ = "zone_areas"
    __table_args__ = (UniqueConstraint("area_id", name="uq_zone_area_area"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    zone_id: Mapped[int] = mapped_column(ForeignKey("zones.id", ondelete="CASCADE"), index=True)
    area_id: Mapped[int] = mapped_column(ForeignKey("areas.id", ondelete="CASCADE"))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    zone: Mapped["Zone"] = relationship("Zone", back_populates="area_links")


# ---------- organisation ----------
class Department(Base):
    __tablename__ = "departments"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), unique=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


class Employee(Base):
    """員工基本資料"""
    __tablename__ = "employees"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    employee_no: Mapped[str] = mapped_column(String(30), unique=True, comment="e.g. EMP-0001")
    first_name: Mapped[str] = mapped_column(String(60))
    last_name: Mapped[str] = mapped_column(String(60))
    email: Mapped[Optional[str]] = mapped_column(String(120), index=True)
    phone: Mapped[Optional[str]] = mapped_column(String(30))
    department_id: Mapped[Optional[int]] = mapped_column(ForeignKey("departments.id", ondelete="SET NULL"), index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    zone_memberships: Mapped[List["EmployeeZone"]] = relationship("EmployeeZone", back_populates="employee", cascade="all, delete-orphan")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class EmployeeZone(Base):
    """員工-責任區成員（含正副負責人）。(employee_id, zone_id) 唯一。"""
    __tablename__ = "employee_zones"
    __table_args__ = (UniqueConstraint("employee_id", "zone_id", name="uq_employee_zone"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    employee_id: Mapped[int] = mapped_column(ForeignKey("employees.id", ondelete="CASCADE"), index=True)
    zone_id: Mapped[int] = mapped_column(ForeignKey("zones.id", ondelete="CASCADE"), index=True)
    role: Mapped[str] = mapped_column(String(20), comment="PRIMARY_HEAD / SECONDARY_HEAD / TECHNICIAN / HELPER")
    is_primary: Mapped[bool] = mapped_column(Boolean, default=False, comment="employee's home zone")
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    employee: Mapped["Employee"] = relationship("Employee", back_populates="zone_memberships")
    zone: Mapped["Zone"] = relationship("Zone", back_populates="members")


class ComplaintType(Base):
    """報修類別（plumbing, electrical ...），所屬部門用於自動派工"""
    __tablename__ = "complaint_types"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), unique=True)
    department_id: Mapped[Optional[int]] = mapped_column(ForeignKey("departments.id", ondelete="SET NULL"), index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


# ---------- customers / premises ----------
class Customer(Base):
    __tablename__ = "customers"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    first_name: Mapped[Optional[str]] = mapped_column(String(60))
    last_name: Mapped[Optional[str]] = mapped_column(String(60))
    org_name: Mapped[Optional[str]] = mapped_column(String(150), comment="company customers")
    email: Mapped[Optional[str]] = mapped_column(String(120))
    phone: Mapped[Optional[str]] = mapped_column(String(30))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    @property
    def display_name(self) -> str:
        if self.org_name:
            return self.org_name
        return f"{self.first_name or ''} {self.last_name or ''}".strip()


class Property(Base):
    """Legacy property record; new premises use buildings/units."""
    __tablename__ = "properties"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    customer_id: Mapped[Optional[int]] = mapped_column(ForeignKey("customers.id", ondelete="SET NULL"), index=True)
    area_id: Mapped[Optional[int]] = mapped_column(ForeignKey("areas.id", ondelete="SET NULL"), index=True)
    name: Mapped[str] = mapped_column(String(150))
    address: Mapped[Optional[str]] = mapped_column(String(500))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


class Building(Base):
    __tablename__ = "buildings"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    area_id: Mapped[Optional[int]] = mapped_column(ForeignKey("areas.id", ondelete="SET NULL"), index=True)
    name: Mapped[Optional[str]] = mapped_column(String(150))
    building_number: Mapped[str] = mapped_column(String(30))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


class Unit(Base):
    __tablename__ = "units"
    __table_args__ = (UniqueConstraint("building_id", "flat_number", name="uq_unit_building_flat"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    building_id: Mapped[int] = mapped_column(ForeignKey("buildings.id", ondelete="CASCADE"), index=True)
    customer_id: Mapped[Optional[int]] = mapped_column(ForeignKey("customers.id", ondelete="SET NULL"), index=True)
    unit_no: Mapped[str] = mapped_column(String(50), comment="building number + flat")
    flat_number: Mapped[Optional[str]] = mapped_column(String(20))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    building: Mapped["Building"] = relationship("Building")


# ---------- leave ----------
class LeaveType(Base):
    """假別設定"""
    __tablename__ = "leave_types"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), unique=True)
    description: Mapped[Optional[str]] = mapped_column(Text)
    default_days: Mapped[int] = mapped_column(Integer, default=0, comment="yearly entitlement")
    max_consecutive_days: Mapped[Optional[int]] = mapped_column(Integer)
    is_paid: Mapped[bool] = mapped_column(Boolean, default=True)
    requires_approval: Mapped[bool] = mapped_column(Boolean, default=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class LeaveRequest(Base):
    """請假單；start_date / end_date 皆含"""
    __tablename__ = "leave_requests"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    employee_id: Mapped[int] = mapped_column(ForeignKey("employees.id", ondelete="CASCADE"), index=True)
    leave_type_id: Mapped[int] = mapped_column(ForeignKey("leave_types.id"), index=True)
    start_date: Mapped[date] = mapped_column(Date, index=True)
    end_date: Mapped[date] = mapped_column(Date, index=True)
    total_days: Mapped[int] = mapped_column(Integer)
    reason: Mapped[Optional[str]] = mapped_column(Text)
    status: Mapped[str] = mapped_column(String(20), default="PENDING", index=True, comment="PENDING / APPROVED / REJECTED / CANCELLED")
    approver_id: Mapped[Optional[int]] = mapped_column(ForeignKey("employees.id", ondelete="SET NULL"))
    approved_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    rejection_reason: Mapped[Optional[str]] = mapped_column(Text)
    covering_employee_id: Mapped[Optional[int]] = mapped_column(ForeignKey("employees.id", ondelete="SET NULL"))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    employee: Mapped["Employee"] = relationship("Employee", foreign_keys=[employee_id])
    leave_type: Mapped["LeaveType"] = relationship("LeaveType")
    covering_employee: Mapped[Optional["Employee"]] = relationship("Employee", foreign_keys=[covering_employee_id])

    @classmethod
    def overlaps(cls, start: date, end: date):
        """與 [start, end]（含頭含尾）重疊的 SQL 條件"""
        return and_(cls.start_date <= end, cls.end_date >= start)


class LeaveBalance(Base):
    """假別餘額：(employee, leave_type, year) 唯一"""
    __tablename__ = "leave_balances"
    __table_args__ = (UniqueConstraint("employee_id", "leave_type_id", "year", name="uq_leave_balance"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    employee_id: Mapped[int] = mapped_column(ForeignKey("employees.id", ondelete="CASCADE"), index=True)
    leave_type_id: Mapped[int] = mapped_column(ForeignKey("leave_types.id", ondelete="CASCADE"), index=True)
    year: Mapped[int] = mapped_column(Integer)
    total_days: Mapped[int] = mapped_column(Integer, default=0)
    used_days: Mapped[int] = mapped_column(Integer, default=0)
    pending_days: Mapped[int] = mapped_column(Integer, default=0)
    carry_over_days: Mapped[int] = mapped_column(Integer, default=0)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    leave_type: Mapped["LeaveType"] = relationship("LeaveType")

    @property
    def available_days(self) -> int:
        return self.total_days + self.carry_over_days - self.used_days - self.pending_days


# ---------- service requests ----------
class ServiceRequest(Base):
    """報修單；property_id 與 unit_id 擇一"""
    __tablename__ = "service_requests"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    request_no: Mapped[str] = mapped_column(String(30), unique=True)
    customer_id: Mapped[int] = mapped_column(ForeignKey("customers.id"), index=True)
    property_id: Mapped[Optional[int]] = mapped_column(ForeignKey("properties.id", ondelete="SET NULL"), index=True)
    unit_id: Mapped[Optional[int]] = mapped_column(ForeignKey("units.id", ondelete="SET NULL"), index=True)
    zone_id: Mapped[int] = mapped_column(ForeignKey("zones.id"), index=True)
    complaint_type_id: Mapped[int] = mapped_column(ForeignKey("complaint_types.id"), index=True)
    assigned_to_id: Mapped[Optional[int]] = mapped_column(ForeignKey("employees.id", ondelete="SET NULL"), index=True)
    request_type: Mapped[str] = mapped_column(String(20), default="ON_CALL")
    priority: Mapped[str] = mapped_column(String(20), default="MEDIUM", index=True)
    status: Mapped[str] = mapped_column(String(20), default="NEW", index=True)
    title: Mapped[str] = mapped_column(String(200))
    description: Mapped[Optional[str]] = mapped_column(Text)
    preferred_date: Mapped[Optional[date]] = mapped_column(Date, index=True)
    preferred_time_slot: Mapped[Optional[str]] = mapped_column(String(50))
    resolution: Mapped[Optional[str]] = mapped_column(Text)
    internal_notes: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    customer: Mapped["Customer"] = relationship("Customer")
    assigned_to: Mapped[Optional["Employee"]] = relationship("Employee")
    timeline: Mapped[List["RequestTimeline"]] = relationship(
        "RequestTimeline", back_populates="service_request", cascade="all, delete-orphan", order_by="RequestTimeline.id.desc()"
    )


class RequestTimeline(Base):
    __tablename__ = "request_timeline"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    service_request_id: Mapped[int] = mapped_column(ForeignKey("service_requests.id", ondelete="CASCADE"), index=True)
    action: Mapped[str] = mapped_column(String(40), comment="REQUEST_CREATED / AUTO_ASSIGNED / ASSIGNED / STATUS_CHANGED")
    description: Mapped[Optional[str]] = mapped_column(Text)
    performed_by: Mapped[Optional[str]] = mapped_column(String(100))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    service_request: Mapped["ServiceRequest"] = relationship("ServiceRequest", back_populates="timeline")


# ---------- AMC contracts ----------
class AmcContract(Base):
    """年度維護合約表頭"""
    __tablename__ = "amc_contracts"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    contract_no: Mapped[str] = mapped_column(String(30), unique=True)
    customer_id: Mapped[int] = mapped_column(ForeignKey("customers.id"), index=True)
    start_date: Mapped[date] = mapped_column(Date)
    end_date: Mapped[date] = mapped_column(Date, index=True)
    contract_value: Mapped[Decimal] = mapped_column(Numeric(12, 3), comment="BHD, 3 decimals")
    payment_terms: Mapped[str] = mapped_column(String(20), default="MONTHLY")
    status: Mapped[str] = mapped_column(String(20), default="DRAFT", index=True)
    auto_renew: Mapped[bool] = mapped_column(Boolean, default=False)
    renewal_reminder_days: Mapped[Optional[int]] = mapped_column(Integer)
    terms: Mapped[Optional[str]] = mapped_column(Text)
    notes: Mapped[Optional[str]] = mapped_column(Text)
    created_by: Mapped[Optional[str]] = mapped_column(String(100))
    approved_by: Mapped[Optional[str]] = mapped_column(String(100))
    approved_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    cancelled_by: Mapped[Optional[str]] = mapped_column(String(100))
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    cancellation_reason: Mapped[Optional[str]] = mapped_column(Text)
    renewed_from_id: Mapped[Optional[int]] = mapped_column(ForeignKey("amc_contracts.id", ondelete="SET NULL"))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    properties: Mapped[List["AmcContractProperty"]] = relationship(
        "AmcContractProperty", back_populates="contract", cascade="all, delete-orphan", order_by="AmcContractProperty.id"
    )
    services: Mapped[List["AmcContractService"]] = relationship(
        "AmcContractService", back_populates="contract", cascade="all, delete-orphan", order_by="AmcContractService.id"
    )
    schedules: Mapped[List["AmcServiceSchedule"]] = relationship(
        "AmcServiceSchedule", back_populates="contract", cascade="all, delete-orphan"
    )
    payments: Mapped[List["AmcPaymentSchedule"]] = relationship(
        "AmcPaymentSchedule", back_populates="contract", cascade="all, delete-orphan"
    )


class AmcContractProperty(Base):
    __tablename__ = "amc_contract_properties"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    contract_id: Mapped[int] = mapped_column(ForeignKey("amc_contracts.id", ondelete="CASCADE"), index=True)
    unit_id: Mapped[Optional[int]] = mapped_column(ForeignKey("units.id", ondelete="SET NULL"))
    property_id: Mapped[Optional[int]] = mapped_column(ForeignKey("properties.id", ondelete="SET NULL"))
    notes: Mapped[Optional[str]] = mapped_column(Text)

    contract: Mapped["AmcContract"] = relationship("AmcContract", back_populates="properties")


class AmcContractService(Base):
    __tablename__ = "amc_contract_services"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    contract_id: Mapped[int] = mapped_column(ForeignKey("amc_contracts.id", ondelete="CASCADE"), index=True)
    complaint_type_id: Mapped[int] = mapped_column(ForeignKey("complaint_types.id"))
    frequency: Mapped[str] = mapped_column(String(20), default="MONTHLY")
    visits_per_year: Mapped[int] = mapped_column(Integer, default=12)
    service_cost: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 3))
    notes: Mapped[Optional[str]] = mapped_column(Text)

    contract: Mapped["AmcContract"] = relationship("AmcContract", back_populates="services")


class AmcServiceSchedule(Base):
    """合約排定保養拜訪"""
    __tablename__ = "amc_service_schedules"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    contract_id: Mapped[int] = mapped_column(ForeignKey("amc_contracts.id", ondelete="CASCADE"), index=True)
    unit_id: Mapped[Optional[int]] = mapped_column(ForeignKey("units.id", ondelete="SET NULL"))
    property_id: Mapped[Optional[int]] = mapped_column(ForeignKey("properties.id", ondelete="SET NULL"))
    complaint_type_id: Mapped[int] = mapped_column(ForeignKey("complaint_types.id"))
    scheduled_date: Mapped[date] = mapped_column(Date, index=True)
    status: Mapped[str] = mapped_column(String(20), default="SCHEDULED", index=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    completed_by: Mapped[Optional[str]] = mapped_column(String(100))
    notes: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    contract: Mapped["AmcContract"] = relationship("AmcContract", back_populates="schedules")


class AmcPaymentSchedule(Base):
    """合約分期付款"""
    __tablename__ = "amc_payment_schedules"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    contract_id: Mapped[int] = mapped_column(ForeignKey("amc_contracts.id", ondelete="CASCADE"), index=True)
    installment_no: Mapped[int] = mapped_column(Integer)
    due_date: Mapped[date] = mapped_column(Date, index=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 3))
    status: Mapped[str] = mapped_column(String(20), default="PENDING", index=True)
    paid_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    paid_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 3))
    payment_method: Mapped[Optional[str]] = mapped_column(String(20))
    payment_reference: Mapped[Optional[str]] = mapped_column(String(100))
    notes: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    contract: Mapped["AmcContract"] = relationship("AmcContract", back_populates="payments")


# ---------- notifications ----------
class Notification(Base):
    """排程寄送的 e-mail 通知"""
    __tablename__ = "notifications"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    recipient_email: Mapped[str] = mapped_column(String(120))
    subject: Mapped[str] = mapped_column(String(200))
    body: Mapped[str] = mapped_column(Text)
    scheduled_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True)
    status: Mapped[str] = mapped_column(String(20), default="PENDING", index=True)
    sent_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    error: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
