"""API 請求/回應結構 - Pydantic

JSON 欄位一律 camelCase（alias），輸入同時接受 snake_case。"""
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Generic, List, Literal, Optional, TypeVar
from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

# 欄位名 date 與型別 date 同名會讓 Pydantic 報 field name clashing，改用 DateType 註解
DateType = date
T = TypeVar("T")

ZoneRole = Literal["PRIMARY_HEAD", "SECONDARY_HEAD", "TECHNICIAN", "HELPER"]
LeaveStatus = Literal["PENDING", "APPROVED", "REJECTED", "CANCELLED"]
ServiceRequestStatus = Literal["NEW", "ASSIGNED", "IN_PROGRESS", "ON_HOLD", "COMPLETED", "CANCELLED", "CLOSED"]
Priority = Literal["LOW", "MEDIUM", "HIGH", "URGENT"]
RequestType = Literal["ON_CALL", "CONTRACT", "WARRANTY", "EMERGENCY"]
AmcStatus = Literal["DRAFT", "PENDING_APPROVAL", "ACTIVE", "SUSPENDED", "EXPIRED", "CANCELLED", "RENEWED"]
PaymentTerms = Literal["UPFRONT", "MONTHLY", "QUARTERLY", "SEMI_ANNUAL", "ANNUAL"]
Frequency = Literal["WEEKLY", "BI_WEEKLY", "MONTHLY", "BI_MONTHLY", "QUARTERLY", "SEMI_ANNUAL", "ANNUAL"]
ScheduleStatus = Literal["SCHEDULED", "CONFIRMED", "IN_PROGRESS", "COMPLETED", "MISSED", "RESCHEDULED", "CANCELLED"]
PaymentStatus = Literal["PENDING", "DUE", "PAID", "OVERDUE", "PARTIALLY_PAID", "WAIVED"]
PaymentMethod = Literal["CASH", "CARD", "BANK_TRANSFER", "CHEQUE", "ONLINE"]


class CamelModel(BaseModel):
    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)


# ---------- 回應外框 ----------
class Pagination(CamelModel):
    page: int
    limit: int
    total: int
    total_pages: int


class ErrorBody(CamelModel):
    code: str
    message: str
    details: Optional[Any] = None


class ApiResponse(CamelModel, Generic[T]):
    """{success, data, error, pagination}"""
    success: bool = True
    data: Optional[T] = None
    error: Optional[ErrorBody] = None
    pagination: Optional[Pagination] = None


def ok(data: Any = None, pagination: Optional[Pagination] = None) -> dict:
    out = {"success": True, "data": data}
    if pagination is not None:
        out["pagination"] = pagination
    return out


def page_of(page: int, limit: int, total: int) -> Pagination:
    return Pagination(page=page, limit=limit, total=total, total_pages=(total + limit - 1) // limit if limit else 0)


# ---------- auth ----------
class LoginRequest(CamelModel):
    username: str
    password: str


class TokenRead(CamelModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int


# ---------- territory ----------
class CountryCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    code: Optional[str] = Field(None, max_length=10)


class CountryRead(CountryCreate):
    id: int
    is_active: bool


class StateCreate(CamelModel):
    country_id: int
    name: str = Field(..., min_length=1, max_length=100)
    code: Optional[str] = None


class StateRead(StateCreate):
    id: int
    is_active: bool


class DistrictCreate(CamelModel):
    state_id: int
    name: str = Field(..., min_length=1, max_length=100)
    code: Optional[str] = None


class DistrictRead(DistrictCreate):
    id: int
    is_active: bool


class GovernorateCreate(CamelModel):
    district_id: Optional[int] = None
    name: str = Field(..., min_length=1, max_length=100)
    code: Optional[str] = None


class GovernorateRead(GovernorateCreate):
    id: int
    is_active: bool


class AreaCreate(CamelModel):
    governorate_id: Optional[int] = None
    name: str = Field(..., min_length=1, max_length=100)


class AreaRead(AreaCreate):
    id: int
    is_active: bool


# ---------- master data ----------
class DepartmentCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)


class DepartmentRead(DepartmentCreate):
    id: int
    is_active: bool


class EmployeeCreate(CamelModel):
    employee_no: str = Field(..., min_length=1, max_length=30)
    first_name: str = Field(..., min_length=1, max_length=60)
    last_name: str = Field("", max_length=60)
    email: Optional[str] = None
    phone: Optional[str] = None
    department_id: Optional[int] = None


class EmployeeUpdate(CamelModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    department_id: Optional[int] = None
    is_active: Optional[bool] = None


class EmployeeRead(EmployeeCreate):
    id: int
    is_active: bool


class EmployeeBrief(CamelModel):
    id: int
    employee_no: str
    first_name: str
    last_name: str
    email: Optional[str] = None
    phone: Optional[str] = None


class ComplaintTypeCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    department_id: Optional[int] = None


class ComplaintTypeRead(ComplaintTypeCreate):
    id: int
    is_active: bool


class CustomerCreate(CamelModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    org_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None

    @model_validator(mode="after")
    def _needs_a_name(self):
        if not (self.first_name or self.last_name or self.org_name):
            raise ValueError("firstName, lastName or orgName is required")
        return self


class CustomerRead(CustomerCreate):
    id: int
    is_active: bool


class PropertyCreate(CamelModel):
    customer_id: Optional[int] = None
    area_id: Optional[int] = None
    name: str = Field(..., min_length=1, max_length=150)
    address: Optional[str] = None


class PropertyRead(PropertyCreate):
    id: int


class BuildingCreate(CamelModel):
    area_id: Optional[int] = None
    name: Optional[str] = None
    building_number: str = Field(..., min_length=1, max_length=30)


class BuildingRead(BuildingCreate):
    id: int


class UnitCreate(CamelModel):
    building_id: int
    customer_id: Optional[int] = None
    flat_number: Optional[str] = None
    unit_no: Optional[str] = Field(None, description="預設為 building number + flat")


class UnitRead(CamelModel):
    id: int
    building_id: int
    customer_id: Optional[int] = None
    flat_number: Optional[str] = None
    unit_no: str


# ---------- zones ----------
class ZoneCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    code: Optional[str] = Field(None, max_length=30)
    description: Optional[str] = None
    governorate_id: Optional[int] = None


class ZoneUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    code: Optional[str] = Field(None, max_length=30)
    description: Optional[str] = None
    governorate_id: Optional[int] = None
    is_active: Optional[bool] = None


class ZoneRead(ZoneCreate):
    id: int
    is_active: bool
    created_at: datetime
    updated_at: datetime


class ZoneBrief(CamelModel):
    id: int
    name: str


class ZoneAreasUpdate(CamelModel):
    area_ids: List[int] = Field(default_factory=list)


class ZoneAssignRequest(CamelModel):
    employee_id: int
    role: ZoneRole
    is_primary: bool = False


class ZoneHeadsUpdate(CamelModel):
    """欄位省略＝不變；明確給 null＝解除該負責人"""
    primary_head_id: Optional[int] = None
    secondary_head_id: Optional[int] = None


class ZoneMemberRead(CamelModel):
    id: int
    employee_id: int
    zone_id: int
    role: str
    is_primary: bool
    is_active: bool
    employee: Optional[EmployeeBrief] = None


class ZoneTeamRead(CamelModel):
    zone: ZoneBrief
    primary_head: Optional[EmployeeBrief] = None
    secondary_head: Optional[EmployeeBrief] = None
    technicians: List[EmployeeBrief] = Field(default_factory=list)
    helpers: List[EmployeeBrief] = Field(default_factory=list)


class ActiveZoneHeadRead(CamelModel):
    zone: ZoneBrief
    date: DateType
    primary_head: Optional[EmployeeBrief] = None
    secondary_head: Optional[EmployeeBrief] = None
    active_head: Optional[EmployeeBrief] = None
    is_primary_on_leave: bool
    is_using_secondary: bool


class Period(CamelModel):
    start_date: date
    end_date: date


class LeaveOnRecord(CamelModel):
    id: int
    employee_id: int
    leave_type_id: int
    start_date: date
    end_date: date
    total_days: int
    covering_employee_id: Optional[int] = None


class ZoneCoverageRead(CamelModel):
    zone: ZoneBrief
    period: Period
    coverage_status: str
    coverage_note: str
    primary_head: Optional[EmployeeBrief] = None
    secondary_head: Optional[EmployeeBrief] = None
    is_primary_on_leave: bool
    is_secondary_on_leave: bool
    leave_requests: List[LeaveOnRecord] = Field(default_factory=list)
    team_count: int
    on_leave_count: int


class ZoneCoverageSummary(CamelModel):
    zone: ZoneBrief
    primary_head: Optional[EmployeeBrief] = None
    secondary_head: Optional[EmployeeBrief] = None
    is_primary_on_leave: bool
    is_secondary_on_leave: bool
    status: str
    team_count: int
    active_requests: int = 0


class AllZonesCoverageRead(CamelModel):
    date: DateType
    total_zones: int
    full_coverage: int
    secondary_coverage: int
    critical_coverage: int
    zones: List[ZoneCoverageSummary] = Field(default_factory=list)


# ---------- leave ----------
class LeaveTypeCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    default_days: int = Field(0, ge=0)
    max_consecutive_days: Optional[int] = Field(None, ge=1)
    is_paid: bool = True
    requires_approval: bool = True


class LeaveTypeUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    default_days: Optional[int] = Field(None, ge=0)
    max_consecutive_days: Optional[int] = Field(None, ge=1)
    is_paid: Optional[bool] = None
    requires_approval: Optional[bool] = None
    is_active: Optional[bool] = None


class LeaveTypeRead(LeaveTypeCreate):
    id: int
    is_active: bool


class LeaveRequestCreate(CamelModel):
    employee_id: int
    leave_type_id: int
    start_date: date
    end_date: date
    reason: Optional[str] = None
    covering_employee_id: Optional[int] = None


class LeaveRequestUpdate(CamelModel):
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    reason: Optional[str] = None
    covering_employee_id: Optional[int] = None


class LeaveRejectRequest(CamelModel):
    rejection_reason: str = Field(..., min_length=1)


class LeaveApproveRequest(CamelModel):
    approver_id: Optional[int] = None


class LeaveRequestRead(CamelModel):
    id: int
    employee_id: int
    leave_type_id: int
    start_date: date
    end_date: date
    total_days: int
    reason: Optional[str] = None
    status: str
    approver_id: Optional[int] = None
    approved_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    covering_employee_id: Optional[int] = None
    created_at: datetime


class EmployeeOnLeaveRead(LeaveRequestRead):
    employee: Optional[EmployeeBrief] = None


class LeaveBalanceRead(CamelModel):
    id: int
    employee_id: int
    leave_type_id: int
    leave_type_name: Optional[str] = None
    year: int
    total_days: int
    used_days: int
    pending_days: int
    carry_over_days: int
    available_days: int


class LeaveBalanceAdjust(CamelModel):
    employee_id: int
    leave_type_id: int
    year: int
    adjustment: int = Field(..., description="正數增加、負數扣減 totalDays")
    reason: Optional[str] = None


# ---------- service requests ----------
class ServiceRequestCreate(CamelModel):
    customer_id: int
    unit_id: Optional[int] = None
    property_id: Optional[int] = None
    zone_id: Optional[int] = None
    complaint_type_id: int
    request_type: RequestType = "ON_CALL"
    priority: Priority = "MEDIUM"
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    preferred_date: Optional[date] = None
    preferred_time_slot: Optional[str] = None

    @model_validator(mode="after")
    def _one_premise(self):
        if (self.unit_id is None) == (self.property_id is None):
            raise ValueError("exactly one of unitId or propertyId is required")
        return self


class ServiceRequestUpdate(CamelModel):
    priority: Optional[Priority] = None
    status: Optional[ServiceRequestStatus] = None
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    preferred_date: Optional[date] = None
    preferred_time_slot: Optional[str] = None
    resolution: Optional[str] = None
    internal_notes: Optional[str] = None


class ServiceRequestAssign(CamelModel):
    employee_id: int
    notes: Optional[str] = None


class ServiceRequestCancel(CamelModel):
    reason: Optional[str] = None


class TimelineRead(CamelModel):
    id: int
    action: str
    description: Optional[str] = None
    performed_by: Optional[str] = None
    created_at: datetime


class ServiceRequestRead(CamelModel):
    id: int
    request_no: str
    customer_id: int
    unit_id: Optional[int] = None
    property_id: Optional[int] = None
    zone_id: int
    complaint_type_id: int
    assigned_to_id: Optional[int] = None
    request_type: str
    priority: str
    status: str
    title: str
    description: Optional[str] = None
    preferred_date: Optional[date] = None
    preferred_time_slot: Optional[str] = None
    resolution: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class ServiceRequestDetail(ServiceRequestRead):
    internal_notes: Optional[str] = None
    timeline: List[TimelineRead] = Field(default_factory=list)


class ServiceRequestStats(CamelModel):
    total: int
    by_status: dict
    by_priority: dict


# ---------- AMC ----------
class ContractPropertyInput(CamelModel):
    unit_id: Optional[int] = None
    property_id: Optional[int] = None
    notes: Optional[str] = None

    @model_validator(mode="after")
    def _one_premise(self):
        if self.unit_id is None and self.property_id is None:
            raise ValueError("unitId or propertyId is required")
        return self


class ContractServiceInput(CamelModel):
    complaint_type_id: int
    frequency: Frequency = "MONTHLY"
    visits_per_year: Optional[int] = Field(None, ge=1, le=365)
    service_cost: Optional[Decimal] = Field(None, ge=0)
    notes: Optional[str] = None


class AmcContractCreate(CamelModel):
    customer_id: int
    start_date: date
    end_date: date
    contract_value: Decimal = Field(..., ge=0)
    payment_terms: PaymentTerms = "MONTHLY"
    auto_renew: bool = False
    renewal_reminder_days: Optional[int] = Field(None, ge=0)
    terms: Optional[str] = None
    notes: Optional[str] = None
    properties: List[ContractPropertyInput] = Field(..., min_length=1)
    services: List[ContractServiceInput] = Field(..., min_length=1)

    @model_validator(mode="after")
    def _dates(self):
        if self.end_date <= self.start_date:
            raise ValueError("endDate must be after startDate")
        return self


class AmcContractUpdate(CamelModel):
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    contract_value: Optional[Decimal] = Field(None, ge=0)
    payment_terms: Optional[PaymentTerms] = None
    auto_renew: Optional[bool] = None
    renewal_reminder_days: Optional[int] = Field(None, ge=0)
    terms: Optional[str] = None
    notes: Optional[str] = None


class AmcStatusUpdate(CamelModel):
    status: AmcStatus
    reason: Optional[str] = None


class ContractPropertyRead(CamelModel):
    id: int
    unit_id: Optional[int] = None
    property_id: Optional[int] = None
    notes: Optional[str] = None


class ContractServiceRead(CamelModel):
    id: int
    complaint_type_id: int
    frequency: str
    visits_per_year: int
    service_cost: Optional[Decimal] = None
    notes: Optional[str] = None


class AmcContractRead(CamelModel):
    id: int
    contract_no: str
    customer_id: int
    start_date: date
    end_date: date
    contract_value: Decimal
    payment_terms: str
    status: str
    auto_renew: bool
    renewal_reminder_days: Optional[int] = None
    terms: Optional[str] = None
    notes: Optional[str] = None
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    cancelled_by: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None
    renewed_from_id: Optional[int] = None
    created_at: datetime


class AmcContractDetail(AmcContractRead):
    properties: List[ContractPropertyRead] = Field(default_factory=list)
    services: List[ContractServiceRead] = Field(default_factory=list)


class AmcScheduleRead(CamelModel):
    id: int
    contract_id: int
    unit_id: Optional[int] = None
    property_id: Optional[int] = None
    complaint_type_id: int
    scheduled_date: date
    status: str
    completed_at: Optional[datetime] = None
    completed_by: Optional[str] = None
    notes: Optional[str] = None


class AmcScheduleStatusUpdate(CamelModel):
    status: ScheduleStatus
    notes: Optional[str] = None


class AmcPaymentRead(CamelModel):
    id: int
    contract_id: int
    installment_no: int
    due_date: date
    amount: Decimal
    status: str
    paid_at: Optional[datetime] = None
    paid_amount: Optional[Decimal] = None
    payment_method: Optional[str] = None
    payment_reference: Optional[str] = None
    notes: Optional[str] = None


class RecordPayment(CamelModel):
    paid_amount: Decimal = Field(..., gt=0)
    payment_method: PaymentMethod
    payment_reference: Optional[str] = None
    notes: Optional[str] = None


class GenerateResult(CamelModel):
    schedules_created: Optional[int] = None
    payments_created: Optional[int] = None


class AmcDashboardStats(CamelModel):
    total_contracts: int
    active_contracts: int
    expiring_contracts: int
    pending_payments: int
    overdue_payments: int
    upcoming_schedules: int


# ---------- scheduler ----------
class JobRead(CamelModel):
    name: str
    schedule: str
    description: str
    enabled: bool
    next_run_time: Optional[datetime] = None


class NotificationDetail(CamelModel):
    zone_id: int
    zone_name: str
    date: DateType
    task_count: int
    recipient: Optional[str] = None
    status: str
    error: Optional[str] = None


class ZoneHeadNotificationResult(CamelModel):
    total_notifications: int
    sent: int
    failed: int
    details: List[NotificationDetail] = Field(default_factory=list)


class ProcessedNotificationsResult(CamelModel):
    processed: int
    failed: int
