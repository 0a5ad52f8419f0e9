"""initial schema - territory, zones, organisation, premises, leave, service requests, AMC, notifications

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _id() -> sa.Column:
    return sa.Column("id", sa.Integer(), autoincrement=True, nullable=False)


def _created() -> sa.Column:
    return sa.Column("created_at", sa.DateTime(), nullable=False)


def _updated() -> sa.Column:
    return sa.Column("updated_at", sa.DateTime(), nullable=False)


def _active() -> sa.Column:
    return sa.Column("is_active", sa.Boolean(), nullable=False)


def _index(table: str, *columns: str) -> None:
    for col in columns:
        op.create_index(f"ix_{table}_{col}", table, [col])


def upgrade() -> None:
    # ---------- territory ----------
    op.create_table(
        "countries",
        _id(),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("code", sa.String(10), nullable=True),
        _active(),
        _created(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
    )
    op.create_table(
        "states",
        _id(),
        sa.Column("country_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("code", sa.String(20), nullable=True),
        _active(),
        _created(),
        sa.ForeignKeyConstraint(["country_id"], ["countries.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    _index("states", "country_id")
    op.create_table(
        "districts",
        _id(),
        sa.Column("state_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("code", sa.String(20), nullable=True),
        _active(),
        _created(),
        sa.ForeignKeyConstraint(["state_id"], ["states.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    _index("districts", "state_id")
    op.create_table(
        "governorates",
        _id(),
        sa.Column("district_id", sa.Integer(), nullable=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("code", sa.String(20), nullable=True),
        _active(),
        _created(),
        sa.ForeignKeyConstraint(["district_id"], ["districts.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    _index("governorates", "district_id")
    op.create_table(
        "areas",
        _id(),
        sa.Column("governorate_id", sa.Integer(), nullable=True),
        sa.Column("name", sa.String(100), nullable=False),
        _active(),
        _created(),
        sa.ForeignKeyConstraint(["governorate_id"], ["governorates.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    _index("areas", "governorate_id", "name")
    op.create_table(
        "zones",
        _id(),
        sa.Column("governorate_id", sa.Integer(), nullable=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("code", sa.String(30), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        _active(),
        _created(),
        _updated(),
        sa.ForeignKeyConstraint(["governorate_id"], ["governorates.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("code"),
        sa.UniqueConstraint("governorate_id", "name", name="uq_zone_governorate_name"),
    )
    _index("zones", "governorate_id", "name", "is_active")
    op.create_table(
        "zone_areas",
        _id(),
        sa.Column("zone_id", sa.Integer(), nullable=False),
        sa.Column("area_id", sa.Integer(), nullable=False),
        _created(),
        sa.ForeignKeyConstraint(["zone_id"], ["zones.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["area_id"], ["areas.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("area_id", name="uq_zone_area_area"),
    )
    _index("zone_areas", "zone_id")

    # ---------- organisation ----------
    op.create_table(
        "departments",
        _id(),
        sa.Column("name", sa.String(100), nullable=False),
        _active(),
        _created(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
    )
    op.create_table(
        "employees",
        _id(),
        sa.Column("employee_no", sa.String(30), nullable=False),
        sa.Column("first_name", sa.String(60), nullable=False),
        sa.Column("last_name", sa.String(60), nullable=False),
        sa.Column("email", sa.String(120), nullable=True),
        sa.Column("phone", sa.String(30), nullable=True),
        sa.Column("department_id", sa.Integer(), nullable=True),
        _active(),
        _created(),
        _updated(),
        sa.ForeignKeyConstraint(["department_id"], ["departments.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("employee_no"),
    )
    _index("employees", "email", "department_id", "is_active")
    op.create_table(
        "employee_zones",
        _id(),
        sa.Column("employee_id", sa.Integer(), nullable=False),
        sa.Column("zone_id", sa.Integer(), nullable=False),
        sa.Column("role", sa.String(20), nullable=False),
        sa.Column("is_primary", sa.Boolean(), nullable=False),
        _active(),
        _created(),
        _updated(),
        sa.ForeignKeyConstraint(["employee_id"], ["employees.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["zone_id"], ["zones.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("employee_id", "zone_id", name="uq_employee_zone"),
    )
    _index("employee_zones", "employee_id", "zone_id", "is_active")
    op.create_table(
        "complaint_types",
        _id(),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("department_id", sa.Integer(), nullable=True),
        _active(),
        _created(),
        sa.ForeignKeyConstraint(["department_id"], ["departments.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
    )
    _index("complaint_types", "department_id")

    # ---------- customers / premises ----------
    op.create_table(
        "customers",
        _id(),
        sa.Column("first_name", sa.String(60), nullable=True),
        sa.Column("last_name", sa.String(60), nullable=True),
        sa.Column("org_name", sa.String(150), nullable=True),
        sa.Column("email", sa.String(120), nullable=True),
        sa.Column("phone", sa.String(30), nullable=True),
        _active(),
        _created(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_table(
        "properties",
        _id(),
        sa.Column("customer_id", sa.Integer(), nullable=True),
        sa.Column("area_id", sa.Integer(), nullable=True),
        sa.Column("name", sa.String(150), nullable=False),
        sa.Column("address", sa.String(500), nullable=True),
        _created(),
        sa.ForeignKeyConstraint(["customer_id"], ["customers.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["area_id"], ["areas.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    _index("properties", "customer_id", "area_id")
    op.create_table(
        "buildings",
        _id(),
        sa.Column("area_id", sa.Integer(), nullable=True),
        sa.Column("name", sa.String(150), nullable=True),
        sa.Column("building_number", sa.String(30), nullable=False),
        _created(),
        sa.ForeignKeyConstraint(["area_id"], ["areas.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    _index("buildings", "area_id")
    op.create_table(
        "units",
        _id(),
        sa.Column("building_id", sa.Integer(), nullable=False),
        sa.Column("customer_id", sa.Integer(), nullable=True),
        sa.Column("unit_no", sa.String(50), nullable=False),
        sa.Column("flat_number", sa.String(20), nullable=True),
        _created(),
        sa.ForeignKeyConstraint(["building_id"], ["buildings.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["customer_id"], ["customers.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("building_id", "flat_number", name="uq_unit_building_flat"),
    )
    _index("units", "building_id", "customer_id")

    # ---------- leave ----------
    op.create_table(
        "leave_types",
        _id(),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("default_days", sa.Integer(), nullable=False),
        sa.Column("max_consecutive_days", sa.Integer(), nullable=True),
        sa.Column("is_paid", sa.Boolean(), nullable=False),
        sa.Column("requires_approval", sa.Boolean(), nullable=False),
        _active(),
        _created(),
        _updated(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
    )
    op.create_table(
        "leave_requests",
        _id(),
        sa.Column("employee_id", sa.Integer(), nullable=False),
        sa.Column("leave_type_id", sa.Integer(), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("total_days", sa.Integer(), nullable=False),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("approver_id", sa.Integer(), nullable=True),
        sa.Column("approved_at", sa.DateTime(), nullable=True),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("covering_employee_id", sa.Integer(), nullable=True),
        _created(),
        _updated(),
        sa.ForeignKeyConstraint(["employee_id"], ["employees.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["leave_type_id"], ["leave_types.id"]),
        sa.ForeignKeyConstraint(["approver_id"], ["employees.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["covering_employee_id"], ["employees.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    _index("leave_requests", "employee_id", "leave_type_id", "start_date", "end_date", "status")
    op.create_table(
        "leave_balances",
        _id(),
        sa.Column("employee_id", sa.Integer(), nullable=False),
        sa.Column("leave_type_id", sa.Integer(), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("total_days", sa.Integer(), nullable=False),
        sa.Column("used_days", sa.Integer(), nullable=False),
        sa.Column("pending_days", sa.Integer(), nullable=False),
        sa.Column("carry_over_days", sa.Integer(), nullable=False),
        _updated(),
        sa.ForeignKeyConstraint(["employee_id"], ["employees.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["leave_type_id"], ["leave_types.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("employee_id", "leave_type_id", "year", name="uq_leave_balance"),
    )
    _index("leave_balances", "employee_id", "leave_type_id")

    # ---------- service requests ----------
    op.create_table(
        "service_requests",
        _id(),
        sa.Column("request_no", sa.String(30), nullable=False),
        sa.Column("customer_id", sa.Integer(), nullable=False),
        sa.Column("property_id", sa.Integer(), nullable=True),
        sa.Column("unit_id", sa.Integer(), nullable=True),
        sa.Column("zone_id", sa.Integer(), nullable=False),
        sa.Column("complaint_type_id", sa.Integer(), nullable=False),
        sa.Column("assigned_to_id", sa.Integer(), nullable=True),
        sa.Column("request_type", sa.String(20), nullable=False),
        sa.Column("priority", sa.String(20), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("preferred_date", sa.Date(), nullable=True),
        sa.Column("preferred_time_slot", sa.String(50), nullable=True),
        sa.Column("resolution", sa.Text(), nullable=True),
        sa.Column("internal_notes", sa.Text(), nullable=True),
        _created(),
        _updated(),
        sa.ForeignKeyConstraint(["customer_id"], ["customers.id"]),
        sa.ForeignKeyConstraint(["property_id"], ["properties.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["unit_id"], ["units.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["zone_id"], ["zones.id"]),
        sa.ForeignKeyConstraint(["complaint_type_id"], ["complaint_types.id"]),
        sa.ForeignKeyConstraint(["assigned_to_id"], ["employees.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("request_no"),
    )
    _index(
        "service_requests", "customer_id", "property_id", "unit_id", "zone_id", "complaint_type_id",
        "assigned_to_id", "priority", "status", "preferred_date",
    )
    op.create_table(
        "request_timeline",
        _id(),
        sa.Column("service_request_id", sa.Integer(), nullable=False),
        sa.Column("action", sa.String(40), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("performed_by", sa.String(100), nullable=True),
        _created(),
        sa.ForeignKeyConstraint(["service_request_id"], ["service_requests.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    _index("request_timeline", "service_request_id")

    # ---------- AMC ----------
    op.create_table(
        "amc_contracts",
        _id(),
        sa.Column("contract_no", sa.String(30), nullable=False),
        sa.Column("customer_id", sa.Integer(), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("contract_value", sa.Numeric(12, 3), nullable=False),
        sa.Column("payment_terms", sa.String(20), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("auto_renew", sa.Boolean(), nullable=False),
        sa.Column("renewal_reminder_days", sa.Integer(), nullable=True),
        sa.Column("terms", sa.Text(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_by", sa.String(100), nullable=True),
        sa.Column("approved_by", sa.String(100), nullable=True),
        sa.Column("approved_at", sa.DateTime(), nullable=True),
        sa.Column("cancelled_by", sa.String(100), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(), nullable=True),
        sa.Column("cancellation_reason", sa.Text(), nullable=True),
        sa.Column("renewed_from_id", sa.Integer(), nullable=True),
        _created(),
        _updated(),
        sa.ForeignKeyConstraint(["customer_id"], ["customers.id"]),
        sa.ForeignKeyConstraint(["renewed_from_id"], ["amc_contracts.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("contract_no"),
    )
    _index("amc_contracts", "customer_id", "end_date", "status")
    op.create_table(
        "amc_contract_properties",
        _id(),
        sa.Column("contract_id", sa.Integer(), nullable=False),
        sa.Column("unit_id", sa.Integer(), nullable=True),
        sa.Column("property_id", sa.Integer(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(["contract_id"], ["amc_contracts.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["unit_id"], ["units.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["property_id"], ["properties.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    _index("amc_contract_properties", "contract_id")
    op.create_table(
        "amc_contract_services",
        _id(),
        sa.Column("contract_id", sa.Integer(), nullable=False),
        sa.Column("complaint_type_id", sa.Integer(), nullable=False),
        sa.Column("frequency", sa.String(20), nullable=False),
        sa.Column("visits_per_year", sa.Integer(), nullable=False),
        sa.Column("service_cost", sa.Numeric(12, 3), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(["contract_id"], ["amc_contracts.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["complaint_type_id"], ["complaint_types.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    _index("amc_contract_services", "contract_id")
    op.create_table(
        "amc_service_schedules",
        _id(),
        sa.Column("contract_id", sa.Integer(), nullable=False),
        sa.Column("unit_id", sa.Integer(), nullable=True),
        sa.Column("property_id", sa.Integer(), nullable=True),
        sa.Column("complaint_type_id", sa.Integer(), nullable=False),
        sa.Column("scheduled_date", sa.Date(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.Column("completed_by", sa.String(100), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        _created(),
        sa.ForeignKeyConstraint(["contract_id"], ["amc_contracts.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["unit_id"], ["units.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["property_id"], ["properties.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["complaint_type_id"], ["complaint_types.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    _index("amc_service_schedules", "contract_id", "scheduled_date", "status")
    op.create_table(
        "amc_payment_schedules",
        _id(),
        sa.Column("contract_id", sa.Integer(), nullable=False),
        sa.Column("installment_no", sa.Integer(), nullable=False),
        sa.Column("due_date", sa.Date(), nullable=False),
        sa.Column("amount", sa.Numeric(12, 3), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("paid_at", sa.DateTime(), nullable=True),
        sa.Column("paid_amount", sa.Numeric(12, 3), nullable=True),
        sa.Column("payment_method", sa.String(20), nullable=True),
        sa.Column("payment_reference", sa.String(100), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        _created(),
        sa.ForeignKeyConstraint(["contract_id"], ["amc_contracts.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    _index("amc_payment_schedules", "contract_id", "due_date", "status")

    # ---------- notifications ----------
    op.create_table(
        "notifications",
        _id(),
        sa.Column("recipient_email", sa.String(120), nullable=False),
        sa.Column("subject", sa.String(200), nullable=False),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("scheduled_at", sa.DateTime(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("sent_at", sa.DateTime(), nullable=True),
        sa.Column("error", sa.Text(), nullable=True),
        _created(),
        sa.PrimaryKeyConstraint("id"),
    )
    _index("notifications", "scheduled_at", "status")


def downgrade() -> None:
    for table in (
        "notifications",
        "amc_payment_schedules",
        "amc_service_schedules",
        "amc_contract_services",
        "amc_contract_properties",
        "amc_contracts",
        "request_timeline",
        "service_requests",
        "leave_balances",
        "leave_requests",
        "leave_types",
        "units",
        "buildings",
        "properties",
        "customers",
        "complaint_types",
        "employee_zones",
        "employees",
        "departments",
        "zone_areas",
        "zones",
        "areas",
        "governorates",
        "districts",
        "states",
        "countries",
    ):
        op.drop_table(table)
