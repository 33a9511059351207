"""Initial schema — appointments, dispatch tasks, bookings, notifications, route offers.

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""

from typing import Sequence, Union

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import ARRAY

from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Parties
    op.create_table(
        "partners",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("phone", sa.String(30), nullable=True),
        sa.Column("email", sa.String(200), nullable=True),
        sa.Column("container_id", sa.String(100), nullable=True),
    )

    op.create_table(
        "customers",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False, server_default=""),
        sa.Column("phone", sa.String(30), nullable=True),
    )

    op.create_table(
        "workers",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False, server_default=""),
        sa.Column("phone", sa.String(30), nullable=True),
        sa.Column("worker_type", sa.String(20), nullable=False),
        sa.Column("external_id", sa.String(100), nullable=True),
        sa.Column("partner_id", sa.Integer, sa.ForeignKey("partners.id"), nullable=True),
        sa.Column("rating", sa.Float, nullable=False, server_default="0"),
        sa.Column("completed_jobs", sa.Integer, nullable=False, server_default="0"),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
    )

    op.create_table(
        "storage_units",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("label", sa.String(50), unique=True, nullable=False),
    )

    # Appointments
    op.create_table(
        "appointments",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("appointment_type", sa.String(30), nullable=False),
        sa.Column("scheduled_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("address", sa.Text, nullable=False),
        sa.Column("zipcode", sa.String(20), nullable=True),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("plan_type", sa.String(30), nullable=False),
        sa.Column("unit_count", sa.Integer, nullable=False, server_default="1"),
        sa.Column("loading_help_price", sa.Float, nullable=False, server_default="0"),
        sa.Column("customer_id", sa.Integer, sa.ForeignKey("customers.id"), nullable=True),
        sa.Column("partner_id", sa.Integer, sa.ForeignKey("partners.id"), nullable=True),
        sa.Column("third_party_partner_id", sa.Integer, nullable=True),
        sa.Column("created_at", sa.DateTime, nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "appointment_units",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "appointment_id",
            sa.Integer,
            sa.ForeignKey("appointments.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "storage_unit_id", sa.Integer, sa.ForeignKey("storage_units.id"), nullable=False
        ),
        sa.Column("position", sa.Integer, nullable=False),
        sa.UniqueConstraint("appointment_id", "storage_unit_id", name="uq_appointment_unit"),
    )

    # Dispatch tasks
    op.create_table(
        "dispatch_tasks",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "appointment_id",
            sa.Integer,
            sa.ForeignKey("appointments.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("external_id", sa.String(100), nullable=True),
        sa.Column("short_id", sa.String(50), nullable=True),
        sa.Column("step", sa.Integer, nullable=False),
        sa.Column("unit_number", sa.Integer, nullable=False),
        sa.Column("worker_id", sa.Integer, sa.ForeignKey("workers.id"), nullable=True),
        sa.Column("notification_status", sa.String(30), nullable=False, server_default="none"),
        sa.Column("last_notified_worker_id", sa.Integer, nullable=True),
        sa.Column("notification_sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("worker_accepted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("worker_declined_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("unit_number >= 1", name="ck_dispatch_task_unit_number"),
    )
    op.create_index(
        "idx_dispatch_tasks_appointment", "dispatch_tasks", ["appointment_id", "unit_number"]
    )

    # Bookings
    op.create_table(
        "availability_slots",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "partner_id",
            sa.Integer,
            sa.ForeignKey("partners.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("weekday", sa.Integer, nullable=False),
        sa.Column("start_time", sa.String(5), nullable=False),
        sa.Column("end_time", sa.String(5), nullable=False),
    )
    op.create_index(
        "idx_availability_partner_day", "availability_slots", ["partner_id", "weekday"]
    )

    op.create_table(
        "booking_windows",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "appointment_id",
            sa.Integer,
            sa.ForeignKey("appointments.id", ondelete="CASCADE"),
            unique=True,
            nullable=False,
        ),
        sa.Column(
            "availability_slot_id",
            sa.Integer,
            sa.ForeignKey("availability_slots.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("starts_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("ends_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "worker_bookings",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "worker_id", sa.Integer, sa.ForeignKey("workers.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column(
            "appointment_id",
            sa.Integer,
            sa.ForeignKey("appointments.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("unit_number", sa.Integer, nullable=False),
        sa.Column("starts_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("ends_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("appointment_id", "unit_number", name="uq_worker_booking_unit"),
    )

    # Notifications
    op.create_table(
        "notifications",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("recipient_id", sa.Integer, nullable=False),
        sa.Column("recipient_type", sa.String(20), nullable=False),
        sa.Column("notification_type", sa.String(50), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("message", sa.Text, nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="unread"),
        sa.Column("group_key", sa.String(200), nullable=True),
        sa.Column("group_count", sa.Integer, nullable=False, server_default="1"),
        sa.Column("appointment_id", sa.Integer, nullable=True),
        sa.Column("route_id", sa.String(100), nullable=True),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
    )
    op.create_index(
        "idx_notifications_group",
        "notifications",
        ["recipient_id", "recipient_type", "group_key", "status"],
    )

    # Delivery routes
    op.create_table(
        "delivery_routes",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("route_id", sa.String(100), unique=True, nullable=False),
        sa.Column("delivery_date", sa.Date, nullable=False),
        sa.Column("total_stops", sa.Integer, nullable=False, server_default="0"),
        sa.Column("delivery_area", sa.String(200), nullable=True),
        sa.Column("offer_status", sa.String(20), nullable=False, server_default="unsent"),
        sa.Column("route_status", sa.String(30), nullable=False, server_default="pending"),
        sa.Column("offer_sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("offer_expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "offered_worker_ids", ARRAY(sa.Integer), nullable=False, server_default="{}"
        ),
        sa.Column("candidate_worker_id", sa.Integer, nullable=True),
        sa.Column("worker_id", sa.Integer, sa.ForeignKey("workers.id"), nullable=True),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
    )
    op.create_index(
        "idx_routes_offer_expiry", "delivery_routes", ["offer_status", "offer_expires_at"]
    )

    op.create_table(
        "route_orders",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "route_id",
            sa.String(100),
            sa.ForeignKey("delivery_routes.route_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("stop_number", sa.Integer, nullable=False),
        sa.Column("delivery_address", sa.Text, nullable=False),
        sa.Column("assigned_worker_id", sa.Integer, nullable=True),
        sa.Column("status", sa.String(30), nullable=False, server_default="Pending"),
    )


def downgrade() -> None:
    op.drop_table("route_orders")
    op.drop_index("idx_routes_offer_expiry")
    op.drop_table("delivery_routes")
    op.drop_index("idx_notifications_group")
    op.drop_table("notifications")
    op.drop_table("worker_bookings")
    op.drop_table("booking_windows")
    op.drop_index("idx_availability_partner_day")
    op.drop_table("availability_slots")
    op.drop_index("idx_dispatch_tasks_appointment")
    op.drop_table("dispatch_tasks")
    op.drop_table("appointment_units")
    op.drop_table("appointments")
    op.drop_table("storage_units")
    op.drop_table("customers")
    op.drop_table("workers")
    op.drop_table("partners")
