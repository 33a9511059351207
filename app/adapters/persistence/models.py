"""SQLAlchemy ORM models — maps to PostgreSQL tables."""

from datetime import date, datetime

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import ARRAY
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.adapters.persistence.database import Base


class PartnerModel(Base):
    __tablename__ = "partners"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(30), nullable=True)
    email: Mapped[str | None] = mapped_column(String(200), nullable=True)
    container_id: Mapped[str | None] = mapped_column(String(100), nullable=True)

    availability: Mapped[list["AvailabilitySlotModel"]] = relationship(back_populates="partner")


class CustomerModel(Base):
    __tablename__ = "customers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    phone: Mapped[str | None] = mapped_column(String(30), nullable=True)


class WorkerModel(Base):
    __tablename__ = "workers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    phone: Mapped[str | None] = mapped_column(String(30), nullable=True)
    worker_type: Mapped[str] = mapped_column(String(20), nullable=False)
    external_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    partner_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("partners.id"), nullable=True
    )
    rating: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    completed_jobs: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active")


class StorageUnitModel(Base):
    __tablename__ = "storage_units"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    label: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)


class AppointmentModel(Base):
    __tablename__ = "appointments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    appointment_type: Mapped[str] = mapped_column(String(30), nullable=False)
    scheduled_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    address: Mapped[str] = mapped_column(Text, nullable=False)
    zipcode: Mapped[str | None] = mapped_column(String(20), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    plan_type: Mapped[str] = mapped_column(String(30), nullable=False)
    unit_count: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    loading_help_price: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    customer_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("customers.id"), nullable=True
    )
    partner_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("partners.id"), nullable=True
    )
    third_party_partner_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now()
    )

    partner: Mapped["PartnerModel | None"] = relationship()
    customer: Mapped["CustomerModel | None"] = relationship()
    units: Mapped[list["AppointmentUnitModel"]] = relationship(
        back_populates="appointment",
        order_by="AppointmentUnitModel.position",
        cascade="all, delete-orphan",
    )
    tasks: Mapped[list["DispatchTaskModel"]] = relationship(
        back_populates="appointment",
        order_by="DispatchTaskModel.unit_number",
    )


class AppointmentUnitModel(Base):
    __tablename__ = "appointment_units"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    appointment_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("appointments.id", ondelete="CASCADE"), nullable=False
    )
    storage_unit_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("storage_units.id"), nullable=False
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)

    appointment: Mapped["AppointmentModel"] = relationship(back_populates="units")
    storage_unit: Mapped["StorageUnitModel"] = relationship()

    __table_args__ = (
        UniqueConstraint("appointment_id", "storage_unit_id", name="uq_appointment_unit"),
    )


class DispatchTaskModel(Base):
    __tablename__ = "dispatch_tasks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    appointment_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("appointments.id", ondelete="CASCADE"), nullable=False
    )
    external_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    short_id: Mapped[str | None] = mapped_column(String(50), nullable=True)
    step: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_number: Mapped[int] = mapped_column(Integer, nullable=False)
    worker_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("workers.id"), nullable=True
    )
    notification_status: Mapped[str] = mapped_column(String(30), nullable=False, default="none")
    last_notified_worker_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    notification_sent_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    worker_accepted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    worker_declined_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    appointment: Mapped["AppointmentModel"] = relationship(back_populates="tasks")
    worker: Mapped["WorkerModel | None"] = relationship()

    __table_args__ = (
        Index("idx_dispatch_tasks_appointment", "appointment_id", "unit_number"),
        CheckConstraint("unit_number >= 1", name="ck_dispatch_task_unit_number"),
    )


class AvailabilitySlotModel(Base):
    __tablename__ = "availability_slots"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    partner_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("partners.id", ondelete="CASCADE"), nullable=False
    )
    weekday: Mapped[int] = mapped_column(Integer, nullable=False)
    start_time: Mapped[str] = mapped_column(String(5), nullable=False)
    end_time: Mapped[str] = mapped_column(String(5), nullable=False)

    partner: Mapped["PartnerModel"] = relationship(back_populates="availability")

    __table_args__ = (Index("idx_availability_partner_day", "partner_id", "weekday"),)


class BookingWindowModel(Base):
    __tablename__ = "booking_windows"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    appointment_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("appointments.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    availability_slot_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("availability_slots.id", ondelete="CASCADE"), nullable=False
    )
    starts_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    ends_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class WorkerBookingModel(Base):
    __tablename__ = "worker_bookings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    worker_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("workers.id", ondelete="CASCADE"), nullable=False
    )
    appointment_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("appointments.id", ondelete="CASCADE"), nullable=False
    )
    unit_number: Mapped[int] = mapped_column(Integer, nullable=False)
    starts_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    ends_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        UniqueConstraint("appointment_id", "unit_number", name="uq_worker_booking_unit"),
    )


class NotificationModel(Base):
    __tablename__ = "notifications"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    recipient_id: Mapped[int] = mapped_column(Integer, nullable=False)
    recipient_type: Mapped[str] = mapped_column(String(20), nullable=False)
    notification_type: Mapped[str] = mapped_column(String(50), nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="unread")
    group_key: Mapped[str | None] = mapped_column(String(200), nullable=True)
    group_count: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    appointment_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    route_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (
        Index("idx_notifications_group", "recipient_id", "recipient_type", "group_key", "status"),
    )


class RouteOfferModel(Base):
    __tablename__ = "delivery_routes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    route_id: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    delivery_date: Mapped[date] = mapped_column(Date, nullable=False)
    total_stops: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    delivery_area: Mapped[str | None] = mapped_column(String(200), nullable=True)
    offer_status: Mapped[str] = mapped_column(String(20), nullable=False, default="unsent")
    route_status: Mapped[str] = mapped_column(String(30), nullable=False, default="pending")
    offer_sent_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    offer_expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    offered_worker_ids: Mapped[list[int]] = mapped_column(
        ARRAY(Integer), nullable=False, default=list
    )
    candidate_worker_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    worker_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("workers.id"), nullable=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    orders: Mapped[list["RouteOrderModel"]] = relationship(back_populates="route")

    __table_args__ = (Index("idx_routes_offer_expiry", "offer_status", "offer_expires_at"),)


class RouteOrderModel(Base):
    __tablename__ = "route_orders"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    route_id: Mapped[str] = mapped_column(
        String(100), ForeignKey("delivery_routes.route_id", ondelete="CASCADE"), nullable=False
    )
    stop_number: Mapped[int] = mapped_column(Integer, nullable=False)
    delivery_address: Mapped[str] = mapped_column(Text, nullable=False)
    assigned_worker_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    status: Mapped[str] = mapped_column(String(30), nullable=False, default="Pending")

    route: Mapped["RouteOfferModel"] = relationship(back_populates="orders")
