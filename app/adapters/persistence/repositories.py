"""SQLAlchemy repository implementations."""

from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.adapters.persistence.models import (
    AppointmentModel,
    AppointmentUnitModel,
    AvailabilitySlotModel,
    BookingWindowModel,
    CustomerModel,
    DispatchTaskModel,
    NotificationModel,
    PartnerModel,
    RouteOfferModel,
    RouteOrderModel,
    StorageUnitModel,
    WorkerBookingModel,
    WorkerModel,
)
from app.application.ports.appointment_repo import AppointmentRepository
from app.application.ports.booking_repo import BookingRepository
from app.application.ports.notification_repo import NotificationRepository
from app.application.ports.route_offer_repo import RouteOfferRepository
from app.application.ports.task_repo import TaskRepository
from app.application.ports.worker_repo import WorkerRepository
from app.domain.entities.appointment import Appointment, Customer, Partner, StorageUnitRef
from app.domain.entities.booking import AvailabilitySlot, BookingWindow, WorkerBooking
from app.domain.entities.dispatch_task import DispatchTask, Worker
from app.domain.entities.notification import Notification
from app.domain.entities.route_offer import RouteOffer
from app.domain.value_objects.enums import (
    AppointmentType,
    NotificationStatus,
    NotificationType,
    OfferStatus,
    PlanType,
    RecipientType,
    RouteStatus,
    TaskNotificationStatus,
    TaskStep,
    WorkerType,
)

# ─── Mappers ─────────────────────────────────────────────────────────


def _partner_to_domain(m: PartnerModel) -> Partner:
    return Partner(
        id=m.id, name=m.name, phone=m.phone, email=m.email, container_id=m.container_id
    )


def _customer_to_domain(m: CustomerModel) -> Customer:
    return Customer(id=m.id, first_name=m.first_name, last_name=m.last_name, phone=m.phone)


def _worker_to_domain(m: WorkerModel) -> Worker:
    return Worker(
        id=m.id,
        first_name=m.first_name,
        last_name=m.last_name,
        phone=m.phone,
        worker_type=WorkerType(m.worker_type),
        external_id=m.external_id,
        rating=m.rating,
        completed_jobs=m.completed_jobs,
    )


def _task_to_domain(m: DispatchTaskModel) -> DispatchTask:
    return DispatchTask(
        id=m.id,
        appointment_id=m.appointment_id,
        step=TaskStep(m.step),
        unit_number=m.unit_number,
        external_id=m.external_id,
        short_id=m.short_id,
        worker_id=m.worker_id,
        worker=_worker_to_domain(m.worker) if m.worker else None,
        notification_status=TaskNotificationStatus(m.notification_status),
        last_notified_worker_id=m.last_notified_worker_id,
        notification_sent_at=m.notification_sent_at,
        worker_accepted_at=m.worker_accepted_at,
        worker_declined_at=m.worker_declined_at,
    )


def _appointment_to_domain(m: AppointmentModel, tasks: list[DispatchTask]) -> Appointment:
    return Appointment(
        id=m.id,
        appointment_type=AppointmentType(m.appointment_type),
        scheduled_at=m.scheduled_at,
        address=m.address,
        zipcode=m.zipcode,
        description=m.description,
        plan_type=PlanType(m.plan_type),
        unit_count=m.unit_count,
        customer_id=m.customer_id,
        partner_id=m.partner_id,
        third_party_partner_id=m.third_party_partner_id,
        selected_units=[
            StorageUnitRef(id=u.storage_unit.id, label=u.storage_unit.label) for u in m.units
        ],
        loading_help_price=m.loading_help_price,
        partner=_partner_to_domain(m.partner) if m.partner else None,
        customer=_customer_to_domain(m.customer) if m.customer else None,
        tasks=tasks,
    )


def _notification_to_domain(m: NotificationModel) -> Notification:
    return Notification(
        id=m.id,
        recipient_id=m.recipient_id,
        recipient_type=RecipientType(m.recipient_type),
        notification_type=NotificationType(m.notification_type),
        title=m.title,
        message=m.message,
        status=NotificationStatus(m.status),
        group_key=m.group_key,
        group_count=m.group_count,
        appointment_id=m.appointment_id,
        route_id=m.route_id,
        created_at=m.created_at,
    )


def _route_to_domain(m: RouteOfferModel) -> RouteOffer:
    return RouteOffer(
        id=m.id,
        route_id=m.route_id,
        delivery_date=m.delivery_date,
        total_stops=m.total_stops,
        delivery_area=m.delivery_area,
        offer_status=OfferStatus(m.offer_status),
        route_status=RouteStatus(m.route_status),
        offer_sent_at=m.offer_sent_at,
        offer_expires_at=m.offer_expires_at,
        offered_worker_ids=list(m.offered_worker_ids or []),
        candidate_worker_id=m.candidate_worker_id,
        worker_id=m.worker_id,
    )


# ─── Repositories ────────────────────────────────────────────────────


class SqlTaskRepository(TaskRepository):
    def __init__(self, session: AsyncSession):
        self._s = session

    async def get_by_appointment(self, appointment_id: int) -> list[DispatchTask]:
        result = await self._s.execute(
            select(DispatchTaskModel)
            .options(selectinload(DispatchTaskModel.worker))
            .where(DispatchTaskModel.appointment_id == appointment_id)
            .order_by(DispatchTaskModel.unit_number, DispatchTaskModel.step)
            .execution_options(populate_existing=True)
        )
        return [_task_to_domain(m) for m in result.scalars()]

    async def save(self, task: DispatchTask) -> DispatchTask:
        m = DispatchTaskModel(
            appointment_id=task.appointment_id,
            external_id=task.external_id,
            short_id=task.short_id,
            step=int(task.step),
            unit_number=task.unit_number,
            worker_id=task.worker_id,
            notification_status=task.notification_status.value,
        )
        self._s.add(m)
        await self._s.flush()
        task.id = m.id
        return task

    async def update(self, task: DispatchTask) -> DispatchTask:
        await self._s.execute(
            update(DispatchTaskModel)
            .where(DispatchTaskModel.id == task.id)
            .values(
                unit_number=task.unit_number,
                worker_id=task.worker_id,
                notification_status=task.notification_status.value,
                last_notified_worker_id=task.last_notified_worker_id,
                notification_sent_at=task.notification_sent_at,
                worker_accepted_at=task.worker_accepted_at,
                worker_declined_at=task.worker_declined_at,
            )
            .execution_options(synchronize_session=False)
        )
        return task

    async def delete(self, task_ids: list[int]) -> int:
        result = await self._s.execute(
            delete(DispatchTaskModel)
            .where(DispatchTaskModel.id.in_(task_ids))
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0


class SqlAppointmentRepository(AppointmentRepository):
    def __init__(self, session: AsyncSession):
        self._s = session
        self._tasks = SqlTaskRepository(session)

    async def get_with_relations(self, appointment_id: int) -> Appointment | None:
        result = await self._s.execute(
            select(AppointmentModel)
            .options(
                selectinload(AppointmentModel.partner),
                selectinload(AppointmentModel.customer),
                selectinload(AppointmentModel.units).selectinload(AppointmentUnitModel.storage_unit),
            )
            .where(AppointmentModel.id == appointment_id)
            .execution_options(populate_existing=True)
        )
        m = result.scalar_one_or_none()
        if m is None:
            return None
        tasks = await self._tasks.get_by_appointment(appointment_id)
        return _appointment_to_domain(m, tasks)

    async def commit(self) -> None:
        await self._s.commit()

    async def update(
        self, appointment: Appointment, selected_unit_ids: tuple[int, ...] | None = None
    ) -> Appointment:
        # A rollback below must only discard this update
        await self._s.commit()
        try:
            await self._s.execute(
                update(AppointmentModel)
                .where(AppointmentModel.id == appointment.id)
                .values(
                    scheduled_at=appointment.scheduled_at,
                    address=appointment.address,
                    zipcode=appointment.zipcode,
                    description=appointment.description,
                    plan_type=appointment.plan_type.value,
                    unit_count=appointment.unit_count,
                    partner_id=appointment.partner_id,
                    third_party_partner_id=appointment.third_party_partner_id,
                    loading_help_price=appointment.loading_help_price,
                )
                .execution_options(synchronize_session=False)
            )
            if selected_unit_ids is not None:
                await self._s.execute(
                    delete(AppointmentUnitModel)
                    .where(AppointmentUnitModel.appointment_id == appointment.id)
                    .execution_options(synchronize_session=False)
                )
                units = await self._s.execute(
                    select(StorageUnitModel.id).where(StorageUnitModel.id.in_(selected_unit_ids))
                )
                known = set(units.scalars())
                for position, unit_id in enumerate(selected_unit_ids, start=1):
                    if unit_id not in known:
                        raise ValueError(f"Storage unit {unit_id} does not exist")
                    self._s.add(
                        AppointmentUnitModel(
                            appointment_id=appointment.id,
                            storage_unit_id=unit_id,
                            position=position,
                        )
                    )
            await self._s.commit()
        except Exception:
            await self._s.rollback()
            raise
        return await self.get_with_relations(appointment.id)


class SqlWorkerRepository(WorkerRepository):
    def __init__(self, session: AsyncSession):
        self._s = session

    async def get_by_id(self, worker_id: int) -> Worker | None:
        m = await self._s.get(WorkerModel, worker_id)
        return _worker_to_domain(m) if m else None

    async def get_offer_candidates(
        self, delivery_date: date, exclude_ids: list[int]
    ) -> list[Worker]:
        busy = select(RouteOfferModel.worker_id).where(
            RouteOfferModel.delivery_date == delivery_date,
            RouteOfferModel.worker_id.is_not(None),
        )
        stmt = (
            select(WorkerModel)
            .where(
                WorkerModel.worker_type == WorkerType.NETWORK.value,
                WorkerModel.status == "active",
                WorkerModel.phone.is_not(None),
                WorkerModel.id.not_in(busy),
            )
            .order_by(WorkerModel.rating.desc(), WorkerModel.completed_jobs.desc(), WorkerModel.id)
        )
        if exclude_ids:
            stmt = stmt.where(WorkerModel.id.not_in(exclude_ids))
        result = await self._s.execute(stmt)
        return [_worker_to_domain(m) for m in result.scalars()]


class SqlBookingRepository(BookingRepository):
    def __init__(self, session: AsyncSession):
        self._s = session

    async def get_window(self, appointment_id: int) -> BookingWindow | None:
        result = await self._s.execute(
            select(BookingWindowModel).where(BookingWindowModel.appointment_id == appointment_id)
        )
        m = result.scalar_one_or_none()
        if m is None:
            return None
        return BookingWindow(
            id=m.id,
            appointment_id=m.appointment_id,
            availability_slot_id=m.availability_slot_id,
            starts_at=m.starts_at,
            ends_at=m.ends_at,
        )

    async def save_window(self, window: BookingWindow) -> BookingWindow:
        m = BookingWindowModel(
            appointment_id=window.appointment_id,
            availability_slot_id=window.availability_slot_id,
            starts_at=window.starts_at,
            ends_at=window.ends_at,
        )
        self._s.add(m)
        await self._s.flush()
        window.id = m.id
        return window

    async def delete_window(self, appointment_id: int) -> bool:
        result = await self._s.execute(
            delete(BookingWindowModel).where(BookingWindowModel.appointment_id == appointment_id)
        )
        return bool(result.rowcount)

    async def find_availability_slot(self, partner_id: int, weekday: int) -> AvailabilitySlot | None:
        result = await self._s.execute(
            select(AvailabilitySlotModel)
            .where(
                AvailabilitySlotModel.partner_id == partner_id,
                AvailabilitySlotModel.weekday == weekday,
            )
            .limit(1)
        )
        m = result.scalar_one_or_none()
        if m is None:
            return None
        return AvailabilitySlot(
            id=m.id,
            partner_id=m.partner_id,
            weekday=m.weekday,
            start_time=m.start_time,
            end_time=m.end_time,
        )

    async def get_worker_booking(
        self, appointment_id: int, unit_number: int
    ) -> WorkerBooking | None:
        result = await self._s.execute(
            select(WorkerBookingModel).where(
                WorkerBookingModel.appointment_id == appointment_id,
                WorkerBookingModel.unit_number == unit_number,
            )
        )
        m = result.scalar_one_or_none()
        if m is None:
            return None
        return WorkerBooking(
            id=m.id,
            worker_id=m.worker_id,
            appointment_id=m.appointment_id,
            unit_number=m.unit_number,
            starts_at=m.starts_at,
            ends_at=m.ends_at,
        )

    async def save_worker_booking(self, booking: WorkerBooking) -> WorkerBooking:
        if booking.id is not None:
            await self._s.execute(
                update(WorkerBookingModel)
                .where(WorkerBookingModel.id == booking.id)
                .values(
                    worker_id=booking.worker_id,
                    starts_at=booking.starts_at,
                    ends_at=booking.ends_at,
                )
            )
            return booking
        m = WorkerBookingModel(
            worker_id=booking.worker_id,
            appointment_id=booking.appointment_id,
            unit_number=booking.unit_number,
            starts_at=booking.starts_at,
            ends_at=booking.ends_at,
        )
        self._s.add(m)
        await self._s.flush()
        booking.id = m.id
        return booking

    async def delete_worker_bookings(self, appointment_id: int, worker_id: int) -> int:
        result = await self._s.execute(
            delete(WorkerBookingModel).where(
                WorkerBookingModel.appointment_id == appointment_id,
                WorkerBookingModel.worker_id == worker_id,
            )
        )
        return result.rowcount or 0

    async def delete_unit_bookings(self, appointment_id: int, unit_numbers: list[int]) -> int:
        if not unit_numbers:
            return 0
        result = await self._s.execute(
            delete(WorkerBookingModel).where(
                WorkerBookingModel.appointment_id == appointment_id,
                WorkerBookingModel.unit_number.in_(unit_numbers),
            )
        )
        return result.rowcount or 0


class SqlNotificationRepository(NotificationRepository):
    def __init__(self, session: AsyncSession):
        self._s = session

    async def find_unread_group(
        self, recipient_id: int, recipient_type: RecipientType, group_key: str
    ) -> Notification | None:
        result = await self._s.execute(
            select(NotificationModel)
            .where(
                NotificationModel.recipient_id == recipient_id,
                NotificationModel.recipient_type == recipient_type.value,
                NotificationModel.group_key == group_key,
                NotificationModel.status == NotificationStatus.UNREAD.value,
            )
            .order_by(NotificationModel.created_at.desc())
            .limit(1)
            .with_for_update()
        )
        m = result.scalar_one_or_none()
        return _notification_to_domain(m) if m else None

    async def save(self, notification: Notification) -> Notification:
        m = NotificationModel(
            recipient_id=notification.recipient_id,
            recipient_type=notification.recipient_type.value,
            notification_type=notification.notification_type.value,
            title=notification.title,
            message=notification.message,
            status=notification.status.value,
            group_key=notification.group_key,
            group_count=notification.group_count,
            appointment_id=notification.appointment_id,
            route_id=notification.route_id,
            created_at=notification.created_at,
        )
        self._s.add(m)
        await self._s.flush()
        notification.id = m.id
        return notification

    async def update(self, notification: Notification) -> Notification:
        await self._s.execute(
            update(NotificationModel)
            .where(NotificationModel.id == notification.id)
            .values(
                title=notification.title,
                message=notification.message,
                group_count=notification.group_count,
                created_at=notification.created_at,
            )
            .execution_options(synchronize_session=False)
        )
        return notification


class SqlRouteOfferRepository(RouteOfferRepository):
    def __init__(self, session: AsyncSession):
        self._s = session

    async def get_by_route_id(self, route_id: str) -> RouteOffer | None:
        result = await self._s.execute(
            select(RouteOfferModel)
            .where(RouteOfferModel.route_id == route_id)
            .execution_options(populate_existing=True)
        )
        m = result.scalar_one_or_none()
        return _route_to_domain(m) if m else None

    async def try_accept(self, route_id: str, worker_id: int, now: datetime) -> RouteOffer | None:
        """Single conditional UPDATE; concurrent callers serialize on the row lock."""
        async with self._s.begin_nested():
            result = await self._s.execute(
                update(RouteOfferModel)
                .where(
                    RouteOfferModel.route_id == route_id,
                    RouteOfferModel.offer_status == OfferStatus.SENT.value,
                    RouteOfferModel.offer_expires_at > now,
                    RouteOfferModel.worker_id.is_(None),
                    RouteOfferModel.candidate_worker_id == worker_id,
                )
                .values(
                    worker_id=worker_id,
                    offer_status=OfferStatus.ACCEPTED.value,
                    route_status=RouteStatus.ASSIGNED.value,
                    updated_at=now,
                )
                .returning(RouteOfferModel.id)
                .execution_options(synchronize_session=False)
            )
            claimed = result.scalar_one_or_none()
            if claimed is None:
                return None

            await self._s.execute(
                update(RouteOrderModel)
                .where(RouteOrderModel.route_id == route_id)
                .values(assigned_worker_id=worker_id, status="Assigned")
                .execution_options(synchronize_session=False)
            )
            await self._s.execute(
                update(WorkerModel)
                .where(WorkerModel.id == worker_id)
                .values(completed_jobs=WorkerModel.completed_jobs + 1)
                .execution_options(synchronize_session=False)
            )
        return await self.get_by_route_id(route_id)

    async def record_offer_sent(
        self, route_id: str, worker_id: int, sent_at: datetime, expires_at: datetime
    ) -> None:
        result = await self._s.execute(
            select(RouteOfferModel).where(RouteOfferModel.route_id == route_id).with_for_update()
        )
        m = result.scalar_one()
        m.offered_worker_ids = [*(m.offered_worker_ids or []), worker_id]
        m.candidate_worker_id = worker_id
        m.offer_sent_at = sent_at
        m.offer_expires_at = expires_at
        m.offer_status = OfferStatus.SENT.value
        m.updated_at = sent_at
        await self._s.flush()

    async def set_offer_status(self, route_id: str, status: OfferStatus) -> None:
        await self._s.execute(
            update(RouteOfferModel)
            .where(RouteOfferModel.route_id == route_id)
            .values(offer_status=status.value)
            .execution_options(synchronize_session=False)
        )

    async def flag_manual_assignment(self, route_id: str) -> None:
        await self._s.execute(
            update(RouteOfferModel)
            .where(RouteOfferModel.route_id == route_id)
            .values(route_status=RouteStatus.NEEDS_MANUAL_ASSIGNMENT.value)
            .execution_options(synchronize_session=False)
        )

    async def get_expired_offers(self, now: datetime) -> list[RouteOffer]:
        result = await self._s.execute(
            select(RouteOfferModel)
            .where(
                RouteOfferModel.offer_status == OfferStatus.SENT.value,
                RouteOfferModel.offer_expires_at <= now,
                RouteOfferModel.worker_id.is_(None),
            )
            .order_by(RouteOfferModel.offer_expires_at)
        )
        return [_route_to_domain(m) for m in result.scalars()]
