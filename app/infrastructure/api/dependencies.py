"""FastAPI dependency injection — wires adapters into use cases."""

from __future__ import annotations

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.adapters.dispatch.onfleet_adapter import OnfleetAdapter
from app.adapters.geocoder.google_maps_adapter import GoogleMapsAdapter
from app.adapters.messaging.sms_email_gateway import SmsEmailGateway
from app.adapters.persistence.database import get_session
from app.adapters.persistence.repositories import (
    SqlAppointmentRepository,
    SqlBookingRepository,
    SqlNotificationRepository,
    SqlRouteOfferRepository,
    SqlTaskRepository,
    SqlWorkerRepository,
)
from app.adapters.signing.link_signer import TimedLinkSigner
from app.application.use_cases.booking_window import BookingWindowManager
from app.application.use_cases.effects import MessageEffectExecutor
from app.application.use_cases.notifications import (
    InAppNotificationService,
    NotificationDispatcher,
)
from app.application.use_cases.reconfirmation import ReconfirmationFlow
from app.application.use_cases.route_offers import RouteOfferService
from app.application.use_cases.task_sync import DispatchTaskSynchronizer
from app.application.use_cases.update_appointment import UpdateAppointmentUseCase
from app.config import settings

# Singleton adapters (stateless or with internal caching)
_dispatch_adapter = OnfleetAdapter(api_key=settings.dispatch_api_key, base_url=settings.dispatch_api_url)
_geocoder_adapter = GoogleMapsAdapter(api_key=settings.google_maps_api_key)
_messaging_adapter = SmsEmailGateway(
    twilio_account_sid=settings.twilio_account_sid,
    twilio_auth_token=settings.twilio_auth_token,
    twilio_from_number=settings.twilio_from_number,
    sendgrid_api_key=settings.sendgrid_api_key,
    email_from=settings.email_from,
)
_link_signer = TimedLinkSigner(secret=settings.token_secret, base_url=settings.app_base_url)
_effects = MessageEffectExecutor(_messaging_adapter)


def get_update_appointment_uc(
    session: AsyncSession = Depends(get_session),
) -> UpdateAppointmentUseCase:
    task_repo = SqlTaskRepository(session)
    in_app = InAppNotificationService(SqlNotificationRepository(session))
    sync = DispatchTaskSynchronizer(
        platform=_dispatch_adapter,
        geocoder=_geocoder_adapter,
        task_repo=task_repo,
        default_pool_id=settings.default_pool_team_id,
        warehouse_address=settings.warehouse_address,
        stagger_minutes=settings.unit_stagger_minutes,
    )
    return UpdateAppointmentUseCase(
        appointment_repo=SqlAppointmentRepository(session),
        task_repo=task_repo,
        sync=sync,
        reconfirmation=ReconfirmationFlow(
            task_repo=task_repo,
            signer=_link_signer,
            effects=_effects,
            sync=sync,
        ),
        bookings=BookingWindowManager(SqlBookingRepository(session)),
        dispatcher=NotificationDispatcher(_effects, in_app),
        in_app=in_app,
        effects=_effects,
        stagger_minutes=settings.unit_stagger_minutes,
        default_loading_help_price=settings.default_loading_help_price,
    )


def get_route_offer_service(
    session: AsyncSession = Depends(get_session),
) -> RouteOfferService:
    return RouteOfferService(
        route_repo=SqlRouteOfferRepository(session),
        worker_repo=SqlWorkerRepository(session),
        signer=_link_signer,
        effects=_effects,
        in_app=InAppNotificationService(SqlNotificationRepository(session)),
        ops_admin_id=settings.ops_admin_id,
        timeout_minutes=settings.offer_timeout_minutes,
    )
