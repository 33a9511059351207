"""Dispatch task and worker entities."""

from dataclasses import dataclass
from datetime import datetime

from app.domain.value_objects.enums import TaskNotificationStatus, TaskStep, WorkerType


@dataclass
class Worker:
    id: int
    first_name: str
    phone: str | None
    worker_type: WorkerType
    external_id: str | None = None
    last_name: str = ""
    rating: float = 0.0
    completed_jobs: int = 0

    def is_directly_managed(self) -> bool:
        return self.worker_type == WorkerType.NETWORK


@dataclass
class DispatchTask:
    """One (unit, step) job, mirrored on the dispatch platform.

    Every task belongs to a concrete unit slot; a task without a unit number
    is rejected when the object is built.
    """

    id: int | None
    appointment_id: int
    step: TaskStep
    unit_number: int
    external_id: str | None = None
    short_id: str | None = None
    worker_id: int | None = None
    worker: Worker | None = None
    notification_status: TaskNotificationStatus = TaskNotificationStatus.NONE
    last_notified_worker_id: int | None = None
    notification_sent_at: datetime | None = None
    worker_accepted_at: datetime | None = None
    worker_declined_at: datetime | None = None

    def __post_init__(self) -> None:
        if self.unit_number is None or self.unit_number < 1:
            raise ValueError(
                f"Dispatch task for appointment {self.appointment_id} needs a unit number >= 1"
            )
        self.step = TaskStep(self.step)

    @property
    def worker_type(self) -> WorkerType | None:
        return self.worker.worker_type if self.worker else None

    def unlink_worker(self) -> None:
        """Drop the worker link together with all notification bookkeeping."""
        self.worker_id = None
        self.worker = None
        self.notification_status = TaskNotificationStatus.NONE
        self.last_notified_worker_id = None
        self.notification_sent_at = None
        self.worker_accepted_at = None
        self.worker_declined_at = None

    def mark_pending_reconfirmation(self, worker_id: int, sent_at: datetime) -> None:
        self.notification_status = TaskNotificationStatus.PENDING_RECONFIRMATION
        self.last_notified_worker_id = worker_id
        self.notification_sent_at = sent_at
        self.worker_accepted_at = None
        self.worker_declined_at = None
