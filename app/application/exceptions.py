class AppointmentUpdateError(RuntimeError):
    """Base class for errors that abort an appointment edit before any mutation."""
    pass


class AppointmentNotFoundError(AppointmentUpdateError):
    """Raised when the appointment being edited does not exist."""
    pass


class EditValidationError(AppointmentUpdateError):
    """Raised when an edit breaks a business rule (unit count, unit selection)."""
    pass


class DispatchPlatformError(RuntimeError):
    """Raised when the dispatch platform rejects or fails a task call."""
    pass


class MessagingError(RuntimeError):
    """Raised when the SMS or email provider fails to accept a message."""
    pass


class NotificationTemplateError(RuntimeError):
    """Raised when an in-app template is unknown or its variables are incomplete."""
    pass
