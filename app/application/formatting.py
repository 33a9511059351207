"""Human-readable date/time strings for outbound messages."""

from datetime import datetime


def format_date(moment: datetime) -> str:
    """'Mon, Jun 2'"""
    return f"{moment:%a, %b} {moment.day}"


def format_time(moment: datetime) -> str:
    """'9:30 AM'"""
    hour = moment.hour % 12 or 12
    return f"{hour}:{moment:%M %p}"
