"""Reminder and alert models for the notification boundary."""

from dataclasses import dataclass, field
from datetime import date
from typing import Any

from loan_core.models.credit.enums import AlertCategory, ReminderStatus, ReminderType


@dataclass
class LoanReminder:
    """Scheduled reminder for a loan."""

    reminder_id: str
    loan_id: str
    organization_id: str
    reminder_type: ReminderType
    title: str
    message: str
    reminder_date: date
    email_enabled: bool = True
    calendar_enabled: bool = False
    status: ReminderStatus = ReminderStatus.PENDING
    is_active: bool = True


@dataclass
class Alert:
    """Categorized entry of the daily alert digest."""

    alert_id: str
    category: AlertCategory
    title: str
    message: str
    action_required: str | None = None
    data: Any = field(default=None)
