"""Reminder planning and notification events.

The core decides *what* is due and *how urgent* it is; delivery (email,
calendar invites) belongs to whatever consumes the emitted events.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime, timedelta
from typing import Iterable, Sequence

from loan_core.config import UrgencyConfig
from loan_core.engine.urgency import classify_urgency, days_until
from loan_core.models.base import Event
from loan_core.models.credit import (
    Loan,
    LoanReminder,
    LoanStatus,
    ReminderStatus,
    ReminderType,
    UrgencyLevel,
)

EVENT_SOURCE = "loan-core"
DUE_NOTICE_EVENT = "loan.due_notice"
REMINDER_DUE_EVENT = "loan.reminder_due"


def normalize_intervals(intervals: Iterable[object]) -> list[int]:
    """Keep positive integer intervals, de-duplicated, largest first."""
    valid = {
        interval
        for interval in intervals
        if isinstance(interval, int) and not isinstance(interval, bool) and interval > 0
    }
    return sorted(valid, reverse=True)


def plan_auto_reminders(
    loan: Loan,
    intervals: Iterable[object],
    today: date,
    existing_dates: Iterable[date] = (),
    *,
    email_enabled: bool = True,
    calendar_enabled: bool = False,
) -> list[LoanReminder]:
    """Plan one due-date reminder per interval (days before the due date).

    Dates on or before ``today`` and dates already holding a reminder are
    skipped.
    """
    taken = set(existing_dates)
    planned = []
    for interval in normalize_intervals(intervals):
        reminder_date = loan.due_date - timedelta(days=interval)
        if reminder_date <= today or reminder_date in taken:
            continue
        taken.add(reminder_date)
        planned.append(
            LoanReminder(
                reminder_id=uuid.uuid4().hex,
                loan_id=loan.loan_id,
                organization_id=loan.organization_id,
                reminder_type=ReminderType.DUE_DATE,
                title=f"Payment Due in {interval} Days",
                message=f"Automated reminder: Payment due in {interval} days",
                reminder_date=reminder_date,
                email_enabled=email_enabled,
                calendar_enabled=calendar_enabled,
            )
        )
    return planned


def due_reminders(reminders: Iterable[LoanReminder], today: date) -> list[LoanReminder]:
    """Pending, active reminders whose date has arrived."""
    return [
        r
        for r in reminders
        if r.status == ReminderStatus.PENDING and r.is_active and r.reminder_date <= today
    ]


def build_due_notices(
    loans: Iterable[Loan],
    today: date,
    *,
    urgency: UrgencyConfig | None = None,
    include_normal: bool = False,
    now: datetime | None = None,
) -> list[Event]:
    """One ``loan.due_notice`` event per active loan that needs attention.

    Events are ordered by due date, earliest first.
    """
    urgency = urgency or UrgencyConfig()
    now = now or datetime.now()
    notices = []
    for loan in sorted(loans, key=lambda l: l.due_date):
        if loan.status != LoanStatus.ACTIVE:
            continue
        level = classify_urgency(
            loan.due_date,
            today,
            critical_days=urgency.critical_days,
            warning_days=urgency.warning_days,
        )
        if level == UrgencyLevel.NORMAL and not include_normal:
            continue
        notices.append(
            Event(
                event_id=uuid.uuid4().hex,
                event_type=DUE_NOTICE_EVENT,
                event_time=now,
                source=EVENT_SOURCE,
                subject=loan.loan_id,
                data={
                    "organization_id": loan.organization_id,
                    "reference_number": loan.reference_number,
                    "amount": loan.amount,
                    "due_date": loan.due_date,
                    "days_until_due": days_until(loan.due_date, today),
                    "urgency": level,
                },
            )
        )
    return notices


def reminder_events(
    reminders: Sequence[LoanReminder],
    loans: dict[str, Loan],
    *,
    now: datetime | None = None,
) -> list[Event]:
    """Wrap reminders in ``loan.reminder_due`` events for notification senders.

    Reminders whose loan is missing from ``loans`` are skipped.
    """
    now = now or datetime.now()
    events = []
    for reminder in reminders:
        loan = loans.get(reminder.loan_id)
        if loan is None:
            continue
        events.append(
            Event(
                event_id=uuid.uuid4().hex,
                event_type=REMINDER_DUE_EVENT,
                event_time=now,
                source=EVENT_SOURCE,
                subject=loan.loan_id,
                data={
                    "reminder_id": reminder.reminder_id,
                    "organization_id": reminder.organization_id,
                    "title": reminder.title,
                    "message": reminder.message,
                    "reference_number": loan.reference_number,
                    "amount": loan.amount,
                    "due_date": loan.due_date,
                },
                metadata={
                    "email_enabled": reminder.email_enabled,
                    "calendar_enabled": reminder.calendar_enabled,
                },
            )
        )
    return events
