"""Due-date urgency classification.

Timezone-naive and deterministic: the same ``(due_date, today)`` pair always
yields the same level. Boundary days belong to the stricter bucket.

==============  ==========
days until due  level
==============  ==========
< 0 (overdue)   critical
0 .. 7          critical
8 .. 15         warning
> 15            normal
==============  ==========
"""

from __future__ import annotations

import math
from datetime import date, datetime

from loan_core.config import UrgencyConfig
from loan_core.exceptions import ValidationError
from loan_core.models.credit import UrgencyLevel

SECONDS_PER_DAY = 86400


def days_until(due_date: date | datetime, today: date | datetime) -> int:
    """Whole days from ``today`` to ``due_date``, rounded up.

    Plain dates subtract exactly. Datetimes are compared to the second and
    rounded up, so a loan due later today counts as 1 day away.
    """
    if due_date is None or today is None:
        raise ValidationError("due_date and today are required")
    if not isinstance(due_date, datetime) and not isinstance(today, datetime):
        return (due_date - today).days
    delta = _as_datetime(due_date) - _as_datetime(today)
    return math.ceil(delta.total_seconds() / SECONDS_PER_DAY)


def classify_urgency(
    due_date: date | datetime,
    today: date | datetime,
    *,
    critical_days: int = 7,
    warning_days: int = 15,
) -> UrgencyLevel:
    """Classify a due date as critical, warning or normal."""
    days = days_until(due_date, today)
    if days <= critical_days:
        return UrgencyLevel.CRITICAL
    if days <= warning_days:
        return UrgencyLevel.WARNING
    return UrgencyLevel.NORMAL


class UrgencyClassifier:
    """``classify_urgency`` bound to configured thresholds."""

    def __init__(self, config: UrgencyConfig | None = None) -> None:
        self.config = config or UrgencyConfig()

    def classify(self, due_date: date | datetime, today: date | datetime) -> UrgencyLevel:
        return classify_urgency(
            due_date,
            today,
            critical_days=self.config.critical_days,
            warning_days=self.config.warning_days,
        )


def _as_datetime(value: date | datetime) -> datetime:
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            raise ValidationError("urgency classification expects naive datetimes")
        return value
    return datetime(value.year, value.month, value.day)
