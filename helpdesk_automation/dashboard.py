"""
Dashboard aggregates for the Helpdesk Automation System.

Counts tickets created within a trailing time window by status,
category and priority, and derives resolution, automation and response
figures.
"""

import logging
import math
from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Iterable

from .models import (
    DailyCount,
    DashboardSummary,
    PerformanceSummary,
    Priority,
    Ticket,
    TicketStatus,
)


logger = logging.getLogger(__name__)


SECONDS_PER_HOUR = 3600


def tickets_in_window(
    tickets: Iterable[Ticket],
    now: datetime,
    timeframe_days: int = 30,
) -> list[Ticket]:
    """Tickets created no earlier than ``timeframe_days`` before ``now``."""
    start = now - timedelta(days=timeframe_days)
    return [t for t in tickets if t.created_at >= start]


def round_half_up(value: float) -> int:
    """Round a non-negative value to the nearest integer, halves up."""
    return math.floor(value + 0.5)


def _count_by(values: Iterable[str]) -> dict[str, int]:
    return dict(Counter(values))


def _average_hours(seconds: list[float]) -> int:
    if not seconds:
        return 0
    return round_half_up(sum(seconds) / len(seconds) / SECONDS_PER_HOUR)


def build_dashboard(
    tickets: Iterable[Ticket],
    now: datetime,
    timeframe_days: int = 30,
) -> DashboardSummary:
    """
    Aggregate ticket counts for the dashboard.

    Args:
        tickets: All known tickets.
        now: End of the window (aware datetime).
        timeframe_days: Window length in days.

    Returns:
        DashboardSummary over tickets created inside the window.
    """
    window = tickets_in_window(tickets, now, timeframe_days)
    total = len(window)

    resolution_seconds = [
        (t.updated_at - t.created_at).total_seconds()
        for t in window
        if t.status == TicketStatus.RESOLVED
    ]
    automated = sum(1 for t in window if t.automated)

    per_day = Counter(
        t.created_at.astimezone(timezone.utc).date().isoformat() for t in window
    )

    summary = DashboardSummary(
        total_tickets=total,
        tickets_by_status=_count_by(t.status.value for t in window),
        tickets_by_category=_count_by(t.category.value for t in window),
        tickets_by_priority=_count_by(t.priority.value for t in window),
        avg_resolution_time_hours=_average_hours(resolution_seconds),
        automation_rate=round_half_up(automated / total * 100) if total else 0,
        daily_trend=[DailyCount(date=day, count=per_day[day]) for day in sorted(per_day)],
    )

    logger.debug(f"Dashboard built over {total} tickets ({timeframe_days} days)")
    return summary


def build_performance(
    tickets: Iterable[Ticket],
    now: datetime,
    timeframe_days: int = 30,
) -> PerformanceSummary:
    """
    Response and escalation figures for the window.

    First response time is measured to the first comment on a ticket;
    tickets without comments are ignored. Critical tickets count as
    escalated.
    """
    window = tickets_in_window(tickets, now, timeframe_days)

    first_response_seconds = [
        (t.comments[0].timestamp - t.created_at).total_seconds()
        for t in window
        if t.comments
    ]

    return PerformanceSummary(
        avg_first_response_time_hours=_average_hours(first_response_seconds),
        tickets_resolved=sum(1 for t in window if t.status == TicketStatus.RESOLVED),
        tickets_escalated=sum(1 for t in window if t.priority == Priority.CRITICAL),
    )
