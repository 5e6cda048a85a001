"""Reminder sweeps over the event collections.

Each sweep is split in two:

- a planner, ``plan_*(now, events, home_offset) -> SweepPlan``, which only
  decides what should happen given the current time and a snapshot of one
  category;
- ``apply_plan``, which publishes the planned notifications and then applies
  the planned deletions and record marks.

Sweep kinds:

- ``report``: every open report-gated event is re-sent on every run until a
  chat reply closes it. Records are never removed here.
- ``report-periodic``: same message, only on the day of this month's
  occurrence of the event.
- ``reminder``: one-shot; fires once the warning time has passed, then the
  record is deleted.
- ``periodic``: monthly recurring reminder at the warning time's day and
  time of day; at most once per day (``lastFiredOn``), never deleted.
"""

from __future__ import annotations

import asyncio
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

import structlog

from modules.events import messages
from modules.events.context import EventsContext
from modules.events.errors import InvalidTimeError
from modules.events.store import Category, StoredEvent
from modules.events.timeutil import (
    DEFAULT_HOME_OFFSET_HOURS,
    canonical_to_instant,
    format_for_message,
    home_wall,
    monthly_occurrence,
    parse_canonical,
)
from shared.schemas.notifications import Notification

logger = structlog.get_logger()


class SweepKind(str, Enum):
    REPORT = "report"
    REPORT_PERIODIC = "report-periodic"
    REMINDER = "reminder"
    PERIODIC = "periodic"

    @property
    def category(self) -> Category:
        return _SWEEP_CATEGORY[self]


_SWEEP_CATEGORY = {
    SweepKind.REPORT: Category.REPORT,
    SweepKind.REPORT_PERIODIC: Category.REPORT_PERIODIC,
    SweepKind.REMINDER: Category.REMINDER,
    SweepKind.PERIODIC: Category.PERIODIC,
}


@dataclass
class SweepPlan:
    kind: SweepKind
    notifications: list[Notification] = field(default_factory=list)
    deletions: list[StoredEvent] = field(default_factory=list)
    marks: list[tuple[StoredEvent, dict]] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)  # unparseable records


@dataclass
class SweepResult:
    kind: SweepKind
    scanned: int = 0
    sent: int = 0
    send_failures: int = 0
    deleted: int = 0
    updated: int = 0
    effect_failures: int = 0
    skipped: int = 0


def _notification(event: StoredEvent, content: str, kind: SweepKind) -> Notification:
    return Notification(
        platform_channel_id=event.record.chat_id or "",
        content=content,
        studio_name=event.studio,
        event_name=event.name,
        source=kind.value,
    )


def _report_reminder(event: StoredEvent, kind: SweepKind) -> Notification:
    record = event.record
    content = messages.reminder(
        event.name,
        format_for_message(record.time),
        record.description or "",
        report_required=True,
    )
    return _notification(event, content, kind)


def plan_report_sweep(
    now: datetime,
    events: list[StoredEvent],
    home_offset: float = DEFAULT_HOME_OFFSET_HOURS,
) -> SweepPlan:
    """Every open report-gated event is reminded, regardless of its time."""
    plan = SweepPlan(kind=SweepKind.REPORT)
    for event in events:
        plan.notifications.append(_report_reminder(event, SweepKind.REPORT))
    return plan


def plan_report_periodic_sweep(
    now: datetime,
    events: list[StoredEvent],
    home_offset: float = DEFAULT_HOME_OFFSET_HOURS,
) -> SweepPlan:
    """Report-periodic events are reminded on the day of this month's occurrence."""
    plan = SweepPlan(kind=SweepKind.REPORT_PERIODIC)
    today = home_wall(now, home_offset).date()
    for event in events:
        try:
            wall = parse_canonical(event.record.time or "")
        except InvalidTimeError:
            plan.skipped.append(event.name)
            continue
        if monthly_occurrence(wall, today).date() == today:
            plan.notifications.append(_report_reminder(event, SweepKind.REPORT_PERIODIC))
    return plan


def plan_reminder_sweep(
    now: datetime,
    events: list[StoredEvent],
    home_offset: float = DEFAULT_HOME_OFFSET_HOURS,
) -> SweepPlan:
    """One-shot reminders whose warning time has passed; fired then deleted.

    Events without a warning time are reminded at the event time.
    """
    plan = SweepPlan(kind=SweepKind.REMINDER)
    for event in events:
        record = event.record
        try:
            due_at = canonical_to_instant(record.warning_time or record.time or "", home_offset)
        except InvalidTimeError:
            plan.skipped.append(event.name)
            continue
        if now < due_at:
            continue
        content = messages.reminder(
            event.name, format_for_message(record.time), record.description or ""
        )
        plan.notifications.append(_notification(event, content, SweepKind.REMINDER))
        plan.deletions.append(event)
    return plan


def plan_periodic_sweep(
    now: datetime,
    events: list[StoredEvent],
    home_offset: float = DEFAULT_HOME_OFFSET_HOURS,
) -> SweepPlan:
    """Monthly reminders, at most once per day.

    Due when today is the occurrence day, the occurrence time has passed and
    the event has not fired today. A reminder missed during downtime is
    still sent later the same day.
    """
    plan = SweepPlan(kind=SweepKind.PERIODIC)
    wall_now = home_wall(now, home_offset).replace(second=0, microsecond=0)
    today = wall_now.date()
    for event in events:
        record = event.record
        try:
            warn = parse_canonical(record.warning_time or record.time or "")
        except InvalidTimeError:
            plan.skipped.append(event.name)
            continue
        occurrence = monthly_occurrence(warn, today).replace(second=0)
        if occurrence.date() != today or wall_now < occurrence:
            continue
        if record.last_fired_on == today.isoformat():
            continue
        content = messages.periodic_reminder(event.name, record.description or "")
        plan.notifications.append(_notification(event, content, SweepKind.PERIODIC))
        plan.marks.append((event, {"lastFiredOn": today.isoformat()}))
    return plan


PLANNERS = {
    SweepKind.REPORT: plan_report_sweep,
    SweepKind.REPORT_PERIODIC: plan_report_periodic_sweep,
    SweepKind.REMINDER: plan_reminder_sweep,
    SweepKind.PERIODIC: plan_periodic_sweep,
}


async def apply_plan(ctx: EventsContext, plan: SweepPlan) -> SweepResult:
    """Publish the planned notifications, then apply deletions and marks.

    Every effect is independent: a failure is logged and counted and the
    rest of the batch still runs.
    """
    result = SweepResult(kind=plan.kind, skipped=len(plan.skipped))

    sent = await asyncio.gather(*[ctx.notifier.send(n) for n in plan.notifications])
    result.sent = sum(sent)
    result.send_failures = len(sent) - result.sent

    async def _delete(event: StoredEvent) -> bool:
        try:
            existed = await ctx.events.delete_event(event.studio, event.category, event.name)
        except Exception as e:
            logger.error(
                "sweep_delete_failed",
                sweep=plan.kind.value,
                studio=event.studio,
                event_name=event.name,
                error=str(e),
            )
            result.effect_failures += 1
            return False
        if not existed:
            # Removed concurrently (manual delete, report reply): end state reached
            logger.info(
                "sweep_delete_already_gone",
                sweep=plan.kind.value,
                studio=event.studio,
                event_name=event.name,
            )
        return True

    async def _update(event: StoredEvent, fields: dict) -> bool:
        try:
            existed = await ctx.events.update_event(
                event.studio, event.category, event.name, fields
            )
        except Exception as e:
            logger.error(
                "sweep_update_failed",
                sweep=plan.kind.value,
                studio=event.studio,
                event_name=event.name,
                error=str(e),
            )
            result.effect_failures += 1
            return False
        if not existed:
            logger.info(
                "sweep_update_already_gone",
                sweep=plan.kind.value,
                studio=event.studio,
                event_name=event.name,
            )
        return existed

    deleted = await asyncio.gather(*[_delete(e) for e in plan.deletions])
    updated = await asyncio.gather(*[_update(e, f) for e, f in plan.marks])
    result.deleted = sum(deleted)
    result.updated = sum(updated)

    if plan.skipped:
        logger.warning("sweep_records_skipped", sweep=plan.kind.value, events=plan.skipped)
    return result


async def run_sweep(
    ctx: EventsContext, kind: SweepKind, now: datetime | None = None
) -> SweepResult:
    """Run one sweep: snapshot its category, plan, apply."""
    run_id = str(uuid.uuid4())
    t0 = time.monotonic()
    now = now or datetime.now(timezone.utc)

    events = await ctx.events.snapshot(kind.category)
    plan = PLANNERS[kind](now, events, ctx.home_offset)
    result = await apply_plan(ctx, plan)
    result.scanned = len(events)

    logger.info(
        "sweep_finished",
        sweep=kind.value,
        run_id=run_id,
        duration_ms=int((time.monotonic() - t0) * 1000),
        scanned=result.scanned,
        sent=result.sent,
        send_failures=result.send_failures,
        deleted=result.deleted,
        updated=result.updated,
        effect_failures=result.effect_failures,
        skipped=result.skipped,
    )
    return result
