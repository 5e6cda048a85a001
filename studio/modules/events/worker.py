"""Sweep background worker. Each sweep runs on its own cron schedule."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone

import structlog
from croniter import croniter

from modules.events.context import EventsContext
from modules.events.sweeps import SweepKind, run_sweep

logger = structlog.get_logger()


def next_fire(cron: str, after: datetime) -> datetime:
    """Next cron slot strictly after ``after`` (UTC)."""
    return croniter(cron, after).get_next(datetime)


def missed_slots(cron: str, scheduled: datetime, finished: datetime) -> int:
    """Count slots after ``scheduled`` that passed while a run was in progress."""
    count = 0
    itr = croniter(cron, scheduled)
    while itr.get_next(datetime) <= finished:
        count += 1
    return count


async def sweep_loop(ctx: EventsContext, kind: SweepKind, cron: str) -> None:
    """Run one sweep kind forever on its schedule.

    Runs never overlap: the next slot is computed after the current run
    finishes, and slots that passed meanwhile are skipped.
    """
    if not croniter.is_valid(cron):
        logger.error("sweep_schedule_invalid", sweep=kind.value, cron=cron)
        return

    logger.info("sweep_loop_started", sweep=kind.value, cron=cron)
    scheduled = next_fire(cron, datetime.now(timezone.utc))
    while True:
        delay = (scheduled - datetime.now(timezone.utc)).total_seconds()
        if delay > 0:
            await asyncio.sleep(delay)

        try:
            await run_sweep(ctx, kind, now=datetime.now(timezone.utc))
        except Exception as e:
            logger.error("sweep_run_error", sweep=kind.value, error=str(e), exc_info=True)

        finished = datetime.now(timezone.utc)
        skipped = missed_slots(cron, scheduled, finished)
        if skipped:
            logger.warning("sweep_slots_skipped", sweep=kind.value, skipped=skipped)
        scheduled = next_fire(cron, finished)


async def scheduler_loop(ctx: EventsContext) -> None:
    """Run every configured sweep concurrently."""
    schedules = ctx.settings.sweep_schedules()
    logger.info("sweep_worker_started", schedules=schedules)
    await asyncio.gather(
        *[sweep_loop(ctx, SweepKind(kind), cron) for kind, cron in schedules.items()]
    )
