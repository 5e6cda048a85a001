"""Event creation, deletion and listing.

Creation writes one record per (studio, category) and then announces the
event in each studio chat. Writes and announcements are best effort: a
failure is logged and the remaining writes and sends still happen.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone

import structlog

from modules.events import messages
from modules.events.context import EventsContext
from modules.events.errors import InvalidTimeError, StoreUnavailableError, UnknownStudioError
from modules.events.schemas import CreateEventRequest, EventListing
from modules.events.store import Category, EventRecord, StoredEvent
from modules.events.timeutil import (
    canonical_to_display,
    displayed_datetime,
    format_for_message,
    local_to_canonical,
    parse_offset,
)
from shared.schemas.notifications import Notification

logger = structlog.get_logger()


def select_categories(report: bool, period: bool, add_reminder: bool) -> tuple[Category, ...]:
    """Collections an event is written to, by its three flags.

    ``period`` only has an effect together with ``add_reminder``.
    """
    if report and period and add_reminder:
        return (Category.REPORT_PERIODIC, Category.PLAIN)
    if report and add_reminder:
        return (Category.REPORT, Category.PLAIN, Category.REMINDER)
    if report:
        return (Category.REPORT, Category.PLAIN)
    if period and add_reminder:
        return (Category.PERIODIC, Category.PLAIN)
    if add_reminder:
        return (Category.REMINDER, Category.PLAIN)
    return (Category.PLAIN,)


def announcement_suppressed(period: bool, add_reminder: bool) -> bool:
    """Recurring reminders are announced by the periodic sweep instead."""
    return period and add_reminder


@dataclass
class CreateEventResult:
    categories: tuple[Category, ...]
    written: int = 0
    write_failures: int = 0
    notified: int = 0
    notify_failures: int = 0
    announcement_suppressed: bool = False
    failed_writes: list[str] = field(default_factory=list)


async def _resolve_offsets(ctx: EventsContext, studio_names: list[str]) -> list[float]:
    studios = await asyncio.gather(*[ctx.studios.get(name) for name in studio_names])
    offsets = []
    for name, studio in zip(studio_names, studios):
        if studio is None:
            raise UnknownStudioError(name)
        if studio.time_zone is None or not str(studio.time_zone).strip():
            raise UnknownStudioError(name, "has no UTC offset configured")
        offsets.append(parse_offset(studio.time_zone))
    return offsets


async def create_event(ctx: EventsContext, request: CreateEventRequest) -> CreateEventResult:
    """Create an event in every requested studio and announce it.

    Raises ``UnknownStudioError``/``InvalidTimeError`` before anything is
    written; after that nothing raises.
    """
    offsets = await _resolve_offsets(ctx, request.studio_names)

    categories = select_categories(request.report, request.period, request.add_reminder)
    recurring = Category.PERIODIC in categories or Category.REPORT_PERIODIC in categories

    records: list[EventRecord] = []
    for studio_name, chat_id, offset in zip(request.studio_names, request.chat_ids, offsets):
        records.append(
            EventRecord(
                studio_name=studio_name,
                name=request.name,
                time=local_to_canonical(request.time, offset),
                warning_time=(
                    local_to_canonical(request.warning_time, offset)
                    if request.warning_time
                    else None
                ),
                description=request.description,
                chat_id=chat_id,
                period="ok" if recurring else None,
            )
        )

    result = CreateEventResult(categories=categories)

    async def _write(studio: str, category: Category, record: EventRecord) -> bool:
        try:
            await ctx.events.put_event(studio, category, request.name, record)
            return True
        except Exception as e:
            logger.error(
                "event_write_failed",
                studio=studio,
                category=category.value,
                event_name=request.name,
                error=str(e),
            )
            result.failed_writes.append(f"{studio}/{category.value}")
            return False

    outcomes = await asyncio.gather(
        *[
            _write(studio, category, record)
            for studio, record in zip(request.studio_names, records)
            for category in categories
        ]
    )
    result.written = sum(outcomes)
    result.write_failures = len(outcomes) - result.written

    if announcement_suppressed(request.period, request.add_reminder):
        result.announcement_suppressed = True
        logger.info("event_announcement_suppressed", event_name=request.name)
    else:
        notifications = [
            Notification(
                platform_channel_id=record.chat_id,
                content=messages.new_event(
                    request.name,
                    format_for_message(record.time),
                    request.description,
                    report_required=request.report,
                ),
                studio_name=studio,
                event_name=request.name,
                source="create_event",
            )
            for studio, record in zip(request.studio_names, records)
        ]
        sent = await asyncio.gather(*[ctx.notifier.send(n) for n in notifications])
        result.notified = sum(sent)
        result.notify_failures = len(sent) - result.notified

    logger.info(
        "event_created",
        event_name=request.name,
        studios=request.studio_names,
        categories=[c.value for c in categories],
        written=result.written,
        write_failures=result.write_failures,
        notified=result.notified,
    )
    return result


async def delete_event(ctx: EventsContext, studio: str, name: str) -> list[Category]:
    """Delete an event from every category it is stored in.

    Returns the categories it was found in; an empty list means not found.
    Raises ``StoreUnavailableError`` when nothing was found and some
    category could not be checked.
    """
    failed: list[Category] = []

    async def _delete(category: Category) -> bool:
        try:
            return await ctx.events.delete_event(studio, category, name)
        except Exception as e:
            logger.error(
                "event_delete_failed",
                studio=studio,
                category=category.value,
                event_name=name,
                error=str(e),
            )
            failed.append(category)
            return False

    categories = list(Category)
    deleted = await asyncio.gather(*[_delete(c) for c in categories])
    found = [c for c, ok in zip(categories, deleted) if ok]
    if failed and not found:
        raise StoreUnavailableError(
            f"Could not delete {name!r}: store unavailable for "
            + ", ".join(c.value for c in failed)
        )
    logger.info(
        "event_deleted",
        studio=studio,
        event_name=name,
        categories=[c.value for c in found],
    )
    return found


def _to_listing(
    event: StoredEvent,
    offset: float,
    home_offset: float,
    now: datetime,
    include_studio: bool,
) -> tuple[datetime | None, EventListing]:
    record = event.record
    shown: str | None = record.time
    sort_key: datetime | None = None
    if record.time:
        try:
            sort_key = displayed_datetime(record.time, offset, record.recurring, home_offset, now)
            shown = canonical_to_display(record.time, offset, record.recurring, home_offset, now)
        except InvalidTimeError:
            logger.warning("event_time_unparseable", studio=event.studio, event_name=event.name)
    listing = EventListing(
        id=event.name,
        name=record.name or event.name,
        description=record.description,
        time=shown,
        studio_name=event.studio if include_studio else None,
        recurring=record.recurring,
    )
    return sort_key, listing


def _sorted(rows: list[tuple[datetime | None, EventListing]]) -> list[EventListing]:
    # Undated events go last
    rows.sort(key=lambda row: (row[0] is None, row[0] or datetime.min))
    return [listing for _, listing in rows]


async def list_studio_events(
    ctx: EventsContext, studio_name: str, now: datetime | None = None
) -> list[EventListing]:
    """Events of one studio, display-formatted and sorted by displayed time."""
    studio = await ctx.studios.get(studio_name)
    if studio is None:
        raise UnknownStudioError(studio_name)

    offset = parse_offset(studio.time_zone, default=0.0)
    now = now or datetime.now(timezone.utc)
    events = await ctx.events.list_events(studio_name, Category.PLAIN)
    rows = [_to_listing(e, offset, ctx.home_offset, now, include_studio=False) for e in events]
    return _sorted(rows)


async def list_all_events(ctx: EventsContext, now: datetime | None = None) -> list[EventListing]:
    """Events of every studio, same formatting and order as the per-studio listing."""
    now = now or datetime.now(timezone.utc)
    studios = {s.name: s for s in await ctx.studios.list_studios()}
    events = await ctx.events.snapshot(Category.PLAIN)
    rows = []
    for event in events:
        studio = studios.get(event.studio)
        offset = parse_offset(studio.time_zone if studio else None, default=0.0)
        rows.append(_to_listing(event, offset, ctx.home_offset, now, include_studio=True))
    return _sorted(rows)
