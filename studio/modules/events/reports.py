"""Closing report-gated events from chat replies.

A chat member closes an event by replying to one of its notifications with
a message containing a report keyword. The event name is read back from the
replied-to notification. Matching is scoped to the replying chat, so a
reply can never close another studio's event with the same name.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

import structlog

from modules.events import messages
from modules.events.context import EventsContext
from modules.events.store import Category
from shared.config import parse_list

logger = structlog.get_logger()


class ReportOutcome(str, Enum):
    CLOSED = "closed"
    NOT_FOUND = "not_found"
    UNNAMED = "unnamed"
    ERROR = "error"
    IGNORED = "ignored"


@dataclass
class ReportResult:
    outcome: ReportOutcome
    event_name: str | None = None
    studio: str | None = None
    removed_from: tuple[Category, ...] = ()

    @property
    def reply_text(self) -> str | None:
        """Chat answer for this outcome; ``None`` when nothing should be said."""
        if self.outcome == ReportOutcome.CLOSED:
            return messages.report_closed(self.event_name or "")
        if self.outcome == ReportOutcome.NOT_FOUND:
            return messages.report_not_closed(self.event_name or "")
        if self.outcome == ReportOutcome.UNNAMED:
            return messages.REPORT_UNNAMED
        if self.outcome == ReportOutcome.ERROR:
            return messages.REPORT_ERROR
        return None


def is_report_reply(text: str | None, keywords: list[str]) -> bool:
    """Whether a reply text mentions any report keyword (case-insensitive)."""
    if not text:
        return False
    lowered = text.lower()
    return any(keyword.lower() in lowered for keyword in keywords if keyword)


async def _close_in(
    ctx: EventsContext,
    gated: Category,
    also: tuple[Category, ...],
    event_name: str,
    chat_id: str,
) -> ReportResult | None:
    for studio in await ctx.events.list_studios_with_category(gated):
        record = await ctx.events.get_event(studio, gated, event_name)
        if record is None:
            continue
        if record.chat_id != chat_id:
            logger.info(
                "report_chat_mismatch",
                studio=studio,
                event_name=event_name,
                chat_id=chat_id,
            )
            continue

        removed = [gated]
        await ctx.events.delete_event(studio, gated, event_name)
        for category in also:
            if await ctx.events.delete_event(studio, category, event_name):
                removed.append(category)
        return ReportResult(
            outcome=ReportOutcome.CLOSED,
            event_name=event_name,
            studio=studio,
            removed_from=tuple(removed),
        )
    return None


async def close_report(ctx: EventsContext, event_name: str, chat_id: object) -> ReportResult:
    """Remove a report-gated event acknowledged from ``chat_id``.

    One-off report events are looked up first; recurring report events only
    when no one-off event matched.
    """
    chat_id = str(chat_id)
    result = await _close_in(
        ctx, Category.REPORT, (Category.PLAIN, Category.REMINDER), event_name, chat_id
    )
    if result is None:
        result = await _close_in(
            ctx, Category.REPORT_PERIODIC, (Category.PLAIN,), event_name, chat_id
        )
    if result is None:
        logger.info("report_event_not_found", event_name=event_name, chat_id=chat_id)
        return ReportResult(outcome=ReportOutcome.NOT_FOUND, event_name=event_name)

    logger.info(
        "report_closed",
        studio=result.studio,
        event_name=event_name,
        chat_id=chat_id,
        removed_from=[c.value for c in result.removed_from],
    )
    return result


async def handle_reply(
    ctx: EventsContext,
    chat_id: object,
    text: str | None,
    reply_to_text: str | None,
) -> ReportResult:
    """Entry point for an inbound chat message that replies to another one."""
    keywords = parse_list(ctx.settings.report_keywords)
    if reply_to_text is None or not is_report_reply(text, keywords):
        return ReportResult(outcome=ReportOutcome.IGNORED)

    event_name = messages.extract_event_name(reply_to_text)
    if not event_name:
        logger.info("report_unnamed_event", chat_id=str(chat_id))
        return ReportResult(outcome=ReportOutcome.UNNAMED)

    try:
        return await close_report(ctx, event_name, chat_id)
    except Exception:
        logger.exception("report_close_failed", event_name=event_name, chat_id=str(chat_id))
        return ReportResult(outcome=ReportOutcome.ERROR, event_name=event_name)
