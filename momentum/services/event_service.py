"""
momentum.services.event_service — Double-XP Windows & Faction Buffs
====================================================================

Admins schedule time-boxed global modifiers.  The multiplier reads them
live on every computation; this module only owns their lifecycle::

    scheduled ──(start passes)──▶ active ──(end passes)──▶ completed
        └────────────── cancel ─────────────┘──▶ canceled

:func:`process_event_updates` runs from the 5-minute bookkeeping loop
and returns the transitions it made so the bot can announce them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING
from zoneinfo import ZoneInfo

from sqlalchemy import select
from sqlalchemy.orm import Session

from momentum.database.engine import get_session
from momentum.database.models import GlobalEventKind, GlobalEventStatus, GlobalXPEvent
from momentum.services.multiplier_service import as_utc, get_active_double_xp, utcnow

if TYPE_CHECKING:
    from sqlalchemy import Engine

    from momentum.engine.cache import ConfigCache

logger = logging.getLogger(__name__)

EVENT_TZ = ZoneInfo("America/New_York")
WEEKEND_START_HOUR = 10  # Friday 10:00 ET
WEEKEND_END_HOUR = 21    # Sunday 21:00 ET
FRIDAY = 4               # datetime.weekday()


@dataclass(frozen=True, slots=True)
class EventTransition:
    """A status change made by the bookkeeping sweep."""

    event_id: int
    kind: str
    transition: str  # "start" | "end"
    multiplier_factor: float
    end_time: datetime
    faction: str | None = None


def _detached(session: Session, event: GlobalXPEvent) -> GlobalXPEvent:
    session.refresh(event)
    session.expunge(event)
    return event


def create_event(
    engine: Engine,
    start_time: datetime,
    end_time: datetime,
    multiplier_factor: float | None = None,
    *,
    kind: GlobalEventKind = GlobalEventKind.DOUBLE_XP,
    faction: str | None = None,
    created_by: int | None = None,
    cache: ConfigCache | None = None,
) -> GlobalXPEvent:
    """Schedule a global modifier.

    Raises
    ------
    ValueError
        If the window is empty or a faction buff names no faction.
    """
    if end_time <= start_time:
        raise ValueError("Event end_time must be after start_time")
    if kind == GlobalEventKind.FACTION_BUFF and not faction:
        raise ValueError("Faction buffs need a faction")
    if multiplier_factor is None:
        multiplier_factor = (
            cache.get_float("events.default_double_xp_factor", 2.0) if cache else 2.0
        )

    with get_session(engine) as session:
        event = GlobalXPEvent(
            kind=GlobalEventKind(kind).value,
            faction=faction,
            start_time=start_time,
            end_time=end_time,
            multiplier_factor=multiplier_factor,
            status=GlobalEventStatus.SCHEDULED.value,
            created_by=created_by,
        )
        session.add(event)
        session.flush()
        event = _detached(session, event)

    logger.info(
        "Global event %d scheduled: %s x%.2f %s → %s",
        event.id, event.kind, multiplier_factor, start_time, end_time,
    )
    return event


def next_weekend_window(now: datetime | None = None) -> tuple[datetime, datetime]:
    """Next Friday 10:00 → Sunday 21:00 (US Eastern), as UTC instants.

    A window that started less than five minutes ago still counts as next.
    """
    now_et = (now or utcnow()).astimezone(EVENT_TZ)
    start = now_et.replace(hour=WEEKEND_START_HOUR, minute=0, second=0, microsecond=0)
    start += timedelta(days=(FRIDAY - now_et.weekday()) % 7)
    if now_et > start + timedelta(minutes=5):
        start += timedelta(days=7)
    end = (start + timedelta(days=2)).replace(hour=WEEKEND_END_HOUR)
    return start.astimezone(UTC), end.astimezone(UTC)


def schedule_weekend_event(
    engine: Engine,
    created_by: int | None = None,
    multiplier_factor: float = 2.0,
    *,
    now: datetime | None = None,
) -> GlobalXPEvent:
    start, end = next_weekend_window(now)
    return create_event(engine, start, end, multiplier_factor, created_by=created_by)


def cancel_event(engine: Engine, event_id: int | None = None) -> GlobalXPEvent | None:
    """Cancel *event_id*, or the latest scheduled/active event.

    Returns None when there is nothing cancellable.
    """
    live = (GlobalEventStatus.SCHEDULED.value, GlobalEventStatus.ACTIVE.value)
    with get_session(engine) as session:
        if event_id is not None:
            event = session.get(GlobalXPEvent, event_id)
        else:
            event = session.scalar(
                select(GlobalXPEvent)
                .where(GlobalXPEvent.status.in_(live))
                .order_by(GlobalXPEvent.start_time.desc())
                .limit(1)
            )
        if event is None or event.status not in live:
            return None
        event.status = GlobalEventStatus.CANCELED.value
        session.flush()
        event = _detached(session, event)

    logger.info("Global event %d canceled", event.id)
    return event


def get_current_double_xp(engine: Engine, now: datetime | None = None) -> GlobalXPEvent | None:
    now = now or utcnow()
    with Session(engine) as session:
        event = get_active_double_xp(session, now)
        if event is not None:
            session.expunge(event)
    return event


def list_upcoming_events(
    engine: Engine, now: datetime | None = None, limit: int = 10
) -> list[GlobalXPEvent]:
    now = now or utcnow()
    with Session(engine) as session:
        events = session.scalars(
            select(GlobalXPEvent)
            .where(
                GlobalXPEvent.status == GlobalEventStatus.SCHEDULED.value,
                GlobalXPEvent.start_time > now,
            )
            .order_by(GlobalXPEvent.start_time)
            .limit(limit)
        ).all()
        for event in events:
            session.expunge(event)
    return list(events)


def process_event_updates(engine: Engine, now: datetime | None = None) -> list[EventTransition]:
    """Flip scheduled → active and active → completed as windows pass."""
    now = now or utcnow()
    transitions: list[EventTransition] = []

    with get_session(engine) as session:
        live = session.scalars(
            select(GlobalXPEvent).where(
                GlobalXPEvent.status.in_((
                    GlobalEventStatus.SCHEDULED.value,
                    GlobalEventStatus.ACTIVE.value,
                )),
                GlobalXPEvent.start_time <= now,
            ).order_by(GlobalXPEvent.start_time)
        ).all()

        for event in live:
            ended = as_utc(event.end_time) <= now
            if event.status == GlobalEventStatus.SCHEDULED.value and not ended:
                event.status = GlobalEventStatus.ACTIVE.value
                transitions.append(_transition(event, "start"))
            elif ended:
                event.status = GlobalEventStatus.COMPLETED.value
                transitions.append(_transition(event, "end"))

    for t in transitions:
        logger.info("Global event %d %s (%s)", t.event_id, t.transition, t.kind)
    return transitions


def _transition(event: GlobalXPEvent, transition: str) -> EventTransition:
    return EventTransition(
        event_id=event.id,
        kind=event.kind,
        transition=transition,
        multiplier_factor=event.multiplier_factor,
        end_time=as_utc(event.end_time),
        faction=event.faction,
    )
