# hookrelay/events.py
"""Event store: captured requests, delivery marking and age-based eviction."""
import logging
from datetime import datetime, timedelta
from typing import List

from sqlalchemy import delete, select, update

from .db import db, utcnow
from .models import Event, Hook

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 50
MAX_LIMIT = 100
RETENTION_WINDOW = timedelta(days=7)


def clamp_limit(limit) -> int:
    try:
        value = int(limit)
    except (TypeError, ValueError):
        return DEFAULT_LIMIT
    return max(1, min(value, MAX_LIMIT))


def append_event(event: Event) -> Event:
    """
    Insert one event and bump the owning hook's trigger stats in the same
    transaction. Duplicate deliveries are stored as distinct events.
    """
    now = utcnow()
    if event.received_at is None:
        event.received_at = now
    db.session.add(event)
    db.session.execute(
        update(Hook)
        .where(Hook.id == event.hook_id)
        .values(event_count=Hook.event_count + 1, last_triggered_at=now)
    )
    db.session.commit()
    return event


def list_events(hook_id: str, limit: int = DEFAULT_LIMIT, undelivered_only: bool = False) -> List[Event]:
    """
    Undelivered events come oldest first so pollers consume them in order;
    the full history comes newest first.
    """
    limit = clamp_limit(limit)
    stmt = select(Event).where(Event.hook_id == hook_id)
    if undelivered_only:
        stmt = stmt.where(Event.delivered_at.is_(None)).order_by(Event.received_at.asc(), Event.id)
    else:
        stmt = stmt.order_by(Event.received_at.desc(), Event.id)
    return list(db.session.execute(stmt.limit(limit)).scalars())


def mark_delivered(event_id: str) -> None:
    """Set delivered_at once; later calls leave the first timestamp in place."""
    db.session.execute(
        update(Event)
        .where(Event.id == event_id, Event.delivered_at.is_(None))
        .values(delivered_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    db.session.commit()


def mark_all_delivered(event_ids: List[str]) -> datetime:
    """
    Mark a batch of events delivered in one statement and one commit.

    Events already delivered keep their timestamp; ids that no longer exist
    (purged meanwhile) are ignored. Returns the timestamp applied.
    """
    now = utcnow()
    if event_ids:
        db.session.execute(
            update(Event)
            .where(Event.id.in_(event_ids), Event.delivered_at.is_(None))
            .values(delivered_at=now)
            .execution_options(synchronize_session=False)
        )
        db.session.commit()
    return now


def purge_older_than(window: timedelta = RETENTION_WINDOW) -> int:
    cutoff = utcnow() - window
    result = db.session.execute(
        delete(Event)
        .where(Event.received_at < cutoff)
        .execution_options(synchronize_session=False)
    )
    db.session.commit()
    return result.rowcount or 0
