"""
Commit the chosen restaurant for a dining event.

An event moves UNDECIDED -> DECIDED(restaurant) exactly once. The move and
the visit record it produces are written in one transaction:

1. A per-event lock serialises commits inside this process (bounded wait).
2. The event row is read with SELECT ... FOR UPDATE (PostgreSQL blocks other
   writers until we commit, bounded by lock_timeout).
3. The update only applies while chosen_restaurant_id IS NULL, so even
   without row locks (SQLite) a second writer cannot overwrite the choice.

Repeating a commit with the same restaurant is a no-op success. A commit
with a different restaurant fails with ConflictError.
"""

import threading
import weakref
from contextlib import contextmanager
from datetime import datetime

from flask import current_app
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError

from dining import db
from dining.errors import (
    CommitTimeoutError,
    ConflictError,
    DiningError,
    InvalidInputError,
    NotFoundError,
    UnauthorizedError,
    UpstreamError,
)
from dining.models import Event, Visit
from dining.services.stores import store as default_store

# PostgreSQL SQLSTATE for lock_not_available
PG_LOCK_NOT_AVAILABLE = '55P03'


class _KeyLock:
    __slots__ = ('lock', '__weakref__')

    def __init__(self):
        self.lock = threading.Lock()


class EventLocks:
    """Per-event mutexes. Entries disappear once no commit holds them."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks = weakref.WeakValueDictionary()

    def _lock_for(self, key: str) -> _KeyLock:
        with self._guard:
            entry = self._locks.get(key)
            if entry is None:
                entry = _KeyLock()
                self._locks[key] = entry
            return entry

    @contextmanager
    def hold(self, key: str, timeout: float):
        entry = self._lock_for(key)
        if not entry.lock.acquire(timeout=timeout):
            raise CommitTimeoutError(f"Timed out waiting to commit event {key}")
        try:
            yield
        finally:
            entry.lock.release()


def is_lock_timeout(exc: OperationalError) -> bool:
    """True if the driver error means we gave up waiting on a lock."""
    orig = getattr(exc, 'orig', None)
    code = getattr(orig, 'pgcode', None) or getattr(orig, 'sqlstate', None)
    if code == PG_LOCK_NOT_AVAILABLE:
        return True
    message = str(orig or exc).lower()
    return 'database is locked' in message or 'lock timeout' in message


class ChoiceService:
    """Single writer of an event's chosen restaurant."""

    def __init__(self, store=None, locks: EventLocks = None):
        self.store = store or default_store
        self.locks = locks or EventLocks()

    def commit_choice(self, event_id: str, restaurant_id: str, actor_id: str,
                      now: datetime = None) -> dict:
        """
        Record `restaurant_id` as the event's choice.

        Args:
            event_id: Event being decided
            restaurant_id: Restaurant to commit
            actor_id: Member performing the commit (must be the event creator)
            now: Visit timestamp (defaults to utcnow)

        Returns:
            dict with 'restaurant_id' and 'already_decided' (True for a repeat commit)

        Raises:
            NotFoundError, InvalidInputError, UnauthorizedError,
            ConflictError, CommitTimeoutError, UpstreamError
        """
        timeout = float(current_app.config.get('CHOICE_LOCK_TIMEOUT', 5))

        try:
            with self.locks.hold(event_id, timeout):
                return self._commit(event_id, restaurant_id, actor_id, now, timeout)
        except CommitTimeoutError:
            db.session.rollback()
            current_app.logger.warning(f"Commit timed out: event={event_id} actor={actor_id}")
            raise
        except DiningError:
            db.session.rollback()
            raise
        except OperationalError as e:
            db.session.rollback()
            if is_lock_timeout(e):
                current_app.logger.warning(f"Commit timed out on database lock: event={event_id}")
                raise CommitTimeoutError(f"Timed out waiting to commit event {event_id}") from e
            current_app.logger.error(f"Commit failed for event {event_id}: {e}")
            raise UpstreamError(f"Store failure committing event {event_id}") from e
        except SQLAlchemyError as e:
            db.session.rollback()
            current_app.logger.error(f"Commit failed for event {event_id}: {e}")
            raise UpstreamError(f"Store failure committing event {event_id}") from e

    def _commit(self, event_id, restaurant_id, actor_id, now, timeout):
        self._apply_lock_timeout(timeout)

        event = Event.query.filter_by(id=event_id).with_for_update().first()
        if event is None:
            raise NotFoundError(f"Event {event_id} not found")

        if event.created_by != actor_id:
            current_app.logger.warning(
                f"Rejected commit: member {actor_id} is not the creator of event {event_id}"
            )
            raise UnauthorizedError("Only the event creator can choose the restaurant")

        if event.participants.count() == 0:
            raise InvalidInputError(f"Event {event_id} has no participants")

        if event.is_decided:
            return self._resolve_decided(event, restaurant_id)

        candidate_ids = {r.id for r in self.store.list_candidate_restaurants(event.group_id)}
        if restaurant_id not in candidate_ids:
            raise NotFoundError(f"Restaurant {restaurant_id} is not a candidate for this event")

        if now is None:
            now = datetime.utcnow()
        group_id = event.group_id

        # Only applies while the event is still undecided
        updated = Event.query.filter(
            Event.id == event_id,
            Event.chosen_restaurant_id.is_(None)
        ).update(
            {'chosen_restaurant_id': restaurant_id, 'chosen_at': now},
            synchronize_session=False
        )
        if updated != 1:
            return self._lost_race(event_id, restaurant_id)

        db.session.add(Visit(
            restaurant_id=restaurant_id,
            group_id=group_id,
            event_id=event_id,
            visited_at=now,
        ))
        try:
            db.session.commit()
        except IntegrityError:
            # Another writer already recorded this event's visit
            return self._lost_race(event_id, restaurant_id)

        current_app.logger.info(
            f"Event {event_id} decided: restaurant={restaurant_id} by member={actor_id}"
        )
        return {'restaurant_id': restaurant_id, 'already_decided': False}

    def _lost_race(self, event_id, restaurant_id):
        db.session.rollback()
        event = db.session.get(Event, event_id)
        if event is None or not event.is_decided:
            raise UpstreamError(f"Could not record the choice for event {event_id}")
        return self._resolve_decided(event, restaurant_id)

    def _resolve_decided(self, event, restaurant_id):
        event_id = event.id
        chosen = event.chosen_restaurant_id
        db.session.rollback()
        if chosen == restaurant_id:
            current_app.logger.info(f"Event {event_id} already decided for {restaurant_id}; nothing to do")
            return {'restaurant_id': chosen, 'already_decided': True}

        current_app.logger.warning(
            f"Rejected commit: event {event_id} already decided for {chosen}, got {restaurant_id}"
        )
        raise ConflictError(
            f"Event already decided for restaurant {chosen}",
            chosen_restaurant_id=chosen,
        )

    def _apply_lock_timeout(self, timeout: float):
        """Bound the row-lock wait on PostgreSQL. SQLite uses the driver busy timeout."""
        if db.engine.dialect.name == 'postgresql':
            db.session.execute(text(f"SET LOCAL lock_timeout = {int(timeout * 1000)}"))


# Singleton instance
choice_service = ChoiceService()
