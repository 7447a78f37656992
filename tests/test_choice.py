import sqlite3
import threading
from datetime import datetime

import pytest
from sqlalchemy.exc import OperationalError

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
from dining.services.choice_service import ChoiceService, EventLocks, choice_service, is_lock_timeout
from dining.services.recommendation_service import recommendation_service
from tests.conftest import make_restaurant


def _event(event_id='ev-1'):
    db.session.expire_all()
    return db.session.get(Event, event_id)


def _visit_count(event_id='ev-1'):
    return Visit.query.filter_by(event_id=event_id).count()


def test_commit_decides_event_and_records_visit(lunch_group):
    when = datetime(2024, 6, 4, 12, 0, 0)
    result = choice_service.commit_choice('ev-1', 'r-a', 'alice', now=when)

    assert result == {'restaurant_id': 'r-a', 'already_decided': False}
    event = _event()
    assert event.chosen_restaurant_id == 'r-a'
    assert event.chosen_at == when

    visit = Visit.query.filter_by(event_id='ev-1').one()
    assert visit.restaurant_id == 'r-a'
    assert visit.group_id == 'g-lunch'
    assert visit.visited_at == when


def test_repeat_commit_same_restaurant_is_noop(lunch_group):
    choice_service.commit_choice('ev-1', 'r-a', 'alice')
    result = choice_service.commit_choice('ev-1', 'r-a', 'alice')

    assert result == {'restaurant_id': 'r-a', 'already_decided': True}
    assert _event().chosen_restaurant_id == 'r-a'
    assert _visit_count() == 1


def test_commit_different_restaurant_conflicts(lunch_group):
    choice_service.commit_choice('ev-1', 'r-a', 'alice')

    with pytest.raises(ConflictError) as excinfo:
        choice_service.commit_choice('ev-1', 'r-b', 'alice')

    assert excinfo.value.chosen_restaurant_id == 'r-a'
    assert excinfo.value.kind == 'conflict'
    assert _event().chosen_restaurant_id == 'r-a'
    assert _visit_count() == 1


def test_only_creator_can_commit(lunch_group):
    with pytest.raises(UnauthorizedError):
        choice_service.commit_choice('ev-1', 'r-a', 'bob')

    assert _event().chosen_restaurant_id is None
    assert _visit_count() == 0


def test_unknown_event_is_not_found(lunch_group):
    with pytest.raises(NotFoundError):
        choice_service.commit_choice('missing', 'r-a', 'alice')


def test_unknown_restaurant_is_not_found(lunch_group):
    with pytest.raises(NotFoundError):
        choice_service.commit_choice('ev-1', 'r-missing', 'alice')

    assert _event().chosen_restaurant_id is None


def test_event_without_participants_is_invalid(lunch_group):
    db.session.add(Event(id='ev-empty', group_id='g-lunch', created_by='alice'))
    db.session.commit()

    with pytest.raises(InvalidInputError):
        choice_service.commit_choice('ev-empty', 'r-a', 'alice')


def test_commit_feeds_future_recency(lunch_group):
    when = datetime(2024, 6, 4, 12, 0, 0)
    choice_service.commit_choice('ev-1', 'r-a', 'alice', now=when)

    results = recommendation_service.get_recommendations('ev-1', now=when)
    scores = {r.restaurant_id: r.recency_score for r in results}
    assert scores['r-a'] == 0.0
    assert scores['r-b'] == 100.0


def test_concurrent_commits_have_single_winner(app, lunch_group):
    restaurant_ids = ['r-a', 'r-b', 'r-c', 'r-d', 'r-e', 'r-f']
    make_restaurant('r-d', price_level=2)
    make_restaurant('r-e', price_level=0)
    make_restaurant('r-f', price_level=4)
    db.session.commit()

    barrier = threading.Barrier(len(restaurant_ids))
    outcomes = []
    outcomes_lock = threading.Lock()

    def attempt(restaurant_id):
        with app.app_context():
            barrier.wait()
            try:
                choice_service.commit_choice('ev-1', restaurant_id, 'alice')
                outcome = ('ok', restaurant_id)
            except DiningError as e:
                outcome = (e.kind, restaurant_id)
            with outcomes_lock:
                outcomes.append(outcome)

    threads = [threading.Thread(target=attempt, args=(rid,)) for rid in restaurant_ids]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)

    winners = [rid for kind, rid in outcomes if kind == 'ok']
    losers = [kind for kind, _ in outcomes if kind != 'ok']
    assert len(outcomes) == len(restaurant_ids)
    assert len(winners) == 1
    assert losers == ['conflict'] * (len(restaurant_ids) - 1)

    assert _event().chosen_restaurant_id == winners[0]
    assert _visit_count() == 1


def test_commit_times_out_when_event_is_busy(app, lunch_group):
    app.config['CHOICE_LOCK_TIMEOUT'] = 0.05
    locks = EventLocks()
    service = ChoiceService(locks=locks)

    with locks.hold('ev-1', timeout=1):
        with pytest.raises(CommitTimeoutError):
            service.commit_choice('ev-1', 'r-a', 'alice')

    assert _event().chosen_restaurant_id is None
    result = service.commit_choice('ev-1', 'r-a', 'alice')
    assert result['restaurant_id'] == 'r-a'


def test_event_locks_are_per_event():
    locks = EventLocks()
    with locks.hold('ev-1', timeout=1):
        with locks.hold('ev-2', timeout=0.05):
            pass
        with pytest.raises(CommitTimeoutError):
            with locks.hold('ev-1', timeout=0.05):
                pass


class _PgLockError(Exception):
    pgcode = '55P03'


def test_is_lock_timeout_recognises_driver_errors():
    assert is_lock_timeout(OperationalError('UPDATE', {}, sqlite3.OperationalError('database is locked')))
    assert is_lock_timeout(OperationalError('SELECT', {}, _PgLockError('canceling statement')))
    assert not is_lock_timeout(OperationalError('SELECT', {}, sqlite3.OperationalError('no such table: events')))


def test_store_failure_during_commit_leaves_event_undecided(lunch_group):
    Visit.__table__.drop(db.engine)

    with pytest.raises(UpstreamError):
        choice_service.commit_choice('ev-1', 'r-a', 'alice')

    assert _event().chosen_restaurant_id is None


def test_candidate_lookup_failure_is_upstream_error(lunch_group):
    class BrokenStore:
        def list_candidate_restaurants(self, group_id):
            raise UpstreamError("Store failure in list_candidate_restaurants")

    service = ChoiceService(store=BrokenStore())
    with pytest.raises(UpstreamError):
        service.commit_choice('ev-1', 'r-a', 'alice')

    assert _event().chosen_restaurant_id is None
