import pytest

from dining import create_app, db
from dining.models import (
    Event,
    EventParticipant,
    Group,
    GroupMember,
    Member,
    Rating,
    Restaurant,
)


@pytest.fixture
def app(tmp_path, monkeypatch):
    monkeypatch.delenv('GOOGLE_PLACES_API_KEY', raising=False)
    app = create_app({
        'TESTING': True,
        'SECRET_KEY': 'test-secret',
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'test.db'}",
        'GOOGLE_PLACES_API_KEY': None,
        'CHOICE_LOCK_TIMEOUT': 5,
        'RECENCY_HORIZON_DAYS': 30,
    })
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


def make_member(member_id, name=None):
    member = Member(id=member_id, name=name or member_id.title(), email=f'{member_id}@example.com')
    db.session.add(member)
    return member


def make_restaurant(restaurant_id, name=None, price_level=None):
    restaurant = Restaurant(id=restaurant_id, name=name or restaurant_id, price_level=price_level)
    db.session.add(restaurant)
    return restaurant


def make_rating(member_id, restaurant_id, overall=None, nutrition=None):
    rating = Rating(member_id=member_id, restaurant_id=restaurant_id, overall=overall, nutrition=nutrition)
    db.session.add(rating)
    return rating


def make_event(event_id, group_id, creator_id, participant_ids):
    event = Event(id=event_id, group_id=group_id, created_by=creator_id)
    db.session.add(event)
    for member_id in participant_ids:
        db.session.add(EventParticipant(event_id=event_id, member_id=member_id))
    return event


@pytest.fixture
def lunch_group(app):
    """
    Group 'g-lunch' with alice (owner), bob, carol and dave.

    Event 'ev-1' is created by alice with alice, bob and carol as participants
    (dave is a member but not a participant). Restaurants:
    r-a (price 1), r-b (price 3), r-c (price unknown).
    """
    for member_id in ('alice', 'bob', 'carol', 'dave', 'erin'):
        make_member(member_id)

    db.session.add(Group(id='g-lunch', name='Lunch crew'))
    db.session.add(Group(id='g-other', name='Other crew'))
    db.session.flush()
    for member_id in ('alice', 'bob', 'carol', 'dave'):
        db.session.add(GroupMember(group_id='g-lunch', member_id=member_id,
                                   role='owner' if member_id == 'alice' else 'member'))
    db.session.add(GroupMember(group_id='g-other', member_id='erin', role='owner'))

    make_restaurant('r-a', 'Noodle Bar', price_level=1)
    make_restaurant('r-b', 'Steak House', price_level=3)
    make_restaurant('r-c', 'Mystery Diner', price_level=None)

    make_event('ev-1', 'g-lunch', 'alice', ['alice', 'bob', 'carol'])
    make_event('ev-other', 'g-other', 'erin', ['erin'])
    db.session.commit()

    return {
        'group_id': 'g-lunch',
        'event_id': 'ev-1',
        'creator_id': 'alice',
        'participants': ['alice', 'bob', 'carol'],
        'restaurants': ['r-a', 'r-b', 'r-c'],
    }


def login(client, member_id):
    with client.session_transaction() as sess:
        sess['member_id'] = member_id
