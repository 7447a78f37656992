"""Dining event creation with a fixed participant set."""

from typing import Iterable

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from dining import db
from dining.errors import InvalidInputError, NotFoundError, UnauthorizedError, UpstreamError
from dining.models import Event, EventParticipant, Group, GroupMember
from dining.services.stores import store


def is_group_member(group_id: str, member_id: str) -> bool:
    return GroupMember.query.filter_by(group_id=group_id, member_id=member_id).first() is not None


def create_event(group_id: str, creator_id: str, participant_ids: Iterable[str]) -> Event:
    """
    Create an undecided event for a group.

    The creator must belong to the group. Participants must be a non-empty
    subset of the group's members and cannot be changed afterwards.
    """
    participants = sorted(set(participant_ids or []))
    if not participants:
        raise InvalidInputError("Select at least one participant")

    try:
        if db.session.get(Group, group_id) is None:
            raise NotFoundError(f"Group {group_id} not found")
        if not is_group_member(group_id, creator_id):
            raise UnauthorizedError("Only group members can create events")

        member_ids = {m.id for m in store.get_group_members(group_id)}
        outsiders = [p for p in participants if p not in member_ids]
        if outsiders:
            raise InvalidInputError(f"Not members of this group: {', '.join(outsiders)}")

        event = Event(group_id=group_id, created_by=creator_id)
        db.session.add(event)
        db.session.flush()  # Get the ID

        for member_id in participants:
            db.session.add(EventParticipant(event_id=event.id, member_id=member_id))

        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Event creation failed for group {group_id}: {e}")
        raise UpstreamError("Store failure creating event") from e

    current_app.logger.info(f"Event {event.id} created for group {group_id} with {len(participants)} participants")
    return event
