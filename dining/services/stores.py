"""
Read access to groups, events, restaurants, ratings and visit history.

The scoring engine only talks to the database through this store, so
tests can swap in a fake with the same methods.
"""

from datetime import datetime
from typing import List, Optional

from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from dining import db
from dining.errors import NotFoundError, UpstreamError
from dining.models import Event, GroupMember, Member, Rating, Restaurant, Visit


def _upstream(operation: str, exc: Exception) -> UpstreamError:
    current_app.logger.error(f"Store failure in {operation}: {exc}")
    return UpstreamError(f"Store failure in {operation}")


class SqlStore:
    """SQLAlchemy-backed store."""

    def get_event(self, event_id: str) -> Event:
        try:
            event = db.session.get(Event, event_id)
        except SQLAlchemyError as e:
            raise _upstream('get_event', e) from e
        if event is None:
            raise NotFoundError(f"Event {event_id} not found")
        return event

    def get_group_members(self, group_id: str) -> List[Member]:
        try:
            return Member.query.join(GroupMember).filter(
                GroupMember.group_id == group_id
            ).order_by(Member.id).all()
        except SQLAlchemyError as e:
            raise _upstream('get_group_members', e) from e

    def list_candidate_restaurants(self, group_id: str) -> List[Restaurant]:
        """All restaurants in the shared catalogue are candidates for every group."""
        try:
            return Restaurant.query.order_by(Restaurant.id).all()
        except SQLAlchemyError as e:
            raise _upstream('list_candidate_restaurants', e) from e

    def get_ratings(self, user_ids: List[str], restaurant_id: str) -> List[dict]:
        if not user_ids:
            return []
        try:
            rows = Rating.query.filter(
                Rating.restaurant_id == restaurant_id,
                Rating.member_id.in_(list(user_ids))
            ).all()
        except SQLAlchemyError as e:
            raise _upstream('get_ratings', e) from e
        return [
            {'user_id': r.member_id, 'overall': r.overall, 'nutrition': r.nutrition}
            for r in rows
        ]

    def last_visit(self, group_id: str, restaurant_id: str) -> Optional[datetime]:
        try:
            return db.session.query(func.max(Visit.visited_at)).filter(
                Visit.group_id == group_id,
                Visit.restaurant_id == restaurant_id
            ).scalar()
        except SQLAlchemyError as e:
            raise _upstream('last_visit', e) from e


# Singleton instance
store = SqlStore()
