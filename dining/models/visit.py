from datetime import datetime
from dining import db


class Visit(db.Model):
    """Record of a group eating at a restaurant. Written once per decided event, never edited."""
    __tablename__ = 'visits'

    id = db.Column(db.Integer, primary_key=True)
    restaurant_id = db.Column(db.String(36), db.ForeignKey('restaurants.id'), nullable=False)
    group_id = db.Column(db.String(36), db.ForeignKey('groups.id'), nullable=False)
    event_id = db.Column(db.String(36), db.ForeignKey('events.id'), nullable=False, unique=True)
    visited_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        db.Index('ix_visits_group_restaurant', 'group_id', 'restaurant_id', 'visited_at'),
    )

    def __repr__(self):
        return f'<Visit restaurant={self.restaurant_id} group={self.group_id} at={self.visited_at}>'
