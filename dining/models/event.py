import uuid
from datetime import datetime
from dining import db


class Event(db.Model):
    """One occasion of a group deciding where to eat."""
    __tablename__ = 'events'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    group_id = db.Column(db.String(36), db.ForeignKey('groups.id'), nullable=False, index=True)
    created_by = db.Column(db.String(36), db.ForeignKey('members.id'), nullable=False)
    chosen_restaurant_id = db.Column(db.String(36), db.ForeignKey('restaurants.id'), nullable=True)
    chosen_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    # Relationships
    participants = db.relationship('EventParticipant', backref='event', lazy='dynamic', cascade='all, delete-orphan')
    creator = db.relationship('Member', foreign_keys=[created_by])
    chosen_restaurant = db.relationship('Restaurant', foreign_keys=[chosen_restaurant_id])

    @property
    def is_decided(self):
        return self.chosen_restaurant_id is not None

    @property
    def participant_ids(self):
        return [p.member_id for p in self.participants.order_by(EventParticipant.member_id)]

    def __repr__(self):
        return f'<Event {self.id} group={self.group_id}>'


class EventParticipant(db.Model):
    """Member taking part in an event. Fixed when the event is created."""
    __tablename__ = 'event_participants'

    id = db.Column(db.Integer, primary_key=True)
    event_id = db.Column(db.String(36), db.ForeignKey('events.id'), nullable=False)
    member_id = db.Column(db.String(36), db.ForeignKey('members.id'), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    # Unique constraint: one participant record per member per event
    __table_args__ = (
        db.UniqueConstraint('event_id', 'member_id', name='unique_participant'),
    )

    def __repr__(self):
        return f'<EventParticipant event={self.event_id} member={self.member_id}>'
