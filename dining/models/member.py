import uuid
from datetime import datetime
from dining import db


class Member(db.Model):
    """A person who can belong to dining groups."""
    __tablename__ = 'members'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(120), unique=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    # Relationships
    memberships = db.relationship('GroupMember', backref='member', lazy='dynamic')
    ratings = db.relationship('Rating', backref='member', lazy='dynamic')

    def __repr__(self):
        return f'<Member {self.name}>'
