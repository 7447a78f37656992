import uuid
from datetime import datetime
from dining import db


class Group(db.Model):
    """A set of members who eat together."""
    __tablename__ = 'groups'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = db.Column(db.String(120), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    # Relationships
    members = db.relationship('GroupMember', backref='group', lazy='dynamic', cascade='all, delete-orphan')
    events = db.relationship('Event', backref='group', lazy='dynamic')

    def __repr__(self):
        return f'<Group {self.name}>'


class GroupMember(db.Model):
    """Membership of a member in a group."""
    __tablename__ = 'group_members'

    id = db.Column(db.Integer, primary_key=True)
    group_id = db.Column(db.String(36), db.ForeignKey('groups.id'), nullable=False)
    member_id = db.Column(db.String(36), db.ForeignKey('members.id'), nullable=False)
    role = db.Column(db.String(20), default='member')  # owner, member
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    # Unique constraint: one membership per member per group
    __table_args__ = (
        db.UniqueConstraint('group_id', 'member_id', name='unique_group_member'),
    )

    def __repr__(self):
        return f'<GroupMember group={self.group_id} member={self.member_id}>'
