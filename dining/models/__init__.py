# Import all models here so they're registered with SQLAlchemy
from dining.models.member import Member
from dining.models.group import Group, GroupMember
from dining.models.restaurant import Restaurant
from dining.models.rating import Rating
from dining.models.event import Event, EventParticipant
from dining.models.visit import Visit

__all__ = ['Member', 'Group', 'GroupMember', 'Restaurant', 'Rating', 'Event', 'EventParticipant', 'Visit']
