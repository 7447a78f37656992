from datetime import datetime
from dining import db


class Rating(db.Model):
    """Member rating for a restaurant. Re-rating overwrites the row."""
    __tablename__ = 'ratings'

    id = db.Column(db.Integer, primary_key=True)
    member_id = db.Column(db.String(36), db.ForeignKey('members.id'), nullable=False)
    restaurant_id = db.Column(db.String(36), db.ForeignKey('restaurants.id'), nullable=False)
    overall = db.Column(db.Integer, nullable=True)  # 1-5, NULL = unrated
    nutrition = db.Column(db.Integer, nullable=True)  # 1, 3 or 5, NULL = unrated
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Unique constraint: one rating per member per restaurant
    __table_args__ = (
        db.UniqueConstraint('member_id', 'restaurant_id', name='unique_rating'),
        db.CheckConstraint('overall IS NULL OR (overall >= 1 AND overall <= 5)', name='valid_overall'),
        db.CheckConstraint('nutrition IS NULL OR nutrition IN (1, 3, 5)', name='valid_nutrition'),
    )

    def __repr__(self):
        return f'<Rating member={self.member_id} restaurant={self.restaurant_id} overall={self.overall}>'
