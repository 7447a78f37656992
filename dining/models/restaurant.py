import uuid
from datetime import datetime
from dining import db


class Restaurant(db.Model):
    """Restaurant in the shared catalogue (not owned by any one group)."""
    __tablename__ = 'restaurants'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = db.Column(db.String(200), nullable=False)
    address = db.Column(db.String(300), nullable=True)
    google_place_id = db.Column(db.String(100), nullable=True, unique=True)
    price_level = db.Column(db.Integer, nullable=True)  # 0-4, NULL = unknown
    cuisine_type = db.Column(db.String(50), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        db.CheckConstraint('price_level IS NULL OR (price_level >= 0 AND price_level <= 4)', name='valid_price_level'),
    )

    # Relationships
    ratings = db.relationship('Rating', backref='restaurant', lazy='dynamic')
    visits = db.relationship('Visit', backref='restaurant', lazy='dynamic')

    def __repr__(self):
        return f'<Restaurant {self.name}>'
