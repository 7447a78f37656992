"""
Rating upserts.

Values outside the closed domains are rejected here, before they can reach
the scoring engine. A member rates a restaurant at most once; rating again
overwrites the previous values.
"""

from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from dining import db
from dining.errors import InvalidInputError, NotFoundError, UpstreamError
from dining.models import Member, Rating, Restaurant
from dining.services.scoring import NUTRITION_VALUES, OVERALL_VALUES


def validate_rating_value(value, allowed, field: str):
    """Return value unchanged if it is None or an allowed integer."""
    if value is None:
        return None
    # bool is an int subclass; True must not pass as 1
    if isinstance(value, bool) or not isinstance(value, int) or value not in allowed:
        raise InvalidInputError(f"{field} must be one of {sorted(allowed)} or null")
    return value


def upsert_rating(member_id: str, restaurant_id: str, overall=None, nutrition=None) -> Rating:
    """
    Create or overwrite a member's rating for a restaurant.

    Args:
        member_id: Rating member
        restaurant_id: Rated restaurant
        overall: 1-5 or None (unrated)
        nutrition: 1, 3, 5 or None (unrated)

    Returns:
        The saved Rating
    """
    overall = validate_rating_value(overall, OVERALL_VALUES, 'overall')
    nutrition = validate_rating_value(nutrition, NUTRITION_VALUES, 'nutrition')

    try:
        if db.session.get(Member, member_id) is None:
            raise NotFoundError(f"Member {member_id} not found")
        if db.session.get(Restaurant, restaurant_id) is None:
            raise NotFoundError(f"Restaurant {restaurant_id} not found")

        rating = Rating.query.filter_by(member_id=member_id, restaurant_id=restaurant_id).first()
        if rating is None:
            rating = Rating(member_id=member_id, restaurant_id=restaurant_id)
            db.session.add(rating)
        rating.overall = overall
        rating.nutrition = nutrition

        try:
            db.session.commit()
        except IntegrityError:
            # Concurrent first rating from the same member - overwrite theirs
            db.session.rollback()
            rating = Rating.query.filter_by(member_id=member_id, restaurant_id=restaurant_id).one()
            rating.overall = overall
            rating.nutrition = nutrition
            db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Rating upsert failed for member {member_id}: {e}")
        raise UpstreamError("Store failure saving rating") from e

    current_app.logger.info(
        f"Rating saved: member={member_id} restaurant={restaurant_id} overall={overall} nutrition={nutrition}"
    )
    return rating


def ratings_for_member(member_id: str) -> list:
    """All of a member's ratings, ordered by restaurant."""
    try:
        return Rating.query.filter_by(member_id=member_id).order_by(Rating.restaurant_id).all()
    except SQLAlchemyError as e:
        current_app.logger.error(f"Loading ratings for member {member_id} failed: {e}")
        raise UpstreamError("Store failure loading ratings") from e
