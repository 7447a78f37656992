"""Saving restaurants into the shared catalogue."""

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from dining import db
from dining.errors import InvalidInputError, UpstreamError
from dining.models import Restaurant
from dining.services.scoring import PRICE_TIERS
from dining.services.places_service import places_service


def save_restaurant(name: str, address: str = None, price_level=None,
                    cuisine_type: str = None, google_place_id: str = None) -> Restaurant:
    """
    Add a restaurant, reusing the existing row for a known Google Place ID.

    Returns:
        The new or existing Restaurant
    """
    name = (name or '').strip()
    if not name:
        raise InvalidInputError("Restaurant name is required")
    if price_level is not None and (isinstance(price_level, bool) or not isinstance(price_level, int)
                                    or price_level not in PRICE_TIERS):
        raise InvalidInputError("price_level must be 0-4 or null")

    try:
        if google_place_id:
            existing = Restaurant.query.filter_by(google_place_id=google_place_id).first()
            if existing:
                return existing

        restaurant = Restaurant(
            name=name,
            address=address or None,
            price_level=price_level,
            cuisine_type=cuisine_type or None,
            google_place_id=google_place_id or None,
        )
        db.session.add(restaurant)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Saving restaurant {name} failed: {e}")
        raise UpstreamError("Store failure saving restaurant") from e

    current_app.logger.info(f"Restaurant saved: {restaurant.id} {restaurant.name}")
    return restaurant


def save_restaurant_from_place(place_id: str) -> Restaurant:
    """Look the place up and save it. Lookup failures are upstream errors."""
    try:
        existing = Restaurant.query.filter_by(google_place_id=place_id).first()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Restaurant lookup for place {place_id} failed: {e}")
        raise UpstreamError("Store failure looking up restaurant") from e
    if existing:
        return existing

    result = places_service.get_place_details(place_id)
    if not result['success']:
        raise UpstreamError(f"Place lookup failed: {result['error']}")

    place = result['place']
    return save_restaurant(
        name=place['name'],
        address=place['address'],
        price_level=place['price_level'],
        cuisine_type=place['cuisine_type'],
        google_place_id=place['place_id'] or place_id,
    )


def list_restaurants(limit: int = 100) -> list:
    """Saved catalogue, newest first."""
    try:
        return Restaurant.query.order_by(
            Restaurant.created_at.desc(), Restaurant.id
        ).limit(limit).all()
    except SQLAlchemyError as e:
        current_app.logger.error(f"Listing restaurants failed: {e}")
        raise UpstreamError("Store failure listing restaurants") from e
