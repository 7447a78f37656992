"""
JSON API routes.

Includes:
- Ranked recommendations for an event
- Committing an event's chosen restaurant
- Event creation, rating upserts, saving restaurants
- Google Places search and place details

The acting member comes from session['member_id'] (login is handled elsewhere).
"""

from functools import wraps
from flask import Blueprint, request, jsonify, session, current_app

from dining.errors import DiningError, InvalidInputError, UnauthorizedError
from dining.services.choice_service import choice_service
from dining.services.event_service import create_event, is_group_member
from dining.services.places_service import places_service
from dining.services.rating_service import ratings_for_member, upsert_rating
from dining.services.recommendation_service import recommendation_service
from dining.services.restaurant_service import list_restaurants, save_restaurant, save_restaurant_from_place
from dining.services.stores import store

api_bp = Blueprint('api', __name__, url_prefix='/api')


@api_bp.errorhandler(DiningError)
def handle_dining_error(error):
    """Render engine errors as JSON with their own status code."""
    return jsonify({'success': False, 'error': error.to_dict()}), error.status_code


def login_required(f):
    """Decorator to require a logged-in member."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not session.get('member_id'):
            return jsonify({'success': False, 'error': {'kind': 'unauthenticated', 'message': 'Not logged in'}}), 401
        return f(*args, **kwargs)
    return decorated_function


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise InvalidInputError("Expected a JSON object")
    return data


# ============== RECOMMENDATIONS & CHOICE ==============

@api_bp.route('/events/<event_id>/recommendations')
@login_required
def get_recommendations(event_id):
    """
    Ranked restaurants for an event.

    Query params:
        limit: Optional maximum number of rows

    Returns:
        JSON with 'success', 'chosen_restaurant_id' and 'recommendations' (best first)
    """
    event = store.get_event(event_id)
    if not is_group_member(event.group_id, session['member_id']):
        raise UnauthorizedError("Only group members can view this event")

    ranked = recommendation_service.get_recommendations(event_id)

    limit = request.args.get('limit', type=int)
    if limit is not None and limit >= 0:
        ranked = ranked[:limit]

    return jsonify({
        'success': True,
        'event_id': event_id,
        'chosen_restaurant_id': event.chosen_restaurant_id,
        'recommendations': [r.to_dict() for r in ranked],
    })


@api_bp.route('/events/<event_id>/choice', methods=['POST'])
@login_required
def commit_choice(event_id):
    """Commit the event's restaurant. Only the event creator may do this."""
    data = _json_body()
    restaurant_id = data.get('restaurant_id')
    if not restaurant_id:
        raise InvalidInputError("restaurant_id is required")

    result = choice_service.commit_choice(event_id, restaurant_id, session['member_id'])
    return jsonify({'success': True, **result})


# ============== EVENTS, RATINGS, RESTAURANTS ==============

@api_bp.route('/events', methods=['POST'])
@login_required
def new_event():
    """Create an event with a fixed participant set."""
    data = _json_body()
    group_id = data.get('group_id')
    if not group_id:
        raise InvalidInputError("group_id is required")

    event = create_event(group_id, session['member_id'], data.get('participant_ids') or [])
    return jsonify({
        'success': True,
        'event': {
            'id': event.id,
            'group_id': event.group_id,
            'created_by': event.created_by,
            'participant_ids': event.participant_ids,
            'chosen_restaurant_id': event.chosen_restaurant_id,
        }
    }), 201


@api_bp.route('/ratings')
@login_required
def my_ratings():
    """The current member's ratings. Unrated values are null."""
    ratings = ratings_for_member(session['member_id'])
    return jsonify({
        'success': True,
        'ratings': [
            {'restaurant_id': r.restaurant_id, 'overall': r.overall, 'nutrition': r.nutrition}
            for r in ratings
        ]
    })


@api_bp.route('/ratings/<restaurant_id>', methods=['PUT'])
@login_required
def put_rating(restaurant_id):
    """Create or overwrite the current member's rating. Null clears a value."""
    data = _json_body()
    rating = upsert_rating(
        session['member_id'],
        restaurant_id,
        overall=data.get('overall'),
        nutrition=data.get('nutrition'),
    )
    return jsonify({
        'success': True,
        'rating': {
            'restaurant_id': rating.restaurant_id,
            'overall': rating.overall,
            'nutrition': rating.nutrition,
        }
    })


@api_bp.route('/restaurants')
@login_required
def get_restaurants():
    """
    Saved restaurant catalogue, newest first.

    Query params:
        limit: Maximum number of rows (default 100)
    """
    limit = request.args.get('limit', default=100, type=int)
    if limit < 0:
        raise InvalidInputError("limit must not be negative")

    restaurants = list_restaurants(limit)
    return jsonify({
        'success': True,
        'restaurants': [
            {
                'id': r.id,
                'name': r.name,
                'address': r.address,
                'price_level': r.price_level,
                'cuisine_type': r.cuisine_type,
            }
            for r in restaurants
        ]
    })


@api_bp.route('/restaurants', methods=['POST'])
@login_required
def add_restaurant():
    """Save a restaurant from a Google place_id, or from manual fields."""
    data = _json_body()
    place_id = (data.get('place_id') or '').strip()

    if place_id:
        restaurant = save_restaurant_from_place(place_id)
    else:
        restaurant = save_restaurant(
            name=data.get('name'),
            address=data.get('address'),
            price_level=data.get('price_level'),
            cuisine_type=data.get('cuisine_type'),
        )

    return jsonify({
        'success': True,
        'restaurant': {
            'id': restaurant.id,
            'name': restaurant.name,
            'address': restaurant.address,
            'price_level': restaurant.price_level,
            'cuisine_type': restaurant.cuisine_type,
        }
    }), 201


# ============== GOOGLE PLACES ==============

@api_bp.route('/places/search')
def search_places():
    """
    Search for places using Google Places API.

    Query params:
        q: Search query (required, min 2 chars)

    Returns:
        JSON with 'success', 'places' array, and 'error' (if any)
    """
    query = request.args.get('q', '').strip()

    if len(query) < 2:
        return jsonify({
            'success': True,
            'places': [],
            'error': None
        })

    result = places_service.search_places(query)
    return jsonify(result)


@api_bp.route('/places/status')
def places_status():
    """Check if Google Places API is configured."""
    return jsonify({
        'configured': places_service.is_configured()
    })


@api_bp.route('/places/<place_id>')
def get_place_details(place_id):
    """Get canonical details (name, address, price tier) for a place."""
    result = places_service.get_place_details(place_id)
    if not result['success']:
        current_app.logger.warning(f"Place details unavailable for {place_id}: {result['error']}")
    return jsonify(result)
