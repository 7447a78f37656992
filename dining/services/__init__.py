# Business logic services
from dining.services.stores import store
from dining.services.recommendation_service import recommendation_service
from dining.services.choice_service import choice_service
from dining.services.places_service import places_service

__all__ = [
    'store',
    'recommendation_service',
    'choice_service',
    'places_service',
]
