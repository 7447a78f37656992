"""
Build the ranked restaurant list for a dining event.

Read-only: nothing is cached or written, so concurrent calls for the
same event are safe and always reflect the latest ratings and visits.
"""

from datetime import datetime
from typing import List, Optional

from flask import current_app

from dining.errors import InvalidInputError
from dining.services.scoring import (
    ScoredRestaurant,
    ScoringConfig,
    aggregate_signals,
    combine,
    rank,
)
from dining.services.stores import store as default_store


class RecommendationService:
    """Ranks the group's candidate restaurants for one event."""

    def __init__(self, store=None, config: Optional[ScoringConfig] = None):
        self.store = store or default_store
        self._config = config

    @property
    def config(self) -> ScoringConfig:
        if self._config is not None:
            return self._config
        return ScoringConfig.from_app_config(current_app.config)

    def get_recommendations(self, event_id: str, now: datetime = None) -> List[ScoredRestaurant]:
        """
        Score every candidate restaurant for the event's participants.

        Args:
            event_id: Event to rank for
            now: Reference time for the recency signal (defaults to utcnow)

        Returns:
            Fully materialised list sorted best first. Empty if the group has
            no candidate restaurants.

        Raises:
            NotFoundError: event does not exist
            InvalidInputError: event has no participants
            UpstreamError: a store read failed
        """
        if now is None:
            now = datetime.utcnow()
        config = self.config

        event = self.store.get_event(event_id)
        participant_ids = event.participant_ids
        if not participant_ids:
            raise InvalidInputError(f"Event {event_id} has no participants")

        results = []
        for restaurant in self.store.list_candidate_restaurants(event.group_id):
            ratings = self.store.get_ratings(participant_ids, restaurant.id)
            last_visited_at = self.store.last_visit(event.group_id, restaurant.id)

            signals = aggregate_signals(
                participant_ids,
                ratings,
                restaurant.price_level,
                last_visited_at,
                now,
                config,
            )
            results.append(ScoredRestaurant(
                restaurant_id=restaurant.id,
                name=restaurant.name,
                address=restaurant.address,
                price_level=restaurant.price_level,
                overall_avg=signals.overall_avg,
                nutrition_avg=signals.nutrition_avg,
                recency_score=signals.recency_score,
                cost_score=signals.cost_score,
                final_score=combine(signals, config),
            ))

        return rank(results)


# Singleton instance
recommendation_service = RecommendationService()
