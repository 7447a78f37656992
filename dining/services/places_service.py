"""
Google Places API integration.

Uses the Google Places API (New) for:
- Place Autocomplete (search as you type)
- Place Details (canonical name, address and price tier for a selected place)

Requires: GOOGLE_PLACES_API_KEY (environment or app config)
"""

import os
import requests
from typing import Optional
from flask import current_app

# Closed mapping - any other label (including PRICE_LEVEL_UNSPECIFIED) is unknown
PRICE_LEVEL_MAP = {
    'PRICE_LEVEL_FREE': 0,
    'PRICE_LEVEL_INEXPENSIVE': 1,
    'PRICE_LEVEL_MODERATE': 2,
    'PRICE_LEVEL_EXPENSIVE': 3,
    'PRICE_LEVEL_VERY_EXPENSIVE': 4,
}

CUISINE_MAP = {
    'restaurant': 'Restaurant',
    'cafe': 'Cafe',
    'bar': 'Bar & Grill',
    'meal_takeaway': 'Takeout',
    'meal_delivery': 'Delivery',
    'american_restaurant': 'American',
    'italian_restaurant': 'Italian',
    'mexican_restaurant': 'Mexican',
    'chinese_restaurant': 'Chinese',
    'japanese_restaurant': 'Japanese',
    'thai_restaurant': 'Thai',
    'indian_restaurant': 'Indian',
    'pizza_restaurant': 'Pizza',
    'seafood_restaurant': 'Seafood',
    'vegetarian_restaurant': 'Vegetarian',
    'fast_food_restaurant': 'Fast Food',
    'sandwich_shop': 'Sandwiches',
}


def map_price_level(label: Optional[str]) -> Optional[int]:
    """Google price label -> tier 0-4, or None when unrecognised."""
    if not label:
        return None
    return PRICE_LEVEL_MAP.get(label.strip().upper())


def map_cuisine(primary_type: Optional[str]) -> Optional[str]:
    if not primary_type:
        return None
    return CUISINE_MAP.get(primary_type, primary_type.replace('_', ' ').title())


class PlacesService:
    """Service for Google Places API interactions."""

    # Google Places API endpoints
    AUTOCOMPLETE_URL = "https://places.googleapis.com/v1/places:autocomplete"
    DETAILS_URL = "https://places.googleapis.com/v1/places"
    TIMEOUT_SECONDS = 10

    @property
    def api_key(self) -> Optional[str]:
        return current_app.config.get('GOOGLE_PLACES_API_KEY') or os.environ.get('GOOGLE_PLACES_API_KEY')

    def is_configured(self) -> bool:
        """Check if the API key is configured."""
        return bool(self.api_key)

    def search_places(self, query: str) -> dict:
        """
        Search for restaurants using autocomplete.

        Args:
            query: Search text (e.g., "thai noodles")

        Returns:
            dict with 'success', 'places' (list), and 'error' (if failed)
        """
        api_key = self.api_key
        if not api_key:
            return {
                'success': False,
                'places': [],
                'error': 'Google Places API key not configured'
            }

        query = (query or '').strip()
        if len(query) < 2:
            return {
                'success': True,
                'places': [],
                'error': None
            }

        try:
            headers = {
                'Content-Type': 'application/json',
                'X-Goog-Api-Key': api_key,
            }
            body = {
                'input': query,
                'includedPrimaryTypes': ['restaurant', 'cafe', 'bar', 'meal_takeaway', 'meal_delivery'],
                'languageCode': 'en',
            }

            response = requests.post(
                self.AUTOCOMPLETE_URL,
                headers=headers,
                json=body,
                timeout=self.TIMEOUT_SECONDS
            )

            if response.status_code != 200:
                current_app.logger.error(f"Places API error: {response.status_code} - {response.text}")
                return {
                    'success': False,
                    'places': [],
                    'error': f'API error: {response.status_code}'
                }

            places = []
            for suggestion in response.json().get('suggestions', []):
                prediction = suggestion.get('placePrediction', {})
                if prediction:
                    structured = prediction.get('structuredFormat', {})
                    places.append({
                        'place_id': prediction.get('placeId'),
                        'name': structured.get('mainText', {}).get('text', ''),
                        'address': structured.get('secondaryText', {}).get('text', ''),
                        'description': prediction.get('text', {}).get('text', ''),
                    })

            return {
                'success': True,
                'places': places,
                'error': None
            }

        except requests.exceptions.Timeout:
            current_app.logger.error("Places API timeout")
            return {
                'success': False,
                'places': [],
                'error': 'Request timed out'
            }
        except requests.exceptions.RequestException as e:
            current_app.logger.error(f"Places API exception: {e}")
            return {
                'success': False,
                'places': [],
                'error': str(e)
            }

    def get_place_details(self, place_id: str) -> dict:
        """
        Resolve a place to its canonical restaurant identity.

        Args:
            place_id: Google Place ID

        Returns:
            dict with 'success', 'place' (dict), and 'error' (if failed)
        """
        api_key = self.api_key
        if not api_key:
            return {
                'success': False,
                'place': None,
                'error': 'Google Places API key not configured'
            }

        if not place_id:
            return {
                'success': False,
                'place': None,
                'error': 'Place ID required'
            }

        try:
            headers = {
                'Content-Type': 'application/json',
                'X-Goog-Api-Key': api_key,
                'X-Goog-FieldMask': 'id,displayName,formattedAddress,priceLevel,primaryType'
            }

            response = requests.get(
                f"{self.DETAILS_URL}/{place_id}",
                headers=headers,
                timeout=self.TIMEOUT_SECONDS
            )

            if response.status_code != 200:
                current_app.logger.error(f"Places Details API error: {response.status_code} - {response.text}")
                return {
                    'success': False,
                    'place': None,
                    'error': f'API error: {response.status_code}'
                }

            data = response.json()
            place = {
                'place_id': data.get('id'),
                'name': data.get('displayName', {}).get('text', ''),
                'address': data.get('formattedAddress') or None,
                'price_level': map_price_level(data.get('priceLevel')),
                'cuisine_type': map_cuisine(data.get('primaryType')),
            }

            return {
                'success': True,
                'place': place,
                'error': None
            }

        except requests.exceptions.Timeout:
            current_app.logger.error("Places Details API timeout")
            return {
                'success': False,
                'place': None,
                'error': 'Request timed out'
            }
        except requests.exceptions.RequestException as e:
            current_app.logger.error(f"Places Details API exception: {e}")
            return {
                'success': False,
                'place': None,
                'error': str(e)
            }


# Singleton instance
places_service = PlacesService()
