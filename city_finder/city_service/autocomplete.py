"""Best-effort city suggestions for partial input."""

from typing import List

from city_finder.errors import CityFinderError
from city_finder.geocoding.provider import autocomplete, get_api_key
from city_finder.logging_config import logger
from city_finder.models.city import AutocompleteSuggestion

MIN_QUERY_LENGTH = 2
MAX_SUGGESTIONS = 5


def suggestion_from_prediction(prediction: dict):
    """Build a suggestion from one provider prediction.

    The country is taken as the last comma-separated segment of the
    description, which is textual rather than structured data.

    Returns:
        An AutocompleteSuggestion, or None if the description does not split
        into at least a city and a country.
    """
    description = prediction.get("description") or ""
    parts = description.split(", ")
    if len(parts) < 2:
        return None
    structured = prediction.get("structured_formatting") or {}
    return AutocompleteSuggestion(
        city=structured.get("main_text") or parts[0],
        country=parts[-1],
        description=description,
    )


def autocomplete_cities(query: str) -> List[AutocompleteSuggestion]:
    """Return up to five city suggestions for the typed text.

    Never raises: a missing credential or any provider failure yields an empty
    list so typing is never interrupted.
    """
    if not query or len(query.strip()) < MIN_QUERY_LENGTH:
        return []

    try:
        predictions = autocomplete(query, get_api_key())
        suggestions = []
        for prediction in predictions[:MAX_SUGGESTIONS]:
            if suggestion := suggestion_from_prediction(prediction):
                suggestions.append(suggestion)
    except CityFinderError as exc:
        logger.warning("AUTOCOMPLETE_FAILED", query=query, error=str(exc))
        return []
    except Exception as exc:
        logger.exception("AUTOCOMPLETE_UNEXPECTED_ERROR", query=query, error=str(exc))
        return []
    return suggestions
