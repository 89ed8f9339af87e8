"""Resolve free-form city text to a normalized city/country pair."""

from city_finder.errors import NotFound, ValidationError
from city_finder.geocoding.provider import geocode, get_api_key, parse_city_record
from city_finder.logging_config import logger
from city_finder.models.city import ResolveResult

MIN_QUERY_LENGTH = 2
MAX_CANDIDATES = 5


def resolve_city(city: str) -> ResolveResult:
    """Resolve a city name into a primary match and its alternatives.

    The provider is first queried for locality-type places only. When that
    yields nothing the same text is looked up again without a type filter.

    Args:
        city: Raw city text supplied by the user.

    Returns:
        A ResolveResult for the first usable candidate. ``alternatives`` is
        only set when more than one candidate survived extraction.

    Raises:
        ValidationError: If the stripped input is shorter than two characters.
        ConfigurationError: If the provider credential is missing.
        NotFound: If the provider has no usable match.
        UpstreamError: If a provider call fails.
    """
    if not city or len(city.strip()) < MIN_QUERY_LENGTH:
        raise ValidationError(
            "City parameter is required and must be at least 2 characters"
        )

    api_key = get_api_key()
    results = geocode(city, api_key, locality_only=True)
    if not results:
        logger.info("RESOLVE_LOCALITY_FALLBACK", city=city)
        results = geocode(city, api_key, locality_only=False)
    if not results:
        raise NotFound(f'No results found for "{city}"')

    candidates = []
    for result in results[:MAX_CANDIDATES]:
        if record := parse_city_record(result):
            candidates.append(record)

    if not candidates:
        raise NotFound(f'No valid city found for "{city}"')

    primary, *alternatives = candidates
    logger.info(
        "RESOLVE_CITY_MATCH",
        city=city,
        match=primary.city,
        country_code=primary.country.code,
        alternatives=len(alternatives),
    )
    return ResolveResult(
        city=primary.city,
        country=primary.country,
        alternatives=alternatives or None,
    )
