"""Google geocoding and place autocomplete client."""

import os
from typing import Optional

import httpx
from prometheus_client import Counter

from city_finder.errors import ConfigurationError, UpstreamError
from city_finder.logging_config import logger
from city_finder.models.city import CityRecord, Country

GEOCODE_API_URL = os.getenv(
    "GEOCODE_API_URL", "https://maps.googleapis.com/maps/api/geocode/json"
)
PLACES_AUTOCOMPLETE_API_URL = os.getenv(
    "PLACES_AUTOCOMPLETE_API_URL",
    "https://maps.googleapis.com/maps/api/place/autocomplete/json",
)
TIMEOUT_S = float(os.getenv("GEOCODING_TIMEOUT_S", "5"))

# Priority order for the component that names the city.
CITY_COMPONENT_TYPES = (
    "locality",
    "postal_town",
    "administrative_area_level_2",
    "administrative_area_level_1",
)

PROVIDER_REQUESTS = Counter(
    "geocoding_provider_requests_total",
    "Outbound geocoding provider requests",
    ["endpoint", "outcome"],
)


def get_api_key() -> str:
    """Read the provider credential from the environment.

    Returns:
        The Google Maps API key.

    Raises:
        ConfigurationError: If GOOGLE_MAPS_API_KEY is unset or blank.
    """
    api_key = (os.getenv("GOOGLE_MAPS_API_KEY") or "").strip()
    if not api_key:
        logger.error("GOOGLE_MAPS_API_KEY_MISSING")
        raise ConfigurationError("API configuration error")
    return api_key


def _get_payload(
    *,
    url: str,
    params: dict,
    endpoint: str,
    log_context: dict,
    collection: str,
) -> list:
    """Execute one provider GET and return the requested result collection.

    Args:
        url: The provider URL to call.
        params: Query parameters, including the API key.
        endpoint: Short endpoint name used for logs and metrics.
        log_context: Extra log fields for all events.
        collection: Payload key holding the result list.

    Returns:
        The result list when the provider status is OK, otherwise an empty list.

    Raises:
        UpstreamError: When the request fails or the payload is malformed.
    """
    event_prefix = endpoint.upper()
    try:
        response = httpx.get(url, params=params, timeout=TIMEOUT_S)
        logger.info(
            f"{event_prefix}_RESPONSE", **log_context, status=response.status_code
        )
        response.raise_for_status()
        data = response.json()
    except httpx.HTTPStatusError as exc:
        logger.error(
            f"{event_prefix}_BAD_STATUS",
            **log_context,
            status=exc.response.status_code,
        )
        PROVIDER_REQUESTS.labels(endpoint=endpoint, outcome="error").inc()
        raise UpstreamError(f"{endpoint} request failed") from exc
    except httpx.RequestError as exc:
        logger.error(f"{event_prefix}_REQUEST_FAILED", **log_context, error=str(exc))
        PROVIDER_REQUESTS.labels(endpoint=endpoint, outcome="error").inc()
        raise UpstreamError(f"{endpoint} request failed") from exc
    except ValueError as exc:
        logger.error(f"{event_prefix}_BAD_PAYLOAD", **log_context, error=str(exc))
        PROVIDER_REQUESTS.labels(endpoint=endpoint, outcome="error").inc()
        raise UpstreamError(f"{endpoint} returned invalid JSON") from exc

    if not isinstance(data, dict):
        logger.error(f"{event_prefix}_BAD_PAYLOAD", **log_context)
        PROVIDER_REQUESTS.labels(endpoint=endpoint, outcome="error").inc()
        raise UpstreamError(f"{endpoint} returned an unexpected payload")

    status = data.get("status")
    if status != "OK":
        if status != "ZERO_RESULTS":
            logger.warning(
                f"{event_prefix}_PROVIDER_STATUS",
                **log_context,
                provider_status=status,
                provider_message=data.get("error_message"),
            )
        PROVIDER_REQUESTS.labels(endpoint=endpoint, outcome="empty").inc()
        return []

    results = data.get(collection) or []
    if not isinstance(results, list):
        logger.error(f"{event_prefix}_BAD_PAYLOAD", **log_context)
        PROVIDER_REQUESTS.labels(endpoint=endpoint, outcome="error").inc()
        raise UpstreamError(f"{endpoint} returned an unexpected payload")
    PROVIDER_REQUESTS.labels(
        endpoint=endpoint, outcome="ok" if results else "empty"
    ).inc()
    return results


def geocode(address: str, api_key: str, locality_only: bool = True) -> list:
    """Look up an address with the geocoding API.

    Args:
        address: Free-form text to geocode.
        api_key: Provider credential.
        locality_only: Restrict matches to locality-type places.

    Returns:
        Raw geocode results, possibly empty.
    """
    params = {"address": address, "key": api_key}
    if locality_only:
        params["types"] = "locality"
    return _get_payload(
        url=GEOCODE_API_URL,
        params=params,
        endpoint="geocode",
        log_context={"city": address, "locality_only": locality_only},
        collection="results",
    )


def autocomplete(text: str, api_key: str) -> list:
    """Fetch city-type place predictions for partial input.

    Args:
        text: Partial city name typed by the user.
        api_key: Provider credential.

    Returns:
        Raw prediction objects, possibly empty.
    """
    return _get_payload(
        url=PLACES_AUTOCOMPLETE_API_URL,
        params={"input": text, "types": "(cities)", "key": api_key},
        endpoint="autocomplete",
        log_context={"query": text},
        collection="predictions",
    )


def parse_city_record(result: dict) -> Optional[CityRecord]:
    """Extract a city/country pair from one geocode result.

    Args:
        result: A single entry of the geocode ``results`` list.

    Returns:
        A CityRecord, or None if the result lacks a city or country component.

    Raises:
        UpstreamError: If the result does not follow the provider schema.
    """
    try:
        components = result["address_components"]
        city_component = next(
            (
                comp
                for component_type in CITY_COMPONENT_TYPES
                for comp in components
                if component_type in comp["types"]
            ),
            None,
        )
        country_component = next(
            (comp for comp in components if "country" in comp["types"]), None
        )
        if not city_component or not country_component:
            return None
        city_name = city_component["long_name"]
        if not city_name:
            return None
        return CityRecord(
            city=city_name,
            country=Country(
                name=country_component["long_name"],
                code=country_component["short_name"],
            ),
        )
    except (TypeError, KeyError, ValueError) as exc:
        logger.error("GEOCODE_BAD_RESULT", error=str(exc))
        raise UpstreamError("geocode returned an unexpected payload") from exc
