"""Health checks for the geocoding provider and its credential."""

import os

import httpx

from city_finder.geocoding.provider import GEOCODE_API_URL, TIMEOUT_S
from city_finder.logging_config import logger
from city_finder.models.health import ServiceStatus


def is_api_key_configured() -> ServiceStatus:
    """Check that the provider credential is present.

    Returns:
        ServiceStatus.available when GOOGLE_MAPS_API_KEY is set, else not_available.
    """
    if (os.getenv("GOOGLE_MAPS_API_KEY") or "").strip():
        return ServiceStatus.available
    logger.error("GOOGLE_MAPS_API_KEY UNAVAILABLE")
    return ServiceStatus.not_available


async def is_geocoding_api_available() -> bool:
    """Check the geocoding API for reachability.

    The request carries no credential; any JSON reply with a provider
    ``status`` field means the API is up.

    Returns:
        True if the API answers with a well-formed payload.
    """
    try:
        async with httpx.AsyncClient(timeout=TIMEOUT_S) as client:
            response = await client.get(GEOCODE_API_URL, params={"address": "London"})
            return response.status_code == 200 and "status" in response.json()
    except (httpx.HTTPError, ValueError) as exc:
        logger.error("GEOCODING_API UNAVAILABLE", error=str(exc))
        return False
