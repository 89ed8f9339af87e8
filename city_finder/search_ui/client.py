"""Async client the search component uses to reach the lookup endpoints."""

from typing import List, Optional

import httpx

from city_finder.logging_config import logger
from city_finder.models.city import AutocompleteSuggestion, ResolveResult

MIN_QUERY_LENGTH = 2


class SearchRequestError(Exception):
    """Raised when a resolve request does not produce a result."""
    pass


class CityFinderClient:
    """Thin wrapper over the resolve-city and autocomplete-cities endpoints."""

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 10.0,
    ):
        self._client = httpx.AsyncClient(
            base_url=base_url, transport=transport, timeout=timeout
        )

    async def __aenter__(self) -> "CityFinderClient":
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()

    async def aclose(self):
        await self._client.aclose()

    async def resolve(self, city: str) -> ResolveResult:
        """Resolve a city name through the resolve-city endpoint.

        Args:
            city: City text to resolve.

        Returns:
            The parsed ResolveResult.

        Raises:
            SearchRequestError: On transport failure, error status, or a bad body.
        """
        try:
            response = await self._client.post("/resolve-city", json={"city": city})
            response.raise_for_status()
            return ResolveResult.model_validate(response.json())
        except httpx.HTTPStatusError as exc:
            message = _error_message(exc.response)
            logger.warning(
                "RESOLVE_REQUEST_FAILED",
                city=city,
                status=exc.response.status_code,
                error=message,
            )
            raise SearchRequestError(message) from exc
        except (httpx.RequestError, ValueError) as exc:
            logger.warning("RESOLVE_REQUEST_FAILED", city=city, error=str(exc))
            raise SearchRequestError("Failed to resolve city") from exc

    async def autocomplete(self, query: str) -> List[AutocompleteSuggestion]:
        """Fetch suggestions; any failure yields an empty list."""
        if len(query.strip()) < MIN_QUERY_LENGTH:
            return []
        try:
            response = await self._client.get("/autocomplete-cities", params={"q": query})
            response.raise_for_status()
            return [AutocompleteSuggestion.model_validate(item) for item in response.json()]
        except (httpx.HTTPError, ValueError, TypeError) as exc:
            logger.warning("AUTOCOMPLETE_REQUEST_FAILED", query=query, error=str(exc))
            return []


def _error_message(response: httpx.Response) -> str:
    try:
        return response.json()["error"]
    except (ValueError, KeyError, TypeError):
        return f"HTTP {response.status_code}"
