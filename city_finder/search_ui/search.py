"""State machine behind the city search box.

The component owns the query text, the debounced autocomplete dropdown and
the outcome of the last resolve call. Handlers are driven by UI events
(typing, key presses, clicks) and must be called from a running event loop.

A new keystroke cancels the pending autocomplete task, including a request
already in flight. Every resolve call is tagged with a generation number and
its response is applied only if no newer call was started in the meantime,
so a slow earlier response never overwrites fresher state.
"""

import asyncio
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel

from city_finder.logging_config import logger
from city_finder.models.city import AutocompleteSuggestion, ResolveResult

DEBOUNCE_S = 0.3
MIN_QUERY_LENGTH = 2
SEARCH_FAILED_MESSAGE = "Failed to find city. Please try again."


class SearchStatus(str, Enum):
    idle = "idle"
    loading = "loading"
    success = "success"
    error = "error"


class Toast(BaseModel):
    """Transient notification shown to the user."""

    title: str
    description: str
    variant: str = "default"


class CitySearch:
    """Search box state: query, dropdown, and resolve outcome.

    Args:
        client: Object exposing async ``resolve(city)`` and
            ``autocomplete(query)``, usually a CityFinderClient.
        debounce_s: Quiet period after the last keystroke before suggestions
            are fetched.
    """

    def __init__(self, client, debounce_s: float = DEBOUNCE_S):
        self.client = client
        self.debounce_s = debounce_s
        self.query = ""
        self.status = SearchStatus.idle
        self.result: Optional[ResolveResult] = None
        self.error: Optional[str] = None
        self.suggestions: List[AutocompleteSuggestion] = []
        self.autocomplete_open = False
        self.input_focused = False
        self.notifications: List[Toast] = []
        self._debounce_task: Optional[asyncio.Task] = None
        self._resolve_generation = 0

    @property
    def is_loading(self) -> bool:
        return self.status is SearchStatus.loading

    @property
    def can_search(self) -> bool:
        """Whether the search button is enabled."""
        return not self.is_loading and bool(self.query.strip())

    def set_query(self, text: str):
        """Update the input text and restart the autocomplete debounce."""
        self.query = text
        self._cancel_debounce()
        if len(text) < MIN_QUERY_LENGTH:
            self.suggestions = []
            self.autocomplete_open = False
            return
        self._debounce_task = asyncio.get_running_loop().create_task(
            self._debounced_autocomplete(text)
        )

    async def wait_for_autocomplete(self):
        """Wait until the pending debounced autocomplete call, if any, finishes."""
        task = self._debounce_task
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                if not task.cancelled():
                    raise

    async def submit(self, term: Optional[str] = None):
        """Resolve ``term``, or the trimmed query when no term is given."""
        search_term = term or self.query.strip()
        if len(search_term) < MIN_QUERY_LENGTH:
            self.notify(
                "Invalid input", "Please enter at least 2 characters", "destructive"
            )
            return

        self._resolve_generation += 1
        generation = self._resolve_generation
        self.status = SearchStatus.loading
        self.error = None
        self.autocomplete_open = False

        try:
            result = await self.client.resolve(search_term)
        except asyncio.CancelledError:
            if generation == self._resolve_generation:
                self.status = SearchStatus.idle
            raise
        except Exception as exc:
            if generation != self._resolve_generation:
                logger.debug("STALE_RESOLVE_DISCARDED", city=search_term)
                return
            logger.info("SEARCH_FAILED", city=search_term, error=str(exc))
            self.status = SearchStatus.error
            self.error = SEARCH_FAILED_MESSAGE
            self.notify("Search failed", SEARCH_FAILED_MESSAGE, "destructive")
            return

        if generation != self._resolve_generation:
            logger.debug("STALE_RESOLVE_DISCARDED", city=search_term)
            return
        self.result = result
        self.status = SearchStatus.success
        self.notify("City found!", f"{result.city}, {result.country.name}")

    async def key_down(self, key: str):
        if key == "Enter":
            await self.submit()
        elif key == "Escape":
            self.close_autocomplete()

    async def select_suggestion(self, suggestion: AutocompleteSuggestion):
        """Fill the input with a suggestion and resolve its city."""
        self._cancel_debounce()
        self.autocomplete_open = False
        self.query = suggestion.description
        await self.submit(suggestion.city)

    def focus(self):
        self.input_focused = True
        self.autocomplete_open = bool(self.suggestions)

    def click_outside(self):
        self.close_autocomplete()

    def close_autocomplete(self):
        self.autocomplete_open = False

    def clear(self):
        """Reset the text and outcome, keeping focus on the input."""
        self._cancel_debounce()
        self._resolve_generation += 1
        self.query = ""
        self.result = None
        self.error = None
        self.status = SearchStatus.idle
        self.autocomplete_open = False
        self.input_focused = True

    async def _debounced_autocomplete(self, text: str):
        await asyncio.sleep(self.debounce_s)
        try:
            suggestions = await self.client.autocomplete(text)
        except Exception as exc:
            # Suggestions are best-effort; typing must never be interrupted.
            logger.warning("AUTOCOMPLETE_SUGGESTIONS_FAILED", query=text, error=str(exc))
            return
        self.suggestions = list(suggestions)
        self.autocomplete_open = bool(self.suggestions)

    def _cancel_debounce(self):
        if self._debounce_task is not None and not self._debounce_task.done():
            self._debounce_task.cancel()
        self._debounce_task = None

    def notify(self, title: str, description: str, variant: str = "default"):
        self.notifications.append(
            Toast(title=title, description=description, variant=variant)
        )
