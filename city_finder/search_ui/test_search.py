import asyncio

from city_finder.models.city import AutocompleteSuggestion, Country, ResolveResult
from city_finder.search_ui.client import SearchRequestError
from city_finder.search_ui.search import (
    SEARCH_FAILED_MESSAGE,
    CitySearch,
    SearchStatus,
)

PARIS = ResolveResult(city="Paris", country=Country(name="France", code="FR"))
LONDON = AutocompleteSuggestion(city="London", country="UK", description="London, UK")


class FakeClient:
    def __init__(self, suggestions=(), results=None, delays=None):
        self.suggestions = list(suggestions)
        self.results = results or {}
        self.delays = delays or {}
        self.autocomplete_calls = []
        self.resolve_calls = []

    async def autocomplete(self, query):
        self.autocomplete_calls.append(query)
        if isinstance(self.suggestions, Exception):
            raise self.suggestions
        return self.suggestions

    async def resolve(self, city):
        self.resolve_calls.append(city)
        await asyncio.sleep(self.delays.get(city, 0))
        result = self.results.get(city)
        if result is None:
            raise SearchRequestError(f'No results found for "{city}"')
        return result


def run(coro):
    return asyncio.run(coro)


def test_debounce_only_fires_latest_query():
    client = FakeClient(suggestions=[LONDON])
    search = CitySearch(client, debounce_s=0.01)

    async def scenario():
        search.set_query("Lo")
        search.set_query("Lon")
        search.set_query("Lond")
        await search.wait_for_autocomplete()

    run(scenario())
    assert client.autocomplete_calls == ["Lond"]
    assert search.suggestions == [LONDON]
    assert search.autocomplete_open is True


def test_short_query_clears_suggestions():
    client = FakeClient(suggestions=[LONDON])
    search = CitySearch(client, debounce_s=0.01)

    async def scenario():
        search.set_query("Lon")
        await search.wait_for_autocomplete()
        search.set_query("L")
        await search.wait_for_autocomplete()

    run(scenario())
    assert client.autocomplete_calls == ["Lon"]
    assert search.suggestions == []
    assert search.autocomplete_open is False


def test_empty_suggestions_keep_dropdown_closed():
    search = CitySearch(FakeClient(), debounce_s=0.01)

    async def scenario():
        search.set_query("Qqq")
        await search.wait_for_autocomplete()

    run(scenario())
    assert search.autocomplete_open is False


def test_autocomplete_failure_is_swallowed():
    client = FakeClient()
    client.suggestions = RuntimeError("network down")
    search = CitySearch(client, debounce_s=0.01)

    async def scenario():
        search.set_query("Lon")
        await search.wait_for_autocomplete()

    run(scenario())
    assert search.suggestions == []
    assert search.notifications == []
    assert search.status is SearchStatus.idle


def test_submit_short_query_is_rejected_locally():
    client = FakeClient(results={"Paris": PARIS})
    search = CitySearch(client)
    search.query = " P "

    run(search.submit())
    assert client.resolve_calls == []
    assert search.status is SearchStatus.idle
    assert search.notifications[-1].title == "Invalid input"
    assert search.notifications[-1].description == "Please enter at least 2 characters"


def test_submit_success():
    client = FakeClient(results={"Paris": PARIS})
    search = CitySearch(client)
    search.query = "  Paris "
    search.autocomplete_open = True

    run(search.submit())
    assert client.resolve_calls == ["Paris"]
    assert search.status is SearchStatus.success
    assert search.result == PARIS
    assert search.error is None
    assert search.autocomplete_open is False
    assert search.notifications[-1].title == "City found!"
    assert search.notifications[-1].description == "Paris, France"


def test_submit_failure():
    search = CitySearch(FakeClient())
    search.query = "xyzzynotaplace"

    run(search.submit())
    assert search.status is SearchStatus.error
    assert search.error == SEARCH_FAILED_MESSAGE
    assert search.notifications[-1].title == "Search failed"
    assert search.notifications[-1].variant == "destructive"


def test_loading_disables_search():
    client = FakeClient(results={"Paris": PARIS}, delays={"Paris": 0.05})
    search = CitySearch(client)
    search.query = "Paris"
    observed = []

    async def scenario():
        task = asyncio.create_task(search.submit())
        await asyncio.sleep(0.01)
        observed.append((search.status, search.can_search))
        await task

    run(scenario())
    assert observed == [(SearchStatus.loading, False)]
    assert search.can_search is True


def test_blank_query_disables_search():
    search = CitySearch(FakeClient())
    search.query = "   "
    assert search.can_search is False


def test_enter_key_submits():
    client = FakeClient(results={"Paris": PARIS})
    search = CitySearch(client)
    search.query = "Paris"

    run(search.key_down("Enter"))
    assert client.resolve_calls == ["Paris"]


def test_escape_closes_dropdown_only():
    search = CitySearch(FakeClient())
    search.result = PARIS
    search.status = SearchStatus.success
    search.suggestions = [LONDON]
    search.autocomplete_open = True

    run(search.key_down("Escape"))
    assert search.autocomplete_open is False
    assert search.result == PARIS
    assert search.status is SearchStatus.success


def test_click_outside_closes_dropdown():
    search = CitySearch(FakeClient())
    search.suggestions = [LONDON]
    search.autocomplete_open = True
    search.click_outside()
    assert search.autocomplete_open is False
    assert search.suggestions == [LONDON]


def test_focus_reopens_dropdown_with_suggestions():
    search = CitySearch(FakeClient())
    search.focus()
    assert search.autocomplete_open is False
    search.suggestions = [LONDON]
    search.focus()
    assert search.autocomplete_open is True


def test_select_suggestion_resolves_city_field():
    london = ResolveResult(city="London", country=Country(name="United Kingdom", code="GB"))
    client = FakeClient(results={"London": london})
    search = CitySearch(client, debounce_s=0.01)
    search.suggestions = [LONDON]
    search.autocomplete_open = True

    run(search.select_suggestion(LONDON))
    assert search.query == "London, UK"
    assert client.resolve_calls == ["London"]
    assert client.autocomplete_calls == []
    assert search.autocomplete_open is False
    assert search.result == london


def test_clear_resets_state():
    search = CitySearch(FakeClient())
    search.query = "Paris"
    search.result = PARIS
    search.error = SEARCH_FAILED_MESSAGE
    search.status = SearchStatus.error

    search.clear()
    assert search.query == ""
    assert search.result is None
    assert search.error is None
    assert search.status is SearchStatus.idle
    assert search.input_focused is True


def test_stale_resolve_response_is_discarded():
    springfield = ResolveResult(
        city="Springfield", country=Country(name="United States", code="US")
    )
    client = FakeClient(
        results={"Springfield": springfield, "Paris": PARIS},
        delays={"Springfield": 0.05},
    )
    search = CitySearch(client)

    async def scenario():
        slow = asyncio.create_task(search.submit("Springfield"))
        await asyncio.sleep(0.01)
        await search.submit("Paris")
        await slow

    run(scenario())
    assert search.result == PARIS
    assert search.status is SearchStatus.success
    assert [toast.description for toast in search.notifications] == ["Paris, France"]


def test_clear_discards_in_flight_resolve():
    client = FakeClient(results={"Paris": PARIS}, delays={"Paris": 0.05})
    search = CitySearch(client)

    async def scenario():
        pending = asyncio.create_task(search.submit("Paris"))
        await asyncio.sleep(0.01)
        search.clear()
        await pending

    run(scenario())
    assert search.result is None
    assert search.status is SearchStatus.idle


class BrokenClient:
    async def autocomplete(self, query):
        return []

    async def resolve(self, city):
        raise RuntimeError("unexpected payload")


def test_unexpected_resolve_error_ends_in_error_state():
    search = CitySearch(BrokenClient())
    search.query = "Paris"

    run(search.submit())
    assert search.status is SearchStatus.error
    assert search.error == SEARCH_FAILED_MESSAGE
    assert search.can_search is True
    assert search.notifications[-1].title == "Search failed"


def test_cancelled_resolve_leaves_loading_state():
    client = FakeClient(results={"Paris": PARIS}, delays={"Paris": 0.05})
    search = CitySearch(client)
    search.query = "Paris"

    async def scenario():
        task = asyncio.create_task(search.submit())
        await asyncio.sleep(0.01)
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    run(scenario())
    assert search.status is SearchStatus.idle
    assert search.can_search is True


class SlowAutocompleteClient:
    def __init__(self, suggestions, delays):
        self.suggestions = suggestions
        self.delays = delays
        self.autocomplete_calls = []

    async def autocomplete(self, query):
        self.autocomplete_calls.append(query)
        await asyncio.sleep(self.delays.get(query, 0))
        return self.suggestions[query]

    async def resolve(self, city):
        raise SearchRequestError("not used")


def test_new_keystroke_cancels_in_flight_autocomplete():
    paris = AutocompleteSuggestion(city="Paris", country="France", description="Paris, France")
    client = SlowAutocompleteClient(
        suggestions={"Lon": [LONDON], "Par": [paris]}, delays={"Lon": 0.05}
    )
    search = CitySearch(client, debounce_s=0.01)

    async def scenario():
        search.set_query("Lon")
        await asyncio.sleep(0.03)
        search.set_query("Par")
        await search.wait_for_autocomplete()
        await asyncio.sleep(0.06)

    run(scenario())
    assert client.autocomplete_calls == ["Lon", "Par"]
    assert search.suggestions == [paris]
