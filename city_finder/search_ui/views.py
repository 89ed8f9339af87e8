"""Presentation of the autocomplete dropdown and the resolve result."""

from typing import Callable, List, Optional

from pydantic import BaseModel

from city_finder.logging_config import logger
from city_finder.models.city import CityRecord, ResolveResult
from city_finder.search_ui.search import CitySearch

ALTERNATIVES_TITLE = "Multiple Locations Found"
ALTERNATIVES_BLURB = (
    "We found multiple cities with this name. Here are the alternatives:"
)


class DropdownItem(BaseModel):
    """One clickable row of the autocomplete dropdown."""

    title: str
    subtitle: str


class LocationRow(BaseModel):
    """A city line with the text copied by its copy button."""

    city: str
    country_name: str
    country_code: str
    copy_text: str


class ResultView(BaseModel):
    """Everything the result card displays."""

    title: str = "Location Found"
    city: str
    country_name: str
    country_code: str
    copy_city: str
    copy_country: str
    copy_full_location: str
    alternatives: List[LocationRow] = []


def dropdown_items(search: CitySearch) -> List[DropdownItem]:
    """Rows to show under the input; empty when the dropdown is hidden."""
    if not search.autocomplete_open or not search.suggestions:
        return []
    return [
        DropdownItem(title=suggestion.city, subtitle=suggestion.country)
        for suggestion in search.suggestions
    ]


def _location_row(record: CityRecord) -> LocationRow:
    return LocationRow(
        city=record.city,
        country_name=record.country.name,
        country_code=record.country.code,
        copy_text=record.full_location(),
    )


def result_view(result: Optional[ResolveResult]) -> Optional[ResultView]:
    """Build the result card, or None when there is nothing to show."""
    if result is None:
        return None
    return ResultView(
        city=result.city,
        country_name=result.country.name,
        country_code=result.country.code,
        copy_city=result.city,
        copy_country=f"{result.country.name} ({result.country.code})",
        copy_full_location=result.full_location(),
        alternatives=[_location_row(alt) for alt in result.alternatives or []],
    )


def render_text(search: CitySearch) -> str:
    """Render the whole search component as plain text lines."""
    lines = [f"> {search.query}" + (" ..." if search.is_loading else "")]
    for item in dropdown_items(search):
        lines.append(f"  - {item.title} ({item.subtitle})")
    if search.error:
        lines.append(f"! {search.error}")
    if view := result_view(search.result):
        lines.append(f"{view.title}: {view.city}, {view.country_name} [{view.country_code}]")
        if view.alternatives:
            lines.append(ALTERNATIVES_TITLE)
            lines.append(ALTERNATIVES_BLURB)
            for row in view.alternatives:
                lines.append(f"  * {row.city} {row.country_name} [{row.country_code}]")
    return "\n".join(lines)


async def select_dropdown_item(search: CitySearch, index: int):
    """Handle a click on the dropdown row at ``index``."""
    await search.select_suggestion(search.suggestions[index])


def copy_to_clipboard(
    search: CitySearch,
    text: str,
    field_name: str,
    write_clipboard: Callable[[str], None],
) -> bool:
    """Copy one of the result texts and report the outcome as a toast.

    Args:
        search: Component whose notifications receive the toast.
        text: Text to copy, e.g. ``ResultView.copy_full_location``.
        field_name: Label used in the confirmation, e.g. ``"City"``.
        write_clipboard: Callable writing text to the system clipboard.

    Returns:
        True if the text was copied.
    """
    try:
        write_clipboard(text)
    except Exception as exc:
        logger.warning("CLIPBOARD_WRITE_FAILED", field=field_name, error=str(exc))
        search.notify("Failed to copy", "Could not copy to clipboard", "destructive")
        return False
    search.notify("Copied!", f"{field_name} copied to clipboard")
    return True
