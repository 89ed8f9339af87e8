"""City, country and suggestion models exchanged with the browser."""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict


class Country(BaseModel):
    """Country name and ISO-3166 alpha-2 code."""

    model_config = ConfigDict(frozen=True)

    name: str
    code: str


class CityRecord(BaseModel):
    """A single normalized city/country pair."""

    model_config = ConfigDict(frozen=True)

    city: str
    country: Country

    def full_location(self) -> str:
        return f"{self.city}, {self.country.name} ({self.country.code})"


class ResolveResult(CityRecord):
    """Primary match plus any other cities sharing the queried name."""

    alternatives: Optional[List[CityRecord]] = None


class AutocompleteSuggestion(BaseModel):
    """Suggestion shown in the dropdown while the user types."""

    model_config = ConfigDict(frozen=True)

    city: str
    country: str
    description: str
