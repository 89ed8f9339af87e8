"""Exception taxonomy for city lookups."""


class CityFinderError(Exception):
    """Base exception for city lookup failures."""
    pass


class ValidationError(CityFinderError):
    """Raised when the requested city text is too short to look up."""
    pass


class NotFound(CityFinderError):
    """Raised when the provider has no usable match for the query."""
    pass


class ConfigurationError(CityFinderError):
    """Raised when the provider credential is not configured."""
    pass


class UpstreamError(CityFinderError):
    """Raised when the geocoding provider call fails or returns bad data."""
    pass
