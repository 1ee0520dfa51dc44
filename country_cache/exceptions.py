"""
Exceptions raised by the country cache.

Each error kind maps to one HTTP outcome in ``country_cache.main``.
"""


class CountryCacheError(Exception):
    """Base exception for all country cache errors."""

    pass


class ConfigurationError(CountryCacheError):
    """Raised when a configuration value is missing or invalid."""

    pass


class SourceUnavailable(CountryCacheError):
    """
    Raised when an external data source cannot be used.

    Covers transport errors, timeouts, non-success responses and
    structurally malformed payloads. ``source`` is either
    ``"countries"`` or ``"rates"``.
    """

    def __init__(self, source: str, details: str):
        self.source = source
        self.details = details
        super().__init__(f"{source}: {details}")


class PersistenceFailure(CountryCacheError):
    """Raised when the refresh batch could not be committed."""

    pass


class NotFound(CountryCacheError):
    """Raised when a country lookup or delete targets an absent name."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Country not found: {name}")


class ValidationFailure(CountryCacheError):
    """Raised when a request parameter is missing or invalid."""

    def __init__(self, details: dict):
        self.details = details
        super().__init__(f"Validation failed: {details}")
