"""Custom exception hierarchy for archsearch."""

from typing import Any, Dict, Optional

from archsearch.core.enums import GeoErrorReason


class ArchsearchError(Exception):
    """Base exception for all archsearch errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class DataStoreError(ArchsearchError):
    """Data store query or transport failed."""

    pass


class InvalidFilterError(ArchsearchError):
    """Filter input could not be interpreted."""

    pass


class StorageUnavailableError(ArchsearchError):
    """Client-local storage could not be read or written."""

    pass


class GeolocationError(ArchsearchError):
    """The user's position could not be obtained."""

    MESSAGES = {
        GeoErrorReason.permission_denied: "Geolocation access blocked",
        GeoErrorReason.position_unavailable: "Location information unavailable",
        GeoErrorReason.timeout: "Geolocation request timed out. Please try again",
        GeoErrorReason.unsupported: "Geolocation is not supported in this environment",
    }

    def __init__(
        self,
        reason: GeoErrorReason,
        message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message or self.MESSAGES[reason], details)
        self.reason = reason
