"""
Exception hierarchy for the host finder pipeline.
"""


class HostFinderError(Exception):
    """Base class for all host finder errors."""


class TransportError(HostFinderError):
    """Request still failing after the transport's retry budget."""

    def __init__(self, url: str, message: str):
        super().__init__(f"{message} ({url})")
        self.url = url


class CredentialError(HostFinderError):
    """Access key could not be obtained from the landing page."""


class LocationNotFoundError(HostFinderError):
    """Geocoder returned no candidate with polygon geometry."""


class SearchRequestError(HostFinderError):
    """A single (cell, band) search query failed."""


class HostFetchError(HostFinderError):
    """A single host profile could not be fetched or parsed."""


class OutputError(HostFinderError):
    """Final report could not be written."""
