"""Errors that abort a collection pass.

Every pass is all-or-nothing: one of these is raised and no partial
aggregate is handed back to the caller.
"""


class CollectorError(Exception):
    """Base class for collection pass failures."""


class ConfigurationError(CollectorError):
    """Endpoint address is unsupported or cannot be parsed."""


class EndpointConnectionError(CollectorError):
    """Dialing, requesting or reading from the stats endpoint failed."""

    def __init__(self, address: str, reason: str) -> None:
        super().__init__(f"{address}: {reason}")
        self.address = address
        self.reason = reason


class DecodeError(CollectorError):
    """Stats payload is malformed or a known field has the wrong type."""
