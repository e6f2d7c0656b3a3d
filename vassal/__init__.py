"""Aggregate worker metrics from a uWSGI vassal's stats endpoint."""

from vassal.collector import VassalCollector
from vassal.exceptions import (
    CollectorError,
    ConfigurationError,
    DecodeError,
    EndpointConnectionError,
)

__all__ = [
    "VassalCollector",
    "CollectorError",
    "ConfigurationError",
    "DecodeError",
    "EndpointConnectionError",
]
