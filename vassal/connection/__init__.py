"""Stats endpoint addressing and transport."""

from vassal.connection.endpoint import (
    Endpoint,
    HttpEndpoint,
    UnixSocketEndpoint,
    open_stream,
    parse_endpoint,
)
from vassal.connection.types import ByteStream, Scheme

__all__ = [
    "ByteStream",
    "Endpoint",
    "HttpEndpoint",
    "Scheme",
    "UnixSocketEndpoint",
    "open_stream",
    "parse_endpoint",
]
