"""Stats endpoint resolution and transport.

An address is either `unix://<path>` for the stats socket of a vassal or
`http://<url>` when the stats server runs with `--stats-http`. Both
variants open to the same ByteStream so nothing downstream branches on
transport.
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from importlib.metadata import PackageNotFoundError, version
from typing import assert_never

import aiohttp
import structlog

from vassal.connection.types import ByteStream, Scheme
from vassal.core.logging import Logger
from vassal.exceptions import ConfigurationError, EndpointConnectionError

logger: Logger = structlog.getLogger(__name__)

PACKAGE_NAME = "uwsgi-vassal-metrics"


def _user_agent() -> str:
    try:
        return f"{PACKAGE_NAME}/{version(PACKAGE_NAME)}"
    except PackageNotFoundError:
        return PACKAGE_NAME


USER_AGENT = _user_agent()


@dataclass(slots=True, frozen=True)
class UnixSocketEndpoint:
    """Local stream socket exposed by `--stats /path/to/socket`"""

    address: str
    path: str


@dataclass(slots=True, frozen=True)
class HttpEndpoint:
    """Stats server reachable over plain HTTP"""

    address: str
    url: str


Endpoint = UnixSocketEndpoint | HttpEndpoint


def parse_endpoint(address: str) -> Endpoint:
    """
    Resolve an address string into a transport variant.

    No I/O happens here, so a bad address fails before any connection
    attempt.

    Raises:
        ConfigurationError: unsupported scheme or empty socket path
    """
    if address.startswith(Scheme.UNIX):
        path = address.removeprefix(Scheme.UNIX)
        if not path:
            raise ConfigurationError(f"No socket path given in {address!r}")
        return UnixSocketEndpoint(address=address, path=path)

    if address.startswith(Scheme.HTTP):
        if address == Scheme.HTTP:
            raise ConfigurationError(f"No host given in {address!r}")
        return HttpEndpoint(address=address, url=address)

    raise ConfigurationError(
        f"{address!r} is neither an http endpoint nor a unix domain socket, "
        f"expected a '{Scheme.HTTP}' or '{Scheme.UNIX}' prefix"
    )


@asynccontextmanager
async def open_stream(endpoint: Endpoint) -> AsyncIterator[ByteStream]:
    """
    Open the endpoint and yield a readable byte stream.

    The underlying socket or HTTP response is released when the block
    exits, whether it completes, raises or is cancelled.

    Raises:
        EndpointConnectionError: dial, request or mid-read transport failure
    """
    match endpoint:
        case UnixSocketEndpoint():
            async with _open_unix(endpoint) as stream:
                yield stream
        case HttpEndpoint():
            async with _open_http(endpoint) as stream:
                yield stream
        case _:
            assert_never(endpoint)


@asynccontextmanager
async def _open_unix(endpoint: UnixSocketEndpoint) -> AsyncIterator[ByteStream]:
    try:
        reader, writer = await asyncio.open_unix_connection(endpoint.path)
    except OSError as e:
        raise EndpointConnectionError(endpoint.address, str(e)) from e

    logger.debug(f"Connected to stats socket {endpoint.path}")

    try:
        yield reader
    except OSError as e:
        raise EndpointConnectionError(endpoint.address, str(e)) from e
    finally:
        writer.close()
        try:
            await writer.wait_closed()
        except OSError:
            # Peer already hung up, the socket is closed either way
            pass


@asynccontextmanager
async def _open_http(endpoint: HttpEndpoint) -> AsyncIterator[ByteStream]:
    try:
        async with aiohttp.ClientSession(
            headers={"User-Agent": USER_AGENT}
        ) as session:
            async with session.get(endpoint.url) as response:
                response.raise_for_status()
                logger.debug(
                    f"Stats request to {endpoint.url} returned {response.status}"
                )
                yield response.content

    except aiohttp.ClientResponseError as e:
        raise EndpointConnectionError(
            endpoint.address, f"HTTP {e.status} {e.message}"
        ) from e

    except aiohttp.ClientError as e:
        raise EndpointConnectionError(endpoint.address, str(e)) from e

    except TimeoutError as e:
        raise EndpointConnectionError(endpoint.address, "request timed out") from e
