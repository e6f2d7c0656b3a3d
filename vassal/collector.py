import asyncio
from typing import Mapping

import structlog

from vassal.aggregate import aggregate
from vassal.connection import open_stream, parse_endpoint
from vassal.core.config import DEFAULT_METRIC_KEY_PREFIX
from vassal.core.logging import Logger
from vassal.exceptions import CollectorError, EndpointConnectionError
from vassal.messages.parser import SnapshotDecoder
from vassal.messages.protocol import AggregateMetrics
from vassal.metrics.graphs import GraphDefinition, graph_definition

logger: Logger = structlog.getLogger(__name__)


class VassalCollector:
    """
    Collects aggregate worker metrics from one uWSGI stats endpoint.

    Each call to fetch_metrics() is an independent pass:
        1. Resolve the address into a transport
        2. Open the socket or issue the HTTP request
        3. Stream-decode the worker snapshot
        4. Reduce it to the aggregate metric map

    Nothing is kept between passes, the caller owns the sampling cadence.
    """

    __slots__ = ("_address", "_prefix", "_timeout", "_decoder")

    def __init__(
        self,
        address: str,
        prefix: str = DEFAULT_METRIC_KEY_PREFIX,
        timeout: float | None = None,
    ) -> None:
        """Initialise collector

        Args:
            address: Stats endpoint, `unix://<path>` or `http://<url>`
            prefix: Metric key prefix, blank falls back to the default
            timeout: Deadline in seconds for a whole pass (default = None,
                rely on transport defaults)
        """
        if timeout is not None and timeout <= 0:
            raise ValueError("timeout must be positive")

        self._address = address
        self._prefix = prefix.strip() or DEFAULT_METRIC_KEY_PREFIX
        self._timeout = timeout
        self._decoder = SnapshotDecoder()

    @property
    def address(self) -> str:
        return self._address

    @property
    def metric_key_prefix(self) -> str:
        return self._prefix

    def graph_definition(self) -> Mapping[str, GraphDefinition]:
        """Graph schema for this collector's prefix."""
        return graph_definition(self._prefix)

    async def fetch_metrics(self) -> AggregateMetrics:
        """
        Run one collection pass.

        Raises:
            ConfigurationError: address has an unsupported scheme
            EndpointConnectionError: endpoint unreachable, HTTP error or
                pass deadline exceeded
            DecodeError: payload malformed or mistyped
        """
        try:
            if self._timeout is None:
                metrics = await self._collect()
            else:
                async with asyncio.timeout(self._timeout):
                    metrics = await self._collect()

        except TimeoutError as e:
            logger.error(f"Stats pass on {self._address} exceeded {self._timeout}s")
            raise EndpointConnectionError(
                self._address, f"no complete snapshot within {self._timeout}s"
            ) from e

        except CollectorError as e:
            logger.error(f"Stats pass on {self._address} failed: {e}")
            raise

        logger.info(
            f"Collected stats from {self._address}: "
            f"{metrics['busy']:.0f} busy, {metrics['idle']:.0f} idle, "
            f"avg_rt {metrics['avg_rt']:.1f}us"
        )
        return metrics

    async def _collect(self) -> AggregateMetrics:
        endpoint = parse_endpoint(self._address)

        async with open_stream(endpoint) as stream:
            workers = await self._decoder.decode(stream)

        return aggregate(workers)
