import asyncio
import sys

import structlog

from vassal.collector import VassalCollector
from vassal.core.config import settings
from vassal.core.logging import Logger
from vassal.core.logging import configure as configure_logging
from vassal.exceptions import CollectorError
from vassal.metrics import PrometheusRenderer, encode_graph_definition

logger: Logger = structlog.get_logger()


async def main() -> int:
    if settings.EMIT_GRAPHS:
        sys.stdout.buffer.write(encode_graph_definition(settings.METRIC_KEY_PREFIX))
        sys.stdout.buffer.write(b"\n")
        return 0

    collector = VassalCollector(
        address=settings.UWSGI_SOCKET,
        prefix=settings.METRIC_KEY_PREFIX,
        timeout=settings.PASS_TIMEOUT,
    )

    try:
        metrics = await collector.fetch_metrics()
    except CollectorError:
        await logger.aerror("Collection pass failed, no sample emitted")
        return 1

    renderer = PrometheusRenderer(collector.metric_key_prefix)
    sys.stdout.buffer.write(renderer.render(metrics))
    sys.stdout.flush()
    return 0


def run() -> None:
    configure_logging()
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
