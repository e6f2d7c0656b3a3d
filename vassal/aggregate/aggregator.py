"""Reduce a worker snapshot into the fixed aggregate metric map.

Usage:
    from vassal.aggregate import aggregate

    metrics = aggregate(workers)
    metrics["busy"], metrics["avg_rt"]
"""

from collections.abc import Iterable

from vassal.messages.protocol import (
    METRIC_KEYS,
    TRACKED_STATUSES,
    AggregateMetrics,
    WorkerRecord,
)


def aggregate(workers: Iterable[WorkerRecord]) -> AggregateMetrics:
    """Fold worker records into state counts, totals and mean request time.

    Only the four tracked statuses are counted as states. A worker in any
    other state is still running, so its counters go into the totals.

    Totals are kept as integers until the end, which keeps the result
    exact and independent of the order workers were reported in.

    Args:
        workers: Records from a single snapshot.

    Returns:
        Mapping with every key in METRIC_KEYS. avg_rt is the unweighted
        mean of per-worker avg_rt, or 0.0 when there are no workers.
    """
    totals: dict[str, int] = dict.fromkeys(METRIC_KEYS, 0)
    worker_count = 0

    for worker in workers:
        worker_count += 1

        if worker.status in TRACKED_STATUSES:
            totals[worker.status] += 1

        totals["requests"] += worker.requests
        totals["rss"] += worker.rss
        totals["vsz"] += worker.vsz
        totals["tx"] += worker.tx
        totals["avg_rt"] += worker.avg_request_time
        totals["harakiri_count"] += worker.harakiri_count
        totals["respawn_count"] += worker.respawn_count

    metrics: AggregateMetrics = {key: float(value) for key, value in totals.items()}

    if worker_count > 0:
        metrics["avg_rt"] = totals["avg_rt"] / worker_count

    return metrics
