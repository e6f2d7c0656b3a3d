"""
Stats endpoint payload definitions using msgspec.

Key patterns:
- Every field carries an explicit default so that payloads from older or
  newer uWSGI releases still decode
- Unknown keys (pid, apps, exceptions, last_spawn, ...) are ignored,
  which is msgspec's default for Struct types
- Counters are unsigned: Meta(ge=0) rejects negative values
"""

from enum import StrEnum
from typing import Annotated, Final, TypeAlias

import msgspec

Count = Annotated[int, msgspec.Meta(ge=0)]


class WorkerStatus(StrEnum):
    """Worker states that are tracked as separate counters"""

    BUSY = "busy"
    IDLE = "idle"
    CHEAP = "cheap"
    PAUSE = "pause"


TRACKED_STATUSES: Final[frozenset[str]] = frozenset(
    status.value for status in WorkerStatus
)


class WorkerRecord(msgspec.Struct, frozen=True):
    """
    Single worker entry from the `workers` array

    avg_rt is the wire name, the attribute is the mean request time of the
    worker in microseconds.
    """

    requests: Count = 0
    status: str = ""
    rss: Count = 0
    vsz: Count = 0
    tx: Count = 0
    avg_request_time: Count = msgspec.field(default=0, name="avg_rt")
    harakiri_count: Count = 0
    respawn_count: Count = 0


Snapshot: TypeAlias = list[WorkerRecord]

# Metric name -> value for one collection pass
AggregateMetrics: TypeAlias = dict[str, float]

METRIC_KEYS: Final[tuple[str, ...]] = (
    "busy",
    "idle",
    "cheap",
    "pause",
    "requests",
    "rss",
    "vsz",
    "tx",
    "avg_rt",
    "harakiri_count",
    "respawn_count",
)
