"""
Static graph descriptors for the aggregate metrics.

The schema depends only on the metric key prefix, never on snapshot
content, so it is built once per prefix and cached.
"""

import re
from enum import StrEnum
from functools import lru_cache
from types import MappingProxyType
from typing import Mapping

import msgspec

from vassal.core.config import DEFAULT_METRIC_KEY_PREFIX


class Unit(StrEnum):
    """Unit tags understood by the monitoring platform"""

    INTEGER = "integer"
    FLOAT = "float"
    BYTES = "bytes"


class MetricDefinition(msgspec.Struct, frozen=True):
    """
    One plotted metric

    diff=True marks a monotonically growing counter that is displayed as
    a rate, otherwise the value is a gauge.
    """

    name: str
    label: str
    diff: bool = False
    stacked: bool = False


class GraphDefinition(msgspec.Struct, frozen=True):
    label: str
    unit: Unit
    metrics: tuple[MetricDefinition, ...]


class GraphSchema(msgspec.Struct, frozen=True):
    graphs: dict[str, GraphDefinition]


# (key suffix, label suffix, unit, metrics)
_GRAPHS: tuple[tuple[str, str, Unit, tuple[MetricDefinition, ...]], ...] = (
    (
        "workers",
        "Workers",
        Unit.INTEGER,
        (
            MetricDefinition(name="busy", label="Busy", stacked=True),
            MetricDefinition(name="idle", label="Idle", stacked=True),
            MetricDefinition(name="cheap", label="Cheap", stacked=True),
            MetricDefinition(name="pause", label="Pause", stacked=True),
        ),
    ),
    (
        "req",
        "Requests",
        Unit.FLOAT,
        (MetricDefinition(name="requests", label="Requests", diff=True),),
    ),
    (
        "memory",
        "Memory",
        Unit.BYTES,
        (
            MetricDefinition(name="rss", label="RSS"),
            MetricDefinition(name="vsz", label="VSZ"),
        ),
    ),
    (
        "network",
        "Network",
        Unit.BYTES,
        (MetricDefinition(name="tx", label="TX", diff=True),),
    ),
    (
        "reqtime",
        "RequestsTime",
        Unit.INTEGER,
        (MetricDefinition(name="avg_rt", label="Average[us]"),),
    ),
    (
        "counter",
        "Counter",
        Unit.INTEGER,
        (
            MetricDefinition(name="harakiri_count", label="Harakiri"),
            MetricDefinition(name="respawn_count", label="Respawn"),
        ),
    ),
)

_WORD_START = re.compile(r"(?<!\w)(\w)")


def title_prefix(prefix: str) -> str:
    """Upper-case the first letter of every word, leaving the rest as is.

    Unlike str.title() this keeps "uWSGI" readable as "UWSGI" rather than
    "Uwsgi".
    """
    return _WORD_START.sub(lambda match: match.group(1).upper(), prefix)


@lru_cache(maxsize=32)
def graph_definition(
    prefix: str = DEFAULT_METRIC_KEY_PREFIX,
) -> Mapping[str, GraphDefinition]:
    """Build the graph schema for a metric key prefix.

    Args:
        prefix: Metric key prefix, e.g. "uWSGI".

    Returns:
        Read-only mapping of "<prefix>.<graph>" to its definition. The
        same object is returned for repeated calls with one prefix.
    """
    label_prefix = title_prefix(prefix)

    return MappingProxyType(
        {
            f"{prefix}.{key}": GraphDefinition(
                label=f"{label_prefix} {label}",
                unit=unit,
                metrics=metrics,
            )
            for key, label, unit, metrics in _GRAPHS
        }
    )


def encode_graph_definition(prefix: str = DEFAULT_METRIC_KEY_PREFIX) -> bytes:
    """Serialize the schema as `{"graphs": {...}}` JSON."""
    return msgspec.json.encode(GraphSchema(graphs=dict(graph_definition(prefix))))
