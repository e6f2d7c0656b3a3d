"""Graph schema and metric output formats."""

from vassal.metrics.graphs import (
    GraphDefinition,
    MetricDefinition,
    Unit,
    encode_graph_definition,
    graph_definition,
)
from vassal.metrics.prometheus import PrometheusRenderer

__all__ = [
    "GraphDefinition",
    "MetricDefinition",
    "Unit",
    "encode_graph_definition",
    "graph_definition",
    "PrometheusRenderer",
]
