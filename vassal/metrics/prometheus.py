"""Prometheus text exposition for one collection pass.

Metric families follow the graph schema rather than being listed by
hand, so both outputs stay in step:

- stacked groupings (worker states) become one gauge with a `state`
  label, e.g. uwsgi_workers{state="busy"}
- diff metrics are counters, e.g. uwsgi_requests_total
- everything else is a plain gauge, e.g. uwsgi_rss

Example PromQL queries:
- Request rate: rate(uwsgi_requests_total[1m])
- Busy share: uwsgi_workers{state="busy"} / ignoring(state) sum(uwsgi_workers)
"""

import re
from collections.abc import Iterator

from prometheus_client import CollectorRegistry, Gauge, generate_latest
from prometheus_client.core import CounterMetricFamily
from prometheus_client.registry import Collector

from vassal.core.config import DEFAULT_METRIC_KEY_PREFIX
from vassal.messages.protocol import AggregateMetrics
from vassal.metrics.graphs import GraphDefinition, graph_definition

_INVALID_NAME_CHARS = re.compile(r"[^a-zA-Z0-9_]")


class _RunningTotals(Collector):
    """
    Counters whose value is the server's running total.

    Emitted as bare counter families, without a `_created` sample, since
    the counter was not started by this process.
    """

    def __init__(self) -> None:
        self._totals: list[tuple[str, str, float]] = []

    def add(self, name: str, documentation: str, value: float) -> None:
        self._totals.append((name, documentation, value))

    def collect(self) -> Iterator[CounterMetricFamily]:
        for name, documentation, value in self._totals:
            yield CounterMetricFamily(name, documentation, value=value)


def metric_namespace(prefix: str) -> str:
    """Turn a metric key prefix into a valid Prometheus name prefix."""
    namespace = _INVALID_NAME_CHARS.sub("_", prefix).lower()
    if not namespace or namespace[0].isdigit():
        namespace = f"_{namespace}"
    return namespace


class PrometheusRenderer:
    """
    Renders aggregate metrics as Prometheus text format.

    Creates a fresh registry on every render, nothing carries over from
    one pass to the next.
    """

    __slots__ = ("_prefix", "_namespace")

    def __init__(self, prefix: str = DEFAULT_METRIC_KEY_PREFIX) -> None:
        """Initialize renderer.

        Args:
            prefix: Metric key prefix the graph schema is built for
        """
        self._prefix = prefix
        self._namespace = metric_namespace(prefix)

    @property
    def namespace(self) -> str:
        return self._namespace

    def render(self, metrics: AggregateMetrics) -> bytes:
        """
        Render one pass's metrics.

        Returns:
            Prometheus text exposition format bytes
        """
        registry = CollectorRegistry()
        totals = _RunningTotals()

        for key, graph in graph_definition(self._prefix).items():
            graph_name = key.rsplit(".", 1)[-1]

            if any(metric.stacked for metric in graph.metrics):
                self._collect_stacked(registry, graph_name, graph, metrics)
            else:
                self._collect_separate(registry, totals, graph, metrics)

        registry.register(totals)
        return generate_latest(registry)

    def _collect_stacked(
        self,
        registry: CollectorRegistry,
        graph_name: str,
        graph: GraphDefinition,
        metrics: AggregateMetrics,
    ) -> None:
        """Collect a stacked grouping as a single labelled gauge."""
        gauge = Gauge(
            f"{self._namespace}_{graph_name}",
            graph.label,
            ["state"],
            registry=registry,
        )
        for metric in graph.metrics:
            gauge.labels(state=metric.name).set(metrics.get(metric.name, 0.0))

    def _collect_separate(
        self,
        registry: CollectorRegistry,
        totals: _RunningTotals,
        graph: GraphDefinition,
        metrics: AggregateMetrics,
    ) -> None:
        """Collect each metric of a grouping as its own family."""
        for metric in graph.metrics:
            name = f"{self._namespace}_{metric.name}"
            documentation = f"{graph.label} {metric.label}"
            value = metrics.get(metric.name, 0.0)

            if metric.diff:
                totals.add(name, documentation, value)
            else:
                Gauge(name, documentation, registry=registry).set(value)
