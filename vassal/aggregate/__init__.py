"""Worker snapshot aggregation."""

from vassal.aggregate.aggregator import aggregate

__all__ = ["aggregate"]
