"""Ordered failure aggregation."""

from .aggregator import FailureAggregator, ensure_failure

__all__ = ["FailureAggregator", "ensure_failure"]
