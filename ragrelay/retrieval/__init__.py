"""Retrieval context aggregation over three independent sources."""

from ragrelay.retrieval.aggregator import RetrievalAggregator, render_context

__all__ = ["RetrievalAggregator", "render_context"]
