"""Stats module - key-based counting over batches."""
from .aggregator import KEY_FUNCTIONS, StatsAggregator, client_ip_key, format_counts

__all__ = ["KEY_FUNCTIONS", "StatsAggregator", "client_ip_key", "format_counts"]
