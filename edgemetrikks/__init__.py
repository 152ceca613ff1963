"""Enrichment and aggregation of CloudFront real-time logs fetched from Trino."""

__version__ = "0.1.0"
