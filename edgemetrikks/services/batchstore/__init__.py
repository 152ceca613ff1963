"""Batch store module - Parquet persistence of enriched batches."""
from .store import BATCH_SCHEMA, BatchStore

__all__ = ["BATCH_SCHEMA", "BatchStore"]
