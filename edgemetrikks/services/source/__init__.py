"""Source module - rows from the Trino real-time log table."""
from .trino import TrinoRowSource, build_query

__all__ = ["TrinoRowSource", "build_query"]
