"""Enrichment module - row decoding, typing and GeoIP/user-agent enrichment."""
from .schemas import Batch, ClientInfo, EnrichedRecord, GeoData, RawEntry, decode_row
from .service import EnrichmentResult, EnrichmentService, RowError
from .transformer import RecordTransformer

__all__ = [
    "Batch",
    "ClientInfo",
    "EnrichedRecord",
    "EnrichmentResult",
    "EnrichmentService",
    "GeoData",
    "RawEntry",
    "RecordTransformer",
    "RowError",
    "decode_row",
]
