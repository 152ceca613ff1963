"""Counting records of a batch by key."""
from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Callable, Hashable, Iterable, Mapping
from typing import TypeVar

from edgemetrikks.services.enrichment.schemas import EnrichedRecord


logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)


def client_ip_key(record: EnrichedRecord) -> str:
    """Canonical client address, falling back to the raw column text."""
    if record.geo is not None and record.geo.ip:
        return record.geo.ip
    return record.client_ip


def country_key(record: EnrichedRecord) -> str:
    """GeoIP country code, or the CloudFront country column when not resolved."""
    if record.geo is not None and record.geo.country_code:
        return record.geo.country_code
    return record.country


def browser_key(record: EnrichedRecord) -> str:
    return record.client.browser_family if record.client is not None else ""


def os_key(record: EnrichedRecord) -> str:
    return record.client.os_family if record.client is not None else ""


KEY_FUNCTIONS: dict[str, Callable[[EnrichedRecord], Hashable]] = {
    "client_ip": client_ip_key,
    "country": country_key,
    "host": lambda record: record.host,
    "status": lambda record: record.status,
    "edge_location": lambda record: record.edge_location,
    "browser": browser_key,
    "os": os_key,
}


class StatsAggregator:
    """Groups a batch by a key function and counts occurrences.

    Example:
        counts = StatsAggregator().aggregate(records)
        for line in format_counts(counts):
            print(line)
    """

    def __init__(self, log: logging.Logger | None = None) -> None:
        self.log = log or logger

    def aggregate(
        self,
        batch: Iterable[EnrichedRecord],
        key: Callable[[EnrichedRecord], K] = client_ip_key,
    ) -> dict[K, int]:
        """Count records per key. The order of the result is unspecified."""
        counts: Counter[K] = Counter(key(record) for record in batch)
        self.log.debug("Aggregated %d records into %d keys", counts.total(), len(counts))
        return dict(counts)


def format_counts(counts: Mapping[Hashable, int]) -> list[str]:
    """Render counts as ``"<key>: <count>"`` lines."""
    return [f"{key}: {count}" for key, count in counts.items()]
