"""Turns RawEntry rows into EnrichedRecord objects."""
from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

from edgemetrikks.exceptions import ParseError
from .schemas import EnrichedRecord, RawEntry

if TYPE_CHECKING:
    from edgemetrikks.services.geoip.geoip import GeoLookupService
    from edgemetrikks.services.useragent.useragent import UserAgentParser


logger = logging.getLogger(__name__)

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

# "<epoch seconds>.<milliseconds>", e.g. "1645564800.123"
_TIMESTAMP = re.compile(r"(?P<seconds>\d+)(?:\.(?P<fraction>\d{1,3}))?", re.ASCII)
_DIGITS = re.compile(r"\d+", re.ASCII)


def parse_epoch_millis(value: str) -> int:
    """Parse a real-time log timestamp into epoch milliseconds.

    A fraction shorter than three digits is right-padded, so "1645564800.1"
    is 100 ms past the second.

    Raises:
        ParseError: If the value is not ``<digits>`` or ``<digits>.<1-3 digits>``.
    """
    matched = _TIMESTAMP.fullmatch(value) if isinstance(value, str) else None
    if not matched:
        raise ParseError(f"Invalid timestamp {value!r}", column="timestamp", value=value)
    fraction = (matched.group("fraction") or "").ljust(3, "0")
    return int(matched.group("seconds") + fraction)


def millis_to_datetime(millis: int) -> datetime:
    """Convert epoch milliseconds to an aware UTC datetime without float rounding."""
    return EPOCH + timedelta(milliseconds=millis)


def parse_timestamp(value: str) -> datetime:
    """Parse a real-time log timestamp into an aware UTC datetime.

    Raises:
        ParseError: If the value is malformed or outside the datetime range.
    """
    millis = parse_epoch_millis(value)
    try:
        return millis_to_datetime(millis)
    except (OverflowError, ValueError) as e:
        raise ParseError(f"Timestamp out of range {value!r}", column="timestamp", value=value) from e


def parse_int_column(column: str, value: str) -> int:
    """Parse a year/month/day partition column."""
    if not isinstance(value, str) or not _DIGITS.fullmatch(value):
        raise ParseError(f"Column {column!r} is not numeric: {value!r}", column=column, value=value)
    return int(value)


class RecordTransformer:
    """Builds one EnrichedRecord per RawEntry.

    Each call performs exactly one GeoIP lookup and one user-agent parse.

    Example:
        transformer = RecordTransformer(geo=geo, useragent=UserAgentParser())
        record = transformer.transform(entry)
    """

    def __init__(
        self,
        geo: "GeoLookupService",
        useragent: "UserAgentParser",
        log: logging.Logger | None = None,
    ) -> None:
        self.geo = geo
        self.useragent = useragent
        self.log = log or logger

    def transform(self, entry: RawEntry) -> EnrichedRecord:
        """Transform a RawEntry.

        Raises:
            ParseError: If the timestamp or year/month/day cannot be parsed.
            InvalidAddress: If the client IP is not a valid address.
        """
        timestamp = parse_timestamp(entry.timestamp)

        # Partition columns are parsed on their own, not derived from timestamp
        year = parse_int_column("year", entry.year)
        month = parse_int_column("month", entry.month)
        day = parse_int_column("day", entry.day)

        geo = self.geo.lookup(entry.client_ip)
        client = self.useragent.parse(entry.user_agent)

        return EnrichedRecord(
            timestamp=timestamp,
            client_ip=entry.client_ip,
            status=entry.status,
            bytes=entry.bytes,
            method=entry.method,
            protocol=entry.protocol,
            host=entry.host,
            uri_stem=entry.uri_stem,
            edge_location=entry.edge_location,
            edge_request_id=entry.edge_request_id,
            host_header=entry.host_header,
            time_taken=entry.time_taken,
            proto_version=entry.proto_version,
            ip_version=entry.ip_version,
            user_agent=entry.user_agent,
            referer=entry.referer,
            cookie=entry.cookie,
            uri_query=entry.uri_query,
            edge_response_result_type=entry.edge_response_result_type,
            ssl_protocol=entry.ssl_protocol,
            ssl_cipher=entry.ssl_cipher,
            edge_result_type=entry.edge_result_type,
            content_type=entry.content_type,
            content_length=entry.content_length,
            edge_detailed_result_type=entry.edge_detailed_result_type,
            country=entry.country,
            cache_behavior_path_pattern=entry.cache_behavior_path_pattern,
            year=year,
            month=month,
            day=day,
            geo=geo,
            client=client,
        )
