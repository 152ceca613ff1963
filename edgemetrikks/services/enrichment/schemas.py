"""Schemas for raw and enriched log rows - pure data, no ORM dependencies."""
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from datetime import datetime
from typing import Any

from edgemetrikks.exceptions import DecodeError


@dataclass
class RawEntry:
    """One row of the real-time log table as returned by Trino."""

    timestamp: str
    client_ip: str
    status: int
    bytes: int
    method: str
    protocol: str
    host: str
    uri_stem: str
    edge_location: str
    edge_request_id: str
    host_header: str
    time_taken: float
    proto_version: str
    ip_version: str
    user_agent: str
    referer: str
    cookie: str
    uri_query: str
    edge_response_result_type: str
    ssl_protocol: str
    ssl_cipher: str
    edge_result_type: str
    content_type: str
    content_length: int
    edge_detailed_result_type: str
    country: str
    cache_behavior_path_pattern: str
    year: str
    month: str
    day: str


RAW_COLUMNS: tuple[str, ...] = tuple(f.name for f in fields(RawEntry))

_INT_COLUMNS = frozenset({"status", "bytes", "content_length"})
_FLOAT_COLUMNS = frozenset({"time_taken"})


def _decode_value(column: str, value: Any) -> Any:
    if value is None:
        raise DecodeError(f"Column {column!r} is NULL", column=column)
    if column in _INT_COLUMNS:
        if isinstance(value, bool) or not isinstance(value, int):
            raise DecodeError(f"Column {column!r} expected integer, got {type(value).__name__}", column=column)
        return value
    if column in _FLOAT_COLUMNS:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise DecodeError(f"Column {column!r} expected float, got {type(value).__name__}", column=column)
        return float(value)
    if not isinstance(value, str):
        raise DecodeError(f"Column {column!r} expected string, got {type(value).__name__}", column=column)
    return value


def decode_row(row: Mapping[str, Any]) -> RawEntry:
    """Map a column -> value row onto a RawEntry.

    Extra columns are ignored. Missing columns, NULLs and values of the wrong
    scalar type raise DecodeError.
    """
    values: dict[str, Any] = {}
    for column in RAW_COLUMNS:
        if column not in row:
            raise DecodeError(f"Missing column {column!r}", column=column)
        values[column] = _decode_value(column, row[column])
    return RawEntry(**values)


@dataclass
class GeoData:
    """Geographic data for a client address.

    ``found`` is False when the address is valid but absent from the GeoIP
    database; every geographic field is then left zero-valued.
    """

    ip: str = ""
    ip_type: str = ""
    city: str = ""
    continent_code: str = ""
    country_code: str = ""
    latitude: float = 0.0
    longitude: float = 0.0
    geohash: str = ""
    metro_code: int = 0
    time_zone: str = ""
    postal_code: str = ""
    subdivision_codes: str = ""
    found: bool = False


@dataclass
class ClientInfo:
    """Browser, OS and device data parsed from a user-agent string."""

    browser_family: str = ""
    browser_major: str = ""
    browser_minor: str = ""
    browser_patch: str = ""
    os_family: str = ""
    os_major: str = ""
    os_minor: str = ""
    os_patch: str = ""
    os_patch_minor: str = ""
    device_family: str = ""
    device_brand: str = ""
    device_model: str = ""
    is_bot: bool = False
    is_mobile: bool = False
    is_tablet: bool = False
    is_pc: bool = False


@dataclass
class EnrichedRecord:
    """A typed and enriched log row; the unit stored in a batch.

    Carries every RawEntry column. ``timestamp`` is a UTC instant and
    ``year``/``month``/``day`` are parsed from their own partition columns.
    """

    timestamp: datetime
    client_ip: str
    status: int
    bytes: int
    method: str
    protocol: str
    host: str
    uri_stem: str
    edge_location: str
    edge_request_id: str
    host_header: str
    time_taken: float
    proto_version: str
    ip_version: str
    user_agent: str
    referer: str
    cookie: str
    uri_query: str
    edge_response_result_type: str
    ssl_protocol: str
    ssl_cipher: str
    edge_result_type: str
    content_type: str
    content_length: int
    edge_detailed_result_type: str
    country: str
    cache_behavior_path_pattern: str
    year: int
    month: int
    day: int
    geo: GeoData | None = field(default=None)
    client: ClientInfo | None = field(default=None)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> EnrichedRecord:
        """Build a record from the nested dict form produced by ``dataclasses.asdict``."""
        values = dict(data)
        geo = values.pop("geo", None)
        client = values.pop("client", None)
        return cls(
            **values,
            geo=GeoData(**geo) if geo is not None else None,
            client=ClientInfo(**client) if client is not None else None,
        )


Batch = list[EnrichedRecord]
