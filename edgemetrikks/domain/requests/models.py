from datetime import datetime

from sqlalchemy import (
    BigInteger,
    Boolean,
    Float,
    Integer,
    SmallInteger,
    String,
    Text,
    Index,
)
from sqlalchemy.orm import Mapped, mapped_column
from advanced_alchemy.base import BigIntAuditBase
from advanced_alchemy.types import DateTimeUTC


class EdgeRequest(BigIntAuditBase):
    """One enriched CloudFront request as stored in the SQL database.

    Persistence representation of EnrichedRecord: id and audit timestamps
    come from BigIntAuditBase, GeoData and ClientInfo are flattened into
    ``geo_*`` and ``ua_*`` columns. Geo/UA columns are NULL when the record
    carried no enrichment.
    """

    __tablename__ = "edge_requests"

    timestamp: Mapped[datetime] = mapped_column(DateTimeUTC(timezone=True), nullable=False)

    # Request
    client_ip: Mapped[str] = mapped_column(String(45), nullable=False)
    status: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    bytes: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    method: Mapped[str] = mapped_column(String(16), nullable=False)
    protocol: Mapped[str] = mapped_column(String(16), nullable=False)
    host: Mapped[str] = mapped_column(String(255), nullable=False)
    uri_stem: Mapped[str] = mapped_column(Text, nullable=False)
    uri_query: Mapped[str] = mapped_column(Text, nullable=False)
    host_header: Mapped[str] = mapped_column(String(255), nullable=False)
    proto_version: Mapped[str] = mapped_column(String(16), nullable=False)
    ip_version: Mapped[str] = mapped_column(String(8), nullable=False)
    user_agent: Mapped[str] = mapped_column(Text, nullable=False)
    referer: Mapped[str] = mapped_column(Text, nullable=False)
    cookie: Mapped[str] = mapped_column(Text, nullable=False)

    # Edge
    edge_location: Mapped[str] = mapped_column(String(32), nullable=False)
    edge_request_id: Mapped[str] = mapped_column(String(128), nullable=False)
    time_taken: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    edge_response_result_type: Mapped[str] = mapped_column(String(64), nullable=False)
    edge_result_type: Mapped[str] = mapped_column(String(64), nullable=False)
    edge_detailed_result_type: Mapped[str] = mapped_column(String(64), nullable=False)
    ssl_protocol: Mapped[str] = mapped_column(String(32), nullable=False)
    ssl_cipher: Mapped[str] = mapped_column(String(128), nullable=False)
    content_type: Mapped[str] = mapped_column(String(255), nullable=False)
    content_length: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    country: Mapped[str] = mapped_column(String(8), nullable=False)
    cache_behavior_path_pattern: Mapped[str] = mapped_column(String(255), nullable=False)

    # Partition columns
    year: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    month: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    day: Mapped[int] = mapped_column(SmallInteger, nullable=False)

    # GeoIP
    geo_ip: Mapped[str | None] = mapped_column(String(45), nullable=True)
    geo_ip_type: Mapped[str | None] = mapped_column(String(32), nullable=True)
    geo_found: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    geo_city: Mapped[str | None] = mapped_column(String(100), nullable=True)
    geo_continent_code: Mapped[str | None] = mapped_column(String(2), nullable=True)
    geo_country_code: Mapped[str | None] = mapped_column(String(2), nullable=True)
    geo_latitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    geo_longitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    geo_geohash: Mapped[str | None] = mapped_column(String(12), nullable=True)
    geo_metro_code: Mapped[int | None] = mapped_column(Integer, nullable=True)
    geo_time_zone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    geo_postal_code: Mapped[str | None] = mapped_column(String(20), nullable=True)
    geo_subdivision_codes: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # User agent
    ua_browser_family: Mapped[str | None] = mapped_column(String(100), nullable=True)
    ua_browser_major: Mapped[str | None] = mapped_column(String(32), nullable=True)
    ua_browser_minor: Mapped[str | None] = mapped_column(String(32), nullable=True)
    ua_browser_patch: Mapped[str | None] = mapped_column(String(32), nullable=True)
    ua_os_family: Mapped[str | None] = mapped_column(String(100), nullable=True)
    ua_os_major: Mapped[str | None] = mapped_column(String(32), nullable=True)
    ua_os_minor: Mapped[str | None] = mapped_column(String(32), nullable=True)
    ua_os_patch: Mapped[str | None] = mapped_column(String(32), nullable=True)
    ua_os_patch_minor: Mapped[str | None] = mapped_column(String(32), nullable=True)
    ua_device_family: Mapped[str | None] = mapped_column(String(100), nullable=True)
    ua_device_brand: Mapped[str | None] = mapped_column(String(100), nullable=True)
    ua_device_model: Mapped[str | None] = mapped_column(String(100), nullable=True)
    ua_is_bot: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    ua_is_mobile: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    ua_is_tablet: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    ua_is_pc: Mapped[bool | None] = mapped_column(Boolean, nullable=True)

    __table_args__ = (
        Index("ix_edge_requests_timestamp", "timestamp"),
        Index("ix_edge_requests_client_ip_timestamp", "client_ip", "timestamp"),
        Index("ix_edge_requests_host_timestamp", "host", "timestamp"),
        Index("ix_edge_requests_country_timestamp", "geo_country_code", "timestamp"),
    )

    def __repr__(self) -> str:
        return f"<EdgeRequest(id={self.id}, client_ip={self.client_ip}, status={self.status}, timestamp={self.timestamp})>"
