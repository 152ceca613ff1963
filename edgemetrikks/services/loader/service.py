"""Batch loader - pushes enriched records into the SQL database.

Records are inserted one at a time and committed individually; the first
failed insert stops the load.
"""
from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from typing import TYPE_CHECKING

from advanced_alchemy.exceptions import AdvancedAlchemyError
from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from edgemetrikks.domain.requests.models import EdgeRequest
from edgemetrikks.domain.requests.repositories import EdgeRequestRepository
from edgemetrikks.exceptions import LoadError
from edgemetrikks.services.enrichment.schemas import EnrichedRecord

if TYPE_CHECKING:
    from edgemetrikks.config.settings import DatabaseSettings


logger = logging.getLogger(__name__)


def to_model(record: EnrichedRecord) -> EdgeRequest:
    """Convert an EnrichedRecord to its ORM row."""
    model = EdgeRequest(
        timestamp=record.timestamp,
        client_ip=record.client_ip,
        status=record.status,
        bytes=record.bytes,
        method=record.method,
        protocol=record.protocol,
        host=record.host,
        uri_stem=record.uri_stem,
        uri_query=record.uri_query,
        host_header=record.host_header,
        proto_version=record.proto_version,
        ip_version=record.ip_version,
        user_agent=record.user_agent,
        referer=record.referer,
        cookie=record.cookie,
        edge_location=record.edge_location,
        edge_request_id=record.edge_request_id,
        time_taken=record.time_taken,
        edge_response_result_type=record.edge_response_result_type,
        edge_result_type=record.edge_result_type,
        edge_detailed_result_type=record.edge_detailed_result_type,
        ssl_protocol=record.ssl_protocol,
        ssl_cipher=record.ssl_cipher,
        content_type=record.content_type,
        content_length=record.content_length,
        country=record.country,
        cache_behavior_path_pattern=record.cache_behavior_path_pattern,
        year=record.year,
        month=record.month,
        day=record.day,
    )

    if (geo := record.geo) is not None:
        model.geo_ip = geo.ip
        model.geo_ip_type = geo.ip_type
        model.geo_found = geo.found
        model.geo_city = geo.city
        model.geo_continent_code = geo.continent_code
        model.geo_country_code = geo.country_code
        model.geo_latitude = geo.latitude
        model.geo_longitude = geo.longitude
        model.geo_geohash = geo.geohash
        model.geo_metro_code = geo.metro_code
        model.geo_time_zone = geo.time_zone
        model.geo_postal_code = geo.postal_code
        model.geo_subdivision_codes = geo.subdivision_codes

    if (client := record.client) is not None:
        model.ua_browser_family = client.browser_family
        model.ua_browser_major = client.browser_major
        model.ua_browser_minor = client.browser_minor
        model.ua_browser_patch = client.browser_patch
        model.ua_os_family = client.os_family
        model.ua_os_major = client.os_major
        model.ua_os_minor = client.os_minor
        model.ua_os_patch = client.os_patch
        model.ua_os_patch_minor = client.os_patch_minor
        model.ua_device_family = client.device_family
        model.ua_device_brand = client.device_brand
        model.ua_device_model = client.device_model
        model.ua_is_bot = client.is_bot
        model.ua_is_mobile = client.is_mobile
        model.ua_is_tablet = client.is_tablet
        model.ua_is_pc = client.is_pc

    return model


@contextmanager
def open_repository(settings: DatabaseSettings) -> Iterator[EdgeRequestRepository]:
    """Create the schema if needed and yield a repository bound to a fresh session.

    The session and engine are released on exit, also when loading fails.
    """
    engine = create_engine(settings.url, echo=settings.echo, future=True)
    try:
        EdgeRequest.metadata.create_all(engine, tables=[EdgeRequest.__table__])
        session_maker: sessionmaker[Session] = sessionmaker(bind=engine, expire_on_commit=False)
        with session_maker() as session:
            yield EdgeRequestRepository(session=session)
    finally:
        engine.dispose()


class BatchLoader:
    """Inserts a batch into the database one record at a time.

    Example:
        with open_repository(settings.database) as repo:
            BatchLoader(repo).load(records)
    """

    def __init__(
        self,
        repository: EdgeRequestRepository,
        *,
        progress_every: int = 1000,
        log: logging.Logger | None = None,
    ) -> None:
        self.repository = repository
        self.progress_every = progress_every
        self.log = log or logger
        self.total_loaded: int = 0

    def insert(self, record: EnrichedRecord) -> EdgeRequest:
        """Insert and commit a single record."""
        return self.repository.add(to_model(record), auto_commit=True)

    def load(self, batch: Sequence[EnrichedRecord]) -> int:
        """Insert every record of the batch in order.

        Returns:
            Number of inserted records.

        Raises:
            LoadError: On the first failed insert, carrying the record index.
        """
        self.log.info("Pushing %d records to the database", len(batch))
        for index, record in enumerate(batch):
            try:
                self.insert(record)
            except (AdvancedAlchemyError, SQLAlchemyError) as e:
                self.repository.session.rollback()
                raise LoadError(f"Insert of record {index} failed: {e}", index=index) from e
            self.total_loaded += 1
            if self.progress_every and self.total_loaded % self.progress_every == 0:
                self.log.info("Pushed %d/%d records", self.total_loaded, len(batch))
        self.log.info("Pushed %d records", self.total_loaded)
        return self.total_loaded
