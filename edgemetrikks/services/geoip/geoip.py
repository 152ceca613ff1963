"""GeoIP lookups against a local MaxMind City database."""
from __future__ import annotations

import ipaddress
import logging
from functools import lru_cache
from types import TracebackType
from typing import TYPE_CHECKING, Any

from geoip2.database import Reader
from geoip2.errors import AddressNotFoundError
from geohash2 import encode
from IPy import IP
from maxminddb.errors import InvalidDatabaseError

from edgemetrikks.exceptions import GeoDatabaseError, InvalidAddress
from edgemetrikks.services.enrichment.schemas import GeoData
from .constants import SUBDIVISION_SEPARATOR

if TYPE_CHECKING:
    from edgemetrikks.config.settings import GeoIPSettings


logger = logging.getLogger(__name__)


def parse_address(ip: str) -> str:
    """Return the canonical text form of ``ip``.

    Raises:
        InvalidAddress: If ``ip`` is not an IPv4 or IPv6 address.
    """
    if not isinstance(ip, str):  # pyright: ignore[reportUnnecessaryIsInstance]
        raise InvalidAddress(ip)
    try:
        return str(ipaddress.ip_address(ip))
    except ValueError as e:
        raise InvalidAddress(ip) from e


@lru_cache(maxsize=1024)
def get_ip_type(ip: str) -> str:
    """Get the IPy type (PUBLIC, PRIVATE, LOOPBACK...) of an IP address.

    If IPy cannot classify the address, return an empty string.
    """
    try:
        return IP(ip).iptype()
    except ValueError:
        logger.debug("Could not classify IP address %s.", ip)
        return ""


class GeoLookupService:
    """Maps client IP addresses to GeoData.

    The database is opened once and closed exactly once. Use it as a context
    manager so the reader is released on every exit path:

    Example:
        with GeoLookupService(settings.geoip) as geo:
            data = geo.lookup("52.53.54.55")
    """

    def __init__(
        self,
        settings: GeoIPSettings,
        reader: Any | None = None,
        log: logging.Logger | None = None,
    ) -> None:
        """
        Args:
            settings: GeoIP settings (database path and locales).
            reader: Already opened reader exposing ``city()`` and ``close()``.
                When omitted, a geoip2 Reader is opened from ``settings.db_path``.
            log: Logger to use instead of the module logger.
        """
        self.settings = settings
        self.log = log or logger
        self._reader = reader
        self._closed = False

        self.lookups: int = 0
        self.misses: int = 0

    def open(self) -> GeoLookupService:
        """Open the GeoIP database if no reader is attached yet."""
        if self._closed:
            raise GeoDatabaseError("GeoIP database already closed", self.settings.db_path)
        if self._reader is None:
            try:
                self._reader = Reader(str(self.settings.db_path), locales=list(self.settings.locales))
            except (OSError, InvalidDatabaseError, ValueError) as e:
                raise GeoDatabaseError(f"Cannot open GeoIP database: {e}", self.settings.db_path) from e
            self.log.debug("Opened GeoIP database %s", self.settings.db_path)
        return self

    def close(self) -> None:
        """Close the GeoIP database. Further calls are no-ops."""
        if self._closed:
            return
        self._closed = True
        if self._reader is not None:
            self._reader.close()
            self.log.debug(
                "Closed GeoIP database %s (lookups=%d, misses=%d)",
                self.settings.db_path,
                self.lookups,
                self.misses,
            )

    def __enter__(self) -> GeoLookupService:
        return self.open()

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def lookup(self, ip: str) -> GeoData:
        """Look up geographic data for an IP address.

        Args:
            ip: IPv4 or IPv6 address text.

        Returns:
            GeoData with ``found=True``, or a zero-valued GeoData with
            ``found=False`` when the address is not in the database.

        Raises:
            InvalidAddress: If ``ip`` cannot be parsed. Raised before the
                database is queried.
            GeoDatabaseError: If the service was already closed.
        """
        address = parse_address(ip)
        if self._closed:
            raise GeoDatabaseError("GeoIP database already closed", self.settings.db_path)
        if self._reader is None:
            self.open()
        self.lookups += 1

        ip_type = get_ip_type(address)
        try:
            ip_data = self._reader.city(address)
        except AddressNotFoundError:
            self.misses += 1
            self.log.debug("No GeoIP data found for IP %s", address)
            return GeoData(ip=address, ip_type=ip_type)

        location = ip_data.location
        latitude = location.latitude
        longitude = location.longitude
        geohash = ""
        if latitude is not None and longitude is not None:
            geohash = encode(latitude, longitude)
        else:
            self.log.debug("GeoIP lat/long missing for %s. Database possibly outdated", address)

        subdivisions = [s.iso_code for s in ip_data.subdivisions if s.iso_code]

        return GeoData(
            ip=address,
            ip_type=ip_type,
            city=ip_data.city.name or "",
            continent_code=ip_data.continent.code or "",
            country_code=ip_data.country.iso_code or "",
            latitude=latitude or 0.0,
            longitude=longitude or 0.0,
            geohash=geohash,
            metro_code=location.metro_code or 0,
            time_zone=location.time_zone or "",
            postal_code=ip_data.postal.code or "",
            subdivision_codes=SUBDIVISION_SEPARATOR.join(subdivisions),
            found=True,
        )
