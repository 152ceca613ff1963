"""GeoIP module - address validation and City database lookups."""
from .geoip import GeoLookupService, get_ip_type, parse_address

__all__ = ["GeoLookupService", "get_ip_type", "parse_address"]
