"""Exception types raised by the enrichment pipeline."""
from __future__ import annotations

from pathlib import Path


class EdgeMetrikksError(Exception):
    """Base class for all edgemetrikks errors."""


class SourceError(EdgeMetrikksError):
    """The Trino query failed (connection or query execution)."""


class DecodeError(EdgeMetrikksError, ValueError):
    """A row does not match the expected column types."""

    def __init__(self, message: str, column: str | None = None) -> None:
        super().__init__(message)
        self.column = column


class ParseError(EdgeMetrikksError, ValueError):
    """A timestamp or date column could not be parsed."""

    def __init__(self, message: str, column: str | None = None, value: str | None = None) -> None:
        super().__init__(message)
        self.column = column
        self.value = value


class InvalidAddress(EdgeMetrikksError, ValueError):
    """A client IP is not a valid IPv4/IPv6 address."""

    def __init__(self, address: object) -> None:
        super().__init__(f"Invalid IP address: {address!r}")
        self.address = address


class StorageError(EdgeMetrikksError):
    """A batch file could not be written, read or parsed."""

    def __init__(self, message: str, path: Path | str) -> None:
        super().__init__(f"{message} ({path})")
        self.path = Path(path)


class GeoDatabaseError(EdgeMetrikksError):
    """The GeoIP database could not be opened."""

    def __init__(self, message: str, path: Path | str) -> None:
        super().__init__(f"{message} ({path})")
        self.path = Path(path)


class LoadError(EdgeMetrikksError):
    """A record could not be inserted into the database."""

    def __init__(self, message: str, index: int) -> None:
        super().__init__(message)
        self.index = index
