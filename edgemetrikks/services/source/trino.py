"""Trino row source for the CloudFront real-time log table."""
from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from types import TracebackType
from typing import TYPE_CHECKING, Any

import trino.dbapi
from trino.exceptions import Error as TrinoDBAPIError, HttpError, TrinoQueryError

from edgemetrikks.exceptions import SourceError

if TYPE_CHECKING:
    from edgemetrikks.config.settings import TrinoSettings


logger = logging.getLogger(__name__)

DRIVER_ERRORS = (TrinoDBAPIError, TrinoQueryError, HttpError, OSError)


def build_query(settings: TrinoSettings) -> tuple[str, list[str]]:
    """Build the row query and the filters that go with it.

    The host filter is always first; year and month partitions are added
    when configured.
    """
    clauses = ["host LIKE ?"]
    params: list[str] = []
    if settings.year is not None:
        clauses.append("year = ?")
        params.append(settings.year)
    if settings.month is not None:
        clauses.append("month = ?")
        params.append(settings.month)
    query = f"SELECT * FROM {settings.qualified_table} WHERE " + " AND ".join(clauses)
    return query, params


class TrinoRowSource:
    """Streams rows of the real-time log table, one at a time.

    Owns a single Trino connection for its lifetime; use as a context manager.

    Example:
        with TrinoRowSource(settings.trino) as source:
            for row in source.rows(hostname="example.com"):
                ...
    """

    def __init__(
        self,
        settings: TrinoSettings,
        connect: Callable[..., Any] = trino.dbapi.connect,
        log: logging.Logger | None = None,
    ) -> None:
        """
        Args:
            settings: Trino connection settings.
            connect: DB-API connect function, replaceable in tests.
            log: Logger to use instead of the module logger.
        """
        self.settings = settings
        self._connect = connect
        self.log = log or logger
        self._connection: Any | None = None

    def open(self) -> TrinoRowSource:
        """Connect to Trino."""
        if self._connection is not None:
            return self
        try:
            self._connection = self._connect(
                host=self.settings.host,
                port=self.settings.port,
                user=self.settings.user,
                catalog=self.settings.catalog,
                schema=self.settings.db_schema,
                http_scheme=self.settings.http_scheme,
            )
        except DRIVER_ERRORS as e:
            raise SourceError(f"Cannot connect to Trino at {self.settings.host}:{self.settings.port}: {e}") from e
        self.log.debug("Connected to Trino at %s:%d", self.settings.host, self.settings.port)
        return self

    def close(self) -> None:
        """Close the Trino connection."""
        if self._connection is None:
            return
        connection, self._connection = self._connection, None
        try:
            connection.close()
        except DRIVER_ERRORS as e:
            raise SourceError(f"Error closing Trino connection: {e}") from e

    def __enter__(self) -> TrinoRowSource:
        return self.open()

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if exc_type is None:
            self.close()
            return
        try:
            self.close()
        except SourceError as e:
            self.log.warning("Ignoring Trino close failure while handling %s: %s", exc_type.__name__, e)

    def rows(self, hostname: str) -> Iterator[dict[str, Any]]:
        """Yield the rows whose host ends with ``hostname`` as column -> value dicts.

        Raises:
            SourceError: If the query cannot be executed or fetched.
        """
        if self._connection is None:
            self.open()
        query, params = build_query(self.settings)
        params = [f"%{hostname}", *params]
        self.log.info("Querying %s for host %s", self.settings.qualified_table, hostname)
        self.log.debug("Query: %s params=%s", query, params)

        try:
            cursor = self._connection.cursor()
            cursor.execute(query, params)
            columns = [column[0] for column in cursor.description or []]
        except DRIVER_ERRORS as e:
            raise SourceError(f"Trino query failed: {e}") from e

        fetched = 0
        while True:
            try:
                row = cursor.fetchone()
            except DRIVER_ERRORS as e:
                raise SourceError(f"Fetching Trino rows failed after {fetched} rows: {e}") from e
            if row is None:
                break
            fetched += 1
            yield dict(zip(columns, row))
        self.log.info("Fetched %d rows from Trino", fetched)
