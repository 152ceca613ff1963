"""Batch persistence as a single Parquet file.

The Arrow schema below is the batch format. It mirrors EnrichedRecord field
for field, with GeoData and ClientInfo as nullable struct columns. Files are
tagged with a format marker in the Parquet key/value metadata and must match
the schema exactly when read back; there is no schema evolution.
"""
from __future__ import annotations

import logging
import os
import tempfile
from collections.abc import Sequence
from dataclasses import asdict
from pathlib import Path

import pyarrow as pa
import pyarrow.parquet as pq

from edgemetrikks.exceptions import StorageError
from edgemetrikks.services.enrichment.schemas import Batch, EnrichedRecord


logger = logging.getLogger(__name__)

FORMAT_KEY = b"edgemetrikks.batch"
FORMAT_VERSION = b"1"

GEO_TYPE = pa.struct([
    ("ip", pa.string()),
    ("ip_type", pa.string()),
    ("city", pa.string()),
    ("continent_code", pa.string()),
    ("country_code", pa.string()),
    ("latitude", pa.float64()),
    ("longitude", pa.float64()),
    ("geohash", pa.string()),
    ("metro_code", pa.int64()),
    ("time_zone", pa.string()),
    ("postal_code", pa.string()),
    ("subdivision_codes", pa.string()),
    ("found", pa.bool_()),
])

CLIENT_TYPE = pa.struct([
    ("browser_family", pa.string()),
    ("browser_major", pa.string()),
    ("browser_minor", pa.string()),
    ("browser_patch", pa.string()),
    ("os_family", pa.string()),
    ("os_major", pa.string()),
    ("os_minor", pa.string()),
    ("os_patch", pa.string()),
    ("os_patch_minor", pa.string()),
    ("device_family", pa.string()),
    ("device_brand", pa.string()),
    ("device_model", pa.string()),
    ("is_bot", pa.bool_()),
    ("is_mobile", pa.bool_()),
    ("is_tablet", pa.bool_()),
    ("is_pc", pa.bool_()),
])

BATCH_SCHEMA = pa.schema(
    [
        ("timestamp", pa.timestamp("us", tz="UTC")),
        ("client_ip", pa.string()),
        ("status", pa.int64()),
        ("bytes", pa.int64()),
        ("method", pa.string()),
        ("protocol", pa.string()),
        ("host", pa.string()),
        ("uri_stem", pa.string()),
        ("edge_location", pa.string()),
        ("edge_request_id", pa.string()),
        ("host_header", pa.string()),
        ("time_taken", pa.float64()),
        ("proto_version", pa.string()),
        ("ip_version", pa.string()),
        ("user_agent", pa.string()),
        ("referer", pa.string()),
        ("cookie", pa.string()),
        ("uri_query", pa.string()),
        ("edge_response_result_type", pa.string()),
        ("ssl_protocol", pa.string()),
        ("ssl_cipher", pa.string()),
        ("edge_result_type", pa.string()),
        ("content_type", pa.string()),
        ("content_length", pa.int64()),
        ("edge_detailed_result_type", pa.string()),
        ("country", pa.string()),
        ("cache_behavior_path_pattern", pa.string()),
        ("year", pa.int64()),
        ("month", pa.int64()),
        ("day", pa.int64()),
        ("geo", GEO_TYPE),
        ("client", CLIENT_TYPE),
    ],
    metadata={FORMAT_KEY: FORMAT_VERSION},
)


def _same_layout(schema: pa.Schema) -> bool:
    """Compare column names and types, ignoring metadata."""
    return schema.equals(BATCH_SCHEMA, check_metadata=False)


class BatchStore:
    """Writes and reads batches of EnrichedRecord.

    Writes are all-or-nothing: the batch goes to a temporary file next to the
    destination which is renamed into place only once fully written.

    Example:
        store = BatchStore()
        path = store.write(records, "data/output.parquet")
        records = store.read(path)
    """

    def __init__(self, compression: str = "snappy", log: logging.Logger | None = None) -> None:
        self.compression = compression
        self.log = log or logger

    def to_table(self, batch: Sequence[EnrichedRecord]) -> pa.Table:
        """Convert records into an Arrow table using the batch schema."""
        return pa.Table.from_pylist([asdict(record) for record in batch], schema=BATCH_SCHEMA)

    def from_table(self, table: pa.Table) -> Batch:
        """Convert an Arrow table back into records."""
        return [EnrichedRecord.from_dict(row) for row in table.to_pylist()]

    def write(self, batch: Sequence[EnrichedRecord], destination: Path | str) -> Path:
        """Write a batch to ``destination``.

        Returns:
            Absolute path of the written file.

        Raises:
            StorageError: If the batch cannot be encoded or written. The
                destination is left untouched in that case.
        """
        path = Path(destination).absolute()
        try:
            table = self.to_table(batch)
        except (pa.ArrowException, TypeError, ValueError) as e:
            raise StorageError(f"Cannot encode batch: {e}", path) from e

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
            os.close(fd)
        except OSError as e:
            raise StorageError(f"Cannot create batch file: {e}", path) from e

        tmp_path = Path(tmp_name)
        try:
            pq.write_table(table, str(tmp_path), compression=None if self.compression == "none" else self.compression)
            os.replace(tmp_path, path)
        except (OSError, pa.ArrowException) as e:
            tmp_path.unlink(missing_ok=True)
            raise StorageError(f"Cannot write batch: {e}", path) from e
        except BaseException:
            tmp_path.unlink(missing_ok=True)
            raise

        self.log.info("Wrote %d records to %s", table.num_rows, path)
        return path

    def read(self, source: Path | str) -> Batch:
        """Read a batch written by ``write``.

        Raises:
            StorageError: If the file is missing, is not a Parquet file, is
                not a batch, or was written with a different record layout.
        """
        path = Path(source).absolute()
        try:
            schema = pq.read_schema(str(path))
            metadata = schema.metadata or {}
            if metadata.get(FORMAT_KEY) != FORMAT_VERSION:
                raise StorageError("Not an edgemetrikks batch file", path)
            if not _same_layout(schema):
                raise StorageError("Batch file record layout does not match this version", path)
            table = pq.read_table(str(path))
        except (OSError, pa.ArrowException) as e:
            raise StorageError(f"Cannot read batch: {e}", path) from e

        records = self.from_table(table)
        self.log.debug("Read %d records from %s", len(records), path)
        return records
