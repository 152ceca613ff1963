"""Enrichment service - decodes and transforms a stream of Trino rows.

Rows are consumed one at a time, in order; every produced record keeps the
position of the row it came from. What happens to a bad row depends on the
error policy:

- ``abort``: the first DecodeError, ParseError or InvalidAddress ends the run.
- ``skip``: the row is logged, recorded in ``EnrichmentResult.errors`` and
  left out of the batch.

Any other exception (GeoIP database failures, source errors) always ends the run.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Literal

from edgemetrikks.exceptions import DecodeError, InvalidAddress, ParseError
from .schemas import Batch, EnrichedRecord, RawEntry, decode_row

if TYPE_CHECKING:
    from .transformer import RecordTransformer


logger = logging.getLogger(__name__)

ErrorPolicy = Literal["abort", "skip"]

ROW_ERRORS = (DecodeError, ParseError, InvalidAddress)


@dataclass
class RowError:
    """A row left out of the batch under the ``skip`` policy."""

    index: int
    error: Exception

    def __str__(self) -> str:
        return f"row {self.index}: {type(self.error).__name__}: {self.error}"


@dataclass
class EnrichmentResult:
    """Outcome of one enrichment run."""

    records: Batch = field(default_factory=list)
    errors: list[RowError] = field(default_factory=list)
    rows_seen: int = 0


class EnrichmentService:
    """Runs the RecordTransformer over a sequence of rows.

    Example:
        service = EnrichmentService(transformer, on_error="abort")
        result = service.run(source.rows(hostname="example.com"))
        store.write(result.records, "data/output.parquet")
    """

    def __init__(
        self,
        transformer: "RecordTransformer",
        *,
        on_error: ErrorPolicy = "abort",
        log: logging.Logger | None = None,
    ) -> None:
        if on_error not in ("abort", "skip"):
            raise ValueError(f"Unknown error policy: {on_error!r}")
        self.transformer = transformer
        self.on_error: ErrorPolicy = on_error
        self.log = log or logger

    def process(self, row: Mapping[str, Any] | RawEntry) -> EnrichedRecord:
        """Decode (if needed) and transform a single row."""
        entry = row if isinstance(row, RawEntry) else decode_row(row)
        return self.transformer.transform(entry)

    def run(self, rows: Iterable[Mapping[str, Any] | RawEntry]) -> EnrichmentResult:
        """Transform every row, preserving arrival order.

        Raises:
            DecodeError, ParseError, InvalidAddress: Under the ``abort`` policy,
                for the first bad row.
        """
        result = EnrichmentResult()
        for index, row in enumerate(rows):
            result.rows_seen += 1
            try:
                record = self.process(row)
            except ROW_ERRORS as e:
                if self.on_error == "abort":
                    self.log.error("Aborting run at row %d: %s", index, e)
                    raise
                row_error = RowError(index=index, error=e)
                self.log.warning("Skipping %s", row_error)
                result.errors.append(row_error)
                continue
            result.records.append(record)

            if result.rows_seen % 10_000 == 0:
                self.log.info("Processed %d rows", result.rows_seen)

        self.log.info(
            "Enriched %d of %d rows (%d skipped)",
            len(result.records),
            result.rows_seen,
            len(result.errors),
        )
        return result
