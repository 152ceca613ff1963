"""Command line interface.

    edgemetrikks fetch --hostname example.com   Trino -> enriched batch file
    edgemetrikks stats --key country             counts per key of a batch file
    edgemetrikks push --dsn sqlite:///rtl.db     batch file -> SQL database
    edgemetrikks uap --tsv agents.tsv            parse URL-encoded user agents
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Any, Optional, Sequence, TypeVar
from urllib.parse import unquote_plus

from pydantic import ValidationError
from pydantic_settings import BaseSettings

from edgemetrikks.config.logs import configure_logging
from edgemetrikks.config.settings import Settings, get_settings
from edgemetrikks.exceptions import EdgeMetrikksError
from edgemetrikks.services.batchstore import BatchStore
from edgemetrikks.services.enrichment import EnrichmentService, RecordTransformer
from edgemetrikks.services.geoip import GeoLookupService
from edgemetrikks.services.loader import BatchLoader, open_repository
from edgemetrikks.services.source import TrinoRowSource
from edgemetrikks.services.stats import KEY_FUNCTIONS, StatsAggregator, format_counts
from edgemetrikks.services.useragent import UserAgentParser


logger = logging.getLogger(__name__)

S = TypeVar("S", bound=BaseSettings)


def _override(section: S, **changes: Any) -> S:
    """Return a re-validated copy of a settings section with non-None changes applied."""
    updates = {key: value for key, value in changes.items() if value is not None}
    if not updates:
        return section
    return type(section)(**{**section.model_dump(), **updates})


def run_fetch(args: argparse.Namespace, settings: Settings) -> int:
    trino_settings = _override(settings.trino, year=args.year, month=args.month)
    geoip_settings = _override(settings.geoip, db_path=args.geodb)
    outfile: Path = args.outfile or settings.batch.path
    on_error = args.on_error or settings.enrichment.on_error

    with TrinoRowSource(trino_settings) as source, GeoLookupService(geoip_settings) as geo:
        service = EnrichmentService(
            RecordTransformer(geo=geo, useragent=UserAgentParser()),
            on_error=on_error,
        )
        result = service.run(source.rows(hostname=args.hostname))

    path = BatchStore(compression=settings.batch.compression).write(result.records, outfile)
    for row_error in result.errors:
        logger.warning("Skipped %s", row_error)
    print(f"wrote {len(result.records)} records to {path}")
    return 0


def run_stats(args: argparse.Namespace, settings: Settings) -> int:
    datafile: Path = args.datafile or settings.batch.path
    records = BatchStore().read(datafile)
    print(f"{len(records)} records in file {Path(datafile).absolute()}")

    counts = StatsAggregator().aggregate(records, key=KEY_FUNCTIONS[args.key])
    for line in format_counts(counts):
        print(line)
    return 0


def run_push(args: argparse.Namespace, settings: Settings) -> int:
    datafile: Path = args.datafile or settings.batch.path
    database_settings = _override(settings.database, url=args.dsn)
    records = BatchStore().read(datafile)

    with open_repository(database_settings) as repository:
        loaded = BatchLoader(repository).load(records)
    print(f"pushed {loaded} records")
    return 0


def run_uap(args: argparse.Namespace, settings: Settings) -> int:
    tsv: Path = args.tsv.absolute()
    if not tsv.exists():
        logger.error("tsv (%s) file does not exist", tsv)
        return 2

    parser = UserAgentParser()
    with open(tsv, "r", encoding="utf-8") as f:
        for line in f:
            raw = unquote_plus(line.rstrip("\r\n"))
            info = parser.parse(raw)
            print(json.dumps({"raw": raw, **asdict(info)}))
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="edgemetrikks",
        description="CloudFront real-time log analysis: fetch from Trino, enrich, count and load.",
    )
    p.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        type=str.upper,
        default=None,
        help="Log level (default: APP_LOG_LEVEL or INFO)",
    )
    sub = p.add_subparsers(dest="command", required=True)

    fetch = sub.add_parser("fetch", help="Fetch rows from Trino and write an enriched batch file")
    fetch.add_argument("-n", "--hostname", required=True, help="Host suffix to select rows for")
    fetch.add_argument("-o", "--outfile", type=Path, default=None, help="Batch file (default: BATCH_PATH)")
    fetch.add_argument("-g", "--geodb", type=Path, default=None, help="GeoIP City database (default: GEOIP_DB_PATH)")
    fetch.add_argument("--year", default=None, help="Year partition to fetch")
    fetch.add_argument("--month", default=None, help="Month partition to fetch")
    fetch.add_argument(
        "--on-error",
        choices=["abort", "skip"],
        default=None,
        help="Abort the run on the first bad row, or skip bad rows (default: ENRICH_ON_ERROR or abort)",
    )
    fetch.set_defaults(func=run_fetch)

    stats = sub.add_parser("stats", help="Count records of a batch file by key")
    stats.add_argument("-f", "--datafile", type=Path, default=None, help="Batch file (default: BATCH_PATH)")
    stats.add_argument("-k", "--key", choices=sorted(KEY_FUNCTIONS), default="client_ip", help="Grouping key")
    stats.set_defaults(func=run_stats)

    push = sub.add_parser("push", help="Load a batch file into the SQL database")
    push.add_argument("-f", "--datafile", type=Path, default=None, help="Batch file (default: BATCH_PATH)")
    push.add_argument("-d", "--dsn", default=None, help="SQLAlchemy database URL (default: DB_URL)")
    push.set_defaults(func=run_push)

    uap = sub.add_parser("uap", help="Parse a file of URL-encoded user-agent strings")
    uap.add_argument("--tsv", type=Path, required=True, help="File with one user-agent per line")
    uap.set_defaults(func=run_uap)

    return p


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        settings = get_settings()
    except ValidationError as e:
        configure_logging(args.log_level or "INFO")
        logger.error("Invalid configuration: %s", e)
        return 2

    configure_logging(args.log_level or settings.log_level)

    try:
        return args.func(args, settings)
    except ValidationError as e:
        logger.error("Invalid configuration: %s", e)
        return 2
    except EdgeMetrikksError as e:
        logger.error("%s failed: %s", args.command, e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
