from pathlib import Path

import pytest

from edgemetrikks.exceptions import DecodeError, InvalidAddress, ParseError
from edgemetrikks.services.batchstore import BatchStore
from edgemetrikks.services.enrichment import EnrichmentService, RecordTransformer
from edgemetrikks.services.enrichment.schemas import ClientInfo, GeoData
from edgemetrikks.services.geoip.geoip import parse_address


class StubGeo:
    def lookup(self, ip: str) -> GeoData:
        address = parse_address(ip)
        return GeoData(ip=address, found=False)


class StubUserAgent:
    def parse(self, raw: str) -> ClientInfo:
        return ClientInfo()


@pytest.fixture
def transformer() -> RecordTransformer:
    return RecordTransformer(geo=StubGeo(), useragent=StubUserAgent())


def test_run_preserves_order(transformer: RecordTransformer, row_factory) -> None:
    ips = ["1.2.3.4", "5.6.7.8", "9.9.9.9", "1.2.3.4"]
    rows = [row_factory(client_ip=ip, timestamp=f"16455648{i:02d}.000") for i, ip in enumerate(ips)]

    result = EnrichmentService(transformer).run(iter(rows))

    assert [r.client_ip for r in result.records] == ips
    assert result.rows_seen == 4
    assert result.errors == []


def test_run_empty(transformer: RecordTransformer) -> None:
    result = EnrichmentService(transformer).run([])
    assert result.records == []
    assert result.rows_seen == 0


def test_process_accepts_raw_entry(transformer: RecordTransformer, row_factory) -> None:
    from edgemetrikks.services.enrichment.schemas import decode_row

    service = EnrichmentService(transformer)
    assert service.process(decode_row(row_factory())) == service.process(row_factory())


@pytest.mark.parametrize(
    "bad_row, error",
    [
        ({"timestamp": "not-a-time"}, ParseError),
        ({"client_ip": "not-an-ip"}, InvalidAddress),
        ({"status": "200"}, DecodeError),
        ({"day": "x"}, ParseError),
    ],
)
def test_abort_policy(transformer: RecordTransformer, row_factory, bad_row: dict, error: type) -> None:
    rows = [row_factory(), row_factory(**bad_row), row_factory()]

    with pytest.raises(error):
        EnrichmentService(transformer, on_error="abort").run(rows)


def test_abort_policy_stops_consuming(transformer: RecordTransformer, row_factory) -> None:
    consumed: list[int] = []

    def rows():
        for i in range(5):
            consumed.append(i)
            yield row_factory(client_ip="bad") if i == 1 else row_factory()

    with pytest.raises(InvalidAddress):
        EnrichmentService(transformer).run(rows())

    assert consumed == [0, 1]


def test_abort_leaves_no_batch_file(tmp_path: Path, transformer: RecordTransformer, row_factory) -> None:
    """A failed run never reaches the store, so nothing is written."""
    outfile = tmp_path / "output.parquet"
    service = EnrichmentService(transformer, on_error="abort")

    with pytest.raises(ParseError):
        result = service.run([row_factory(), row_factory(year="two thousand")])
        BatchStore().write(result.records, outfile)

    assert not outfile.exists()


def test_skip_policy(transformer: RecordTransformer, row_factory) -> None:
    rows = [
        row_factory(client_ip="1.2.3.4"),
        row_factory(client_ip="not-an-ip"),
        row_factory(client_ip="5.6.7.8", month="feb"),
        row_factory(client_ip="9.9.9.9"),
    ]

    result = EnrichmentService(transformer, on_error="skip").run(rows)

    assert [r.client_ip for r in result.records] == ["1.2.3.4", "9.9.9.9"]
    assert result.rows_seen == 4
    assert [e.index for e in result.errors] == [1, 2]
    assert isinstance(result.errors[0].error, InvalidAddress)
    assert isinstance(result.errors[1].error, ParseError)
    assert str(result.errors[1]).startswith("row 2: ParseError:")


def test_other_errors_always_propagate(row_factory) -> None:
    class BrokenGeo:
        def lookup(self, ip: str) -> GeoData:
            raise RuntimeError("database went away")

    service = EnrichmentService(RecordTransformer(geo=BrokenGeo(), useragent=StubUserAgent()), on_error="skip")
    with pytest.raises(RuntimeError):
        service.run([row_factory()])


def test_unknown_policy(transformer: RecordTransformer) -> None:
    with pytest.raises(ValueError, match="Unknown error policy"):
        EnrichmentService(transformer, on_error="ignore")


def test_skip_policy_out_of_range_timestamp(transformer: RecordTransformer, row_factory) -> None:
    rows = [row_factory(timestamp="300000000000.000"), row_factory()]

    result = EnrichmentService(transformer, on_error="skip").run(rows)

    assert len(result.records) == 1
    assert [e.index for e in result.errors] == [0]
    assert isinstance(result.errors[0].error, ParseError)
