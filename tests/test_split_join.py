import gzip
import io
import math
import struct
import sys
from pathlib import Path

import pytest
from google.protobuf import wrappers_pb2
from prometheus_client import REGISTRY

PROJECT_ROOT = Path(__file__).resolve().parent.parent
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from recfs import FileService, monitoring  # noqa: E402
from recfs.core import (  # noqa: E402
    CsvHeaderMismatchError,
    DecodeError,
    FramingError,
    RecordFormat,
    join_records,
    split_records,
)


def _read_csv(service: FileService, path: Path) -> list[list[str]]:
    with service.open_csv_file(path) as reader:
        return list(reader)


def _write_csv(service: FileService, path: Path, rows: list[list[str]]) -> Path:
    with service.new_csv_file(path) as writer:
        for row in rows:
            writer.write_record(row)
    return path


def _write_values(service: FileService, path: Path, count: int) -> list[bytes]:
    with service.new_proto_file(path) as writer:
        return [writer.write(wrappers_pb2.StringValue(value=f"v{i}")) for i in range(count)]


# ---------------------------------------------------------------------------
# JSON
# ---------------------------------------------------------------------------


@pytest.mark.integration
def test_split_ten_json_records_limit_three(
    tmp_path: Path, service: FileService, json_records, write_json_file, read_json_file
) -> None:
    source = write_json_file(tmp_path / "input.json", json_records)

    parts = service.split_json_file(source, 3, lambda i: str(tmp_path / f"part-{i}.json"))

    assert [Path(p).name for p in parts] == [f"part-{i}.json" for i in range(4)]
    assert [len(read_json_file(Path(p))) for p in parts] == [3, 3, 3, 1]

    output = tmp_path / "joined.json"
    stats = service.join_json_files(output, parts)

    assert stats.parts == 4
    assert stats.records == 10
    assert read_json_file(output) == json_records
    assert output.read_bytes() == source.read_bytes()


@pytest.mark.integration
@pytest.mark.parametrize(
    "count,limit",
    [(1, 1), (5, 5), (6, 5), (7, 2), (10, 1), (3, 100)],
)
def test_split_part_count(
    tmp_path: Path, service: FileService, write_json_file, read_json_file, count: int, limit: int
) -> None:
    records = [{"n": i} for i in range(count)]
    source = write_json_file(tmp_path / "in.json", records)

    parts = service.split_json_file(source, limit, lambda i: tmp_path / f"p{i}.json")

    assert len(parts) == math.ceil(count / limit)
    per_part = [read_json_file(Path(p)) for p in parts]
    assert all(1 <= len(chunk) <= limit for chunk in per_part)
    assert [r for chunk in per_part for r in chunk] == records


@pytest.mark.integration
def test_split_join_gzip_json(
    tmp_path: Path, service: FileService, json_records, write_json_file, read_json_file
) -> None:
    source = write_json_file(tmp_path / "input.json.gz", json_records)

    parts = service.split_json_file(source, 4, lambda i: str(tmp_path / "out" / f"part-{i}.json.gz"))

    assert len(parts) == 3
    for part in parts:
        with gzip.open(part, "rb") as f:
            assert f.read().endswith(b"\n")

    output = tmp_path / "joined.json"
    service.join_json_files(output, parts)
    assert read_json_file(output) == json_records


@pytest.mark.unit
def test_split_empty_input_yields_no_parts(tmp_path: Path, service: FileService) -> None:
    source = tmp_path / "empty.json"
    source.write_bytes(b"")
    calls: list[int] = []

    def partition(i: int) -> str:
        calls.append(i)
        return str(tmp_path / f"part-{i}.json")

    assert service.split_json_file(source, 3, partition) == []
    assert calls == []


@pytest.mark.unit
def test_join_empty_part_list_creates_empty_output(tmp_path: Path, service: FileService) -> None:
    output = tmp_path / "joined.json"

    stats = service.join_json_files(output, [])

    assert output.exists()
    assert output.read_bytes() == b""
    assert stats.records == 0


@pytest.mark.unit
@pytest.mark.parametrize("limit", [0, -1])
def test_split_rejects_invalid_limit(
    tmp_path: Path, service: FileService, write_json_file, limit: int
) -> None:
    source = write_json_file(tmp_path / "in.json", [{"a": 1}])

    with pytest.raises(ValueError, match="limit must be >= 1"):
        service.split_json_file(source, limit, lambda i: str(tmp_path / f"p{i}.json"))


@pytest.mark.unit
def test_split_missing_input(tmp_path: Path, service: FileService) -> None:
    with pytest.raises(FileNotFoundError):
        service.split_json_file(tmp_path / "missing.json", 1, lambda i: f"p{i}")


@pytest.mark.integration
def test_join_missing_part_leaves_partial_output(
    tmp_path: Path, service: FileService, write_json_file, read_json_file
) -> None:
    first = write_json_file(tmp_path / "a.json", [{"a": 1}, {"a": 2}])
    output = tmp_path / "joined.json"

    with pytest.raises(FileNotFoundError):
        service.join_json_files(output, [first, tmp_path / "missing.json"])

    # Output was closed and flushed; callers must discard it
    assert read_json_file(output) == [{"a": 1}, {"a": 2}]


# ---------------------------------------------------------------------------
# Proto
# ---------------------------------------------------------------------------


@pytest.mark.integration
def test_split_join_proto_is_byte_identical(tmp_path: Path, service: FileService) -> None:
    source = tmp_path / "values.pb"
    payloads = _write_values(service, source, 7)

    parts = service.split_proto_file(
        source, 3, lambda i: str(tmp_path / f"part-{i}.pb"), message_type=wrappers_pb2.StringValue
    )

    assert len(parts) == 3
    with service.open_proto_file(parts[2]) as reader:
        assert list(reader) == payloads[6:]

    output = tmp_path / "joined.pb"
    stats = service.join_proto_files(output, parts, message_type=wrappers_pb2.StringValue)

    assert stats.records == 7
    assert output.read_bytes() == source.read_bytes()


@pytest.mark.integration
def test_split_proto_truncated_input_keeps_written_parts(tmp_path: Path, service: FileService) -> None:
    source = tmp_path / "values.pb"
    payloads = _write_values(service, source, 5)
    with source.open("ab") as f:
        f.write(b"\x00\x00")

    with pytest.raises(FramingError):
        service.split_proto_file(source, 2, lambda i: str(tmp_path / f"part-{i}.pb"))

    # Parts written before the failure stay on disk, each cleanly framed
    counts = []
    for i in range(3):
        with service.open_proto_file(tmp_path / f"part-{i}.pb") as reader:
            counts.append(len(list(reader)))
    assert counts == [2, 2, 1]
    assert not (tmp_path / "part-3.pb").exists()
    assert sum(counts) == len(payloads)


@pytest.mark.unit
def test_split_proto_validates_payloads(tmp_path: Path, service: FileService) -> None:
    source = tmp_path / "bad.pb"
    bad = b"\x0a\x05ab"
    source.write_bytes(struct.pack(">I", len(bad)) + bad)

    # Without a message type payloads are copied unchecked
    assert len(service.split_proto_file(source, 1, lambda i: str(tmp_path / f"raw-{i}.pb"))) == 1

    with pytest.raises(DecodeError):
        service.split_proto_file(
            source,
            1,
            lambda i: str(tmp_path / f"typed-{i}.pb"),
            message_type=wrappers_pb2.StringValue,
        )
    assert not (tmp_path / "typed-0.pb").exists()


# ---------------------------------------------------------------------------
# CSV
# ---------------------------------------------------------------------------


@pytest.mark.integration
def test_split_csv_repeats_header_in_every_part(tmp_path: Path, service: FileService, csv_rows) -> None:
    source = _write_csv(service, tmp_path / "rows.csv", csv_rows)
    header, data = csv_rows[0], csv_rows[1:]

    parts = service.split_csv_file(source, 3, lambda i: str(tmp_path / f"part-{i}.csv"))

    # Seven data rows, three per part; the header does not count
    assert len(parts) == 3
    chunks = [_read_csv(service, Path(p)) for p in parts]
    for chunk in chunks:
        assert chunk[0] == header
        assert header not in chunk[1:]
    assert [len(chunk) - 1 for chunk in chunks] == [3, 3, 1]
    assert [row for chunk in chunks for row in chunk[1:]] == data


@pytest.mark.integration
def test_join_csv_emits_single_header(tmp_path: Path, service: FileService, csv_rows) -> None:
    source = _write_csv(service, tmp_path / "rows.csv.gz", csv_rows)
    parts = service.split_csv_file(source, 2, lambda i: str(tmp_path / f"part-{i}.csv.gz"))
    assert len(parts) == 4

    output = tmp_path / "joined.csv"
    stats = service.join_csv_files(output, parts)

    assert stats.skipped_headers == 3
    assert stats.records == 7
    assert _read_csv(service, output) == csv_rows
    assert output.read_text(encoding="utf-8").count("id,name,note\n") == 1


@pytest.mark.unit
def test_split_csv_header_only_yields_no_parts(tmp_path: Path, service: FileService) -> None:
    source = _write_csv(service, tmp_path / "header.csv", [["a", "b"]])
    empty = tmp_path / "empty.csv"
    empty.write_bytes(b"")

    assert service.split_csv_file(source, 5, lambda i: str(tmp_path / f"h-{i}.csv")) == []
    assert service.split_csv_file(empty, 5, lambda i: str(tmp_path / f"e-{i}.csv")) == []


@pytest.mark.unit
def test_join_csv_header_mismatch(tmp_path: Path, service: FileService) -> None:
    first = _write_csv(service, tmp_path / "a.csv", [["id", "name"], ["1", "x"]])
    second = _write_csv(service, tmp_path / "b.csv", [["id", "email"], ["2", "y@z"]])

    with pytest.raises(CsvHeaderMismatchError) as excinfo:
        service.join_csv_files(tmp_path / "strict.csv", [first, second])
    assert excinfo.value.expected == ["id", "name"]
    assert excinfo.value.actual == ["id", "email"]

    stats = service.join_csv_files(tmp_path / "loose.csv", [first, second], validate_header=False)
    assert stats.records == 2
    assert _read_csv(service, tmp_path / "loose.csv") == [["id", "name"], ["1", "x"], ["2", "y@z"]]


@pytest.mark.unit
def test_join_csv_skips_empty_parts(tmp_path: Path, service: FileService) -> None:
    empty = tmp_path / "empty.csv"
    empty.write_bytes(b"")
    header_only = _write_csv(service, tmp_path / "h.csv", [["id"]])
    data = _write_csv(service, tmp_path / "d.csv", [["id"], ["1"], ["2"]])

    stats = service.join_csv_files(tmp_path / "out.csv", [empty, header_only, data])

    assert stats.parts == 3
    assert _read_csv(service, tmp_path / "out.csv") == [["id"], ["1"], ["2"]]


@pytest.mark.unit
def test_generic_split_join_by_format_name(tmp_path: Path, service: FileService, csv_rows) -> None:
    source = _write_csv(service, tmp_path / "rows.csv", csv_rows)

    stats = service.split("csv", source, 4, lambda i: str(tmp_path / f"g-{i}.csv"))
    assert stats.part_count == 2
    assert stats.records == 7
    assert stats.header == csv_rows[0]

    joined = service.join("csv", tmp_path / "g.csv", stats.parts)
    assert joined.records == 7

    with pytest.raises(ValueError, match="Unknown record format"):
        service.record_format("xml")


@pytest.mark.unit
def test_split_empty_proto_input_yields_no_parts(tmp_path: Path, service: FileService) -> None:
    source = tmp_path / "empty.pb"
    source.write_bytes(b"")

    assert service.split_proto_file(source, 2, lambda i: str(tmp_path / f"p{i}.pb")) == []
    assert list(tmp_path.iterdir()) == [source]


@pytest.mark.unit
def test_join_empty_part_list_proto_and_csv(tmp_path: Path, service: FileService) -> None:
    proto_stats = service.join_proto_files(tmp_path / "joined.pb", [])
    csv_stats = service.join_csv_files(tmp_path / "joined.csv", [])

    assert (proto_stats.parts, proto_stats.records) == (0, 0)
    assert (csv_stats.parts, csv_stats.records, csv_stats.skipped_headers) == (0, 0, 0)
    assert (tmp_path / "joined.pb").read_bytes() == b""
    assert (tmp_path / "joined.csv").read_bytes() == b""


@pytest.mark.integration
def test_split_join_csv_large_cell(tmp_path: Path, service: FileService) -> None:
    rows = [["id", "blob"], ["1", "x" * 200_000], ["2", "y"]]
    source = _write_csv(service, tmp_path / "big.csv", rows)

    parts = service.split_csv_file(source, 1, lambda i: str(tmp_path / f"big-{i}.csv"))
    assert len(parts) == 2

    output = tmp_path / "joined.csv"
    service.join_csv_files(output, parts)
    assert _read_csv(service, output) == rows


# ---------------------------------------------------------------------------
# Close failures
# ---------------------------------------------------------------------------


class _FailingFlush(io.BytesIO):
    """BytesIO whose flush fails while ``fail`` is set."""

    fail = False

    def flush(self) -> None:
        if self.fail:
            raise OSError("disk full")
        super().flush()


@pytest.fixture
def failing_sink():
    buf = _FailingFlush()
    yield buf
    buf.fail = False


def _json_format_writing_to(service: FileService, buf: io.BytesIO, validate=None) -> RecordFormat:
    return RecordFormat(
        name="json",
        open_reader=service.open_json_file,
        open_writer=lambda path: service.new_json_stream(buf),
        validate=validate,
    )


@pytest.mark.unit
def test_writer_close_surfaces_flush_failure(service: FileService, failing_sink) -> None:
    writer = service.new_json_stream(failing_sink)
    writer.write({"a": 1})

    failing_sink.fail = True
    with pytest.raises(OSError, match="disk full"):
        writer.close()
    assert writer.closed


@pytest.mark.unit
def test_split_keeps_original_error_when_close_fails(
    tmp_path: Path, service: FileService, write_json_file, failing_sink
) -> None:
    source = write_json_file(tmp_path / "in.json", [{"n": 1}, {"n": 2}])

    def validate(record: bytes) -> None:
        if b'"n":2' in record:
            failing_sink.fail = True
            raise ValueError("bad record")

    fmt = _json_format_writing_to(service, failing_sink, validate)

    with pytest.raises(ValueError, match="bad record"):
        split_records(fmt, source, 10, lambda i: str(tmp_path / f"p{i}.json"))


@pytest.mark.unit
def test_join_keeps_original_error_when_close_fails(
    tmp_path: Path, service: FileService, write_json_file, failing_sink
) -> None:
    first = write_json_file(tmp_path / "a.json", [{"n": 1}])
    fmt = _json_format_writing_to(service, failing_sink)

    def parts():
        yield first
        failing_sink.fail = True
        yield tmp_path / "missing.json"

    with pytest.raises(FileNotFoundError):
        join_records(fmt, tmp_path / "out.json", parts())


# ---------------------------------------------------------------------------
# Metrics
# ---------------------------------------------------------------------------


def _sample(name: str) -> float:
    return REGISTRY.get_sample_value(name, {"format": "json"}) or 0.0


@pytest.mark.unit
def test_split_and_join_update_metrics(
    tmp_path: Path, service: FileService, json_records, write_json_file
) -> None:
    assert set(monitoring.__all__) == {
        "RECORDS_SPLIT",
        "PARTS_WRITTEN",
        "RECORDS_JOINED",
        "PARTS_JOINED",
        "OPERATION_DURATION",
    }
    source = write_json_file(tmp_path / "in.json", json_records)
    split_before = _sample("recfs_records_split_total")
    parts_before = _sample("recfs_parts_written_total")
    joined_before = _sample("recfs_records_joined_total")

    parts = service.split_json_file(source, 4, lambda i: str(tmp_path / f"m{i}.json"))
    service.join_json_files(tmp_path / "m.json", parts)

    assert _sample("recfs_records_split_total") - split_before == 10
    assert _sample("recfs_parts_written_total") - parts_before == 3
    assert _sample("recfs_records_joined_total") - joined_before == 10
