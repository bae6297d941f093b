import io
from datetime import date, datetime

import pytest

from conftest import CELL_KEY, HEADER_TXT, HWID, OTHER_KEY, PERMIT_TXT, permit_line
from s63.common.crypto import compute_record_checksum, encrypt_cell_key
from s63.common.exceptions import (
    CellPermitLengthError,
    ChecksumError,
    FieldCountError,
    HeaderError,
    HexDecodeError,
    InvalidDateError,
    InvalidIntegerError,
    InvalidInstallationIdError,
    InvalidServiceLevelError,
    LineEncodingError,
    PermitIOError,
    PermitParseError,
)
from s63.common.models import CellPermit, PermitRecord, ServiceLevelIndicator
from s63.permit import parser
from s63.permit.parser import (
    PermitFile,
    parse_cell_permit,
    parse_date_line,
    parse_permit_record,
    parse_version_line,
)

RECORD = "GB61021A200711301F3EC4E525FFFCEC1F3EC4E525FFFCEC3E91E355E4E82D30,0,,GB,"


@pytest.mark.parametrize(
    ("line", "expected"),
    [
        (":DATE 19990101 20:20", datetime(1999, 1, 1, 20, 20)),
        (":DATE 19990101", datetime(1999, 1, 1)),
        (":DATE 20120422 14:11\n", datetime(2012, 4, 22, 14, 11)),
    ],
)
def test_parse_date_line(line: str, expected: datetime) -> None:
    assert parse_date_line(line) == expected


@pytest.mark.parametrize(
    "line", [":DATE 1999010", ":DATE 19991301", "DATE 19990101", ":DATE 19990101 25:00"]
)
def test_parse_date_line_invalid(line: str) -> None:
    with pytest.raises(HeaderError) as exc:
        parse_date_line(line)
    assert exc.value.line_no == 1


def test_parse_version_line() -> None:
    assert parse_version_line(":VERSION 2") == 2  # noqa: PLR2004
    assert parse_version_line(":VERSION 123\n") == 123  # noqa: PLR2004


@pytest.mark.parametrize("line", [":VERSION x", ":VERSION 256", ":VERSIO 2", ""])
def test_parse_version_line_invalid(line: str) -> None:
    with pytest.raises(HeaderError) as exc:
        parse_version_line(line)
    assert exc.value.line_no == 2  # noqa: PLR2004


def test_parse_permit_record() -> None:
    record = parse_permit_record(RECORD, HWID)
    assert record.cell_permit.cell_id == "GB61021A"
    assert record.cell_permit.expiry == date(2007, 11, 30)
    assert record.sli is ServiceLevelIndicator.SUBSCRIPTION_PERMIT
    assert record.edition is None
    assert record.data_server_id == "GB"
    assert record.comment == ""


def test_parse_permit_record_trims_comment() -> None:
    record = parse_permit_record(RECORD + "some comment  \r\n", HWID)
    assert record.comment == "some comment"


def test_parse_permit_record_field_count() -> None:
    with pytest.raises(FieldCountError) as exc:
        parse_permit_record(RECORD + ",extra", HWID)
    assert exc.value.count == 6  # noqa: PLR2004


def test_parse_permit_record_invalid_sli() -> None:
    with pytest.raises(InvalidServiceLevelError):
        parse_permit_record(RECORD.replace(",0,", ",2,"), HWID)


@pytest.mark.parametrize("edition", ["256", "1a", "-1", " 1"])
def test_parse_permit_record_invalid_edition(edition: str) -> None:
    with pytest.raises(InvalidIntegerError):
        parse_permit_record(RECORD.replace(",0,,", f",0,{edition},"), HWID)


def test_parse_cell_permit_length() -> None:
    with pytest.raises(CellPermitLengthError) as exc:
        parse_cell_permit(RECORD[:63], HWID)
    assert exc.value.length == 63  # noqa: PLR2004


def test_parse_cell_permit_wrong_installation_id() -> None:
    with pytest.raises(ChecksumError):
        parse_cell_permit(RECORD[:64], "54321")


def test_checksum_failure_skips_key_decryption(monkeypatch: pytest.MonkeyPatch) -> None:
    calls = []
    monkeypatch.setattr(
        parser, "decrypt_cell_key", lambda *args: calls.append(args) or b"\x00" * 5
    )
    mutated = "GB61021B" + RECORD[8:64]
    with pytest.raises(ChecksumError):
        parse_cell_permit(mutated, HWID)
    assert calls == []


def test_parse_cell_permit_invalid_date() -> None:
    prefix = (
        "GB100001"
        + "20071331"
        + encrypt_cell_key(CELL_KEY, HWID)
        + encrypt_cell_key(CELL_KEY, HWID)
    )
    with pytest.raises(InvalidDateError):
        parse_cell_permit(prefix + compute_record_checksum(prefix, HWID), HWID)


def test_parse_cell_permit_invalid_hex_key() -> None:
    prefix = "GB100001" + "20071231" + "Z" * 16 + encrypt_cell_key(CELL_KEY, HWID)
    with pytest.raises(HexDecodeError):
        parse_cell_permit(prefix + compute_record_checksum(prefix, HWID), HWID)


def test_read_permit_file(permit_stream: io.BytesIO) -> None:
    metadata, permit_file = PermitFile.open(permit_stream)
    assert metadata.issue_date == datetime(2007, 10, 23, 10, 20)
    assert metadata.format_version == 2  # noqa: PLR2004

    records = list(permit_file.permits(HWID))
    assert len(records) == 3  # noqa: PLR2004
    assert records[0] == PermitRecord(
        cell_permit=CellPermit(
            cell_id="GB100001",
            expiry=date(2007, 12, 31),
            key1=bytes([54, 62, 171, 50, 198]),
            key2=bytes([54, 62, 171, 50, 198]),
        ),
        sli=ServiceLevelIndicator.SUBSCRIPTION_PERMIT,
        edition=1,
        data_server_id="GB",
        comment="hej",
    )
    assert records[1] == PermitRecord(
        cell_permit=CellPermit(
            cell_id="GB100002",
            expiry=date(2007, 12, 31),
            key1=bytes([73, 74, 128, 79, 106]),
            key2=bytes([73, 74, 128, 79, 106]),
        ),
        sli=ServiceLevelIndicator.SINGLE_PURCHASE_PERMIT,
        edition=0,
        data_server_id="GB",
        comment="",
    )
    third = records[2]
    assert third.cell_permit.cell_id == "GB100004"
    assert third.cell_permit.key1 == third.cell_permit.key2 == bytes(
        [89, 44, 236, 217, 52]
    )
    assert third.edition is None


def test_read_permit_file_from_text_stream() -> None:
    metadata, permit_file = PermitFile.open(io.StringIO(PERMIT_TXT))
    assert metadata.format_version == 2  # noqa: PLR2004
    assert len(list(permit_file.permits(HWID))) == 3  # noqa: PLR2004


def test_read_permit_file_bad_header() -> None:
    with pytest.raises(HeaderError) as exc:
        PermitFile.open(io.BytesIO(b":DATE 20071023\n:VERSIO 2\n"))
    assert exc.value.line_no == 2  # noqa: PLR2004


def test_errors_do_not_stop_the_sequence() -> None:
    good = permit_line("GB100001", CELL_KEY, OTHER_KEY)
    bad_sli = good.replace(",0,", ",7,")
    text = HEADER_TXT + ":ENC\n" + good + bad_sli + "too,short\n" + good + ":ECS\n"
    _, permit_file = PermitFile.open(io.StringIO(text))

    items = list(permit_file.permits(HWID))
    assert len(items) == 4  # noqa: PLR2004
    assert isinstance(items[0], PermitRecord)
    assert isinstance(items[1], InvalidServiceLevelError)
    assert items[1].line_no == 5  # noqa: PLR2004
    assert isinstance(items[2], FieldCountError)
    assert items[2].line_no == 6  # noqa: PLR2004
    assert "line 6" in str(items[2])
    assert isinstance(items[3], PermitRecord)


def test_permits_are_read_one_line_at_a_time() -> None:
    lines = [":DATE 20071023 10:20\n", ":VERSION 2\n", ":ENC\n"]
    data = PERMIT_TXT.encode()
    stream = io.BytesIO(data)
    _, permit_file = PermitFile.open(stream)
    permits = permit_file.permits(HWID)

    first = next(permits)
    assert isinstance(first, PermitRecord)
    consumed = sum(len(line) for line in lines) + len(PERMIT_TXT.splitlines(True)[3])
    assert stream.tell() == consumed
    assert stream.tell() < len(data)


def test_many_directive_lines() -> None:
    text = HEADER_TXT + ":ENC\n:ECS\n" * 5000
    _, permit_file = PermitFile.open(io.StringIO(text))
    assert list(permit_file.permits(HWID)) == []


def test_undecodable_line_does_not_stop_the_sequence() -> None:
    good = permit_line("GB100001", CELL_KEY, OTHER_KEY).encode()
    data = HEADER_TXT.encode() + good + b"\xff\xfe,0,,GB,\n" + good
    _, permit_file = PermitFile.open(io.BytesIO(data))

    items = list(permit_file.permits(HWID))
    assert len(items) == 3  # noqa: PLR2004
    assert isinstance(items[0], PermitRecord)
    assert isinstance(items[1], LineEncodingError)
    assert isinstance(items[1], PermitParseError)
    assert items[1].line_no == 4  # noqa: PLR2004
    assert isinstance(items[1].cause, UnicodeDecodeError)
    assert isinstance(items[2], PermitRecord)


def test_read_error_ends_sequence() -> None:
    class Failing(io.BytesIO):
        def readline(self, size: int | None = -1) -> bytes:
            if self.tell() >= len(HEADER_TXT):
                raise OSError("device gone")
            return super().readline(size)

    _, permit_file = PermitFile.open(Failing(HEADER_TXT.encode() + b"more\n"))
    items = list(permit_file.permits(HWID))
    assert len(items) == 1
    assert isinstance(items[0], PermitIOError)
    assert isinstance(items[0].cause, OSError)


def test_short_installation_id_is_rejected_up_front() -> None:
    _, permit_file = PermitFile.open(io.StringIO(PERMIT_TXT))
    with pytest.raises(InvalidInstallationIdError) as exc:
        permit_file.permits("ab")
    assert exc.value.installation_id == "ab"
