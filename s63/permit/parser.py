"""
Parser for S-63 PERMIT.TXT files.

A permit file starts with a ``:DATE`` and a ``:VERSION`` header line followed
by cell permit rows, with ``:ENC`` and ``:ECS`` section markers in between::

    :DATE 20071023 10:20
    :VERSION 2
    :ENC
    GB10000120071231517C1E9A4BCF3826517C1E9A4BCF38263A5A80B723886A31,0,1,GB,hej
    :ECS
"""

from __future__ import annotations

import logging
import re
from datetime import date, datetime
from typing import IO, TYPE_CHECKING, AnyStr

if TYPE_CHECKING:
    from collections.abc import Iterator

from s63.common.crypto import (
    PERMIT_PREFIX_LENGTH,
    decrypt_cell_key,
    derive_cipher_key,
    verify_record_checksum,
)
from s63.common.exceptions import (
    CellPermitLengthError,
    ChecksumError,
    FieldCountError,
    HeaderError,
    InvalidDateError,
    InvalidIntegerError,
    InvalidServiceLevelError,
    LineEncodingError,
    PermitIOError,
    PermitParseError,
)
from s63.common.models import CellPermit, MetaData, PermitRecord, ServiceLevelIndicator

logger = logging.getLogger(__name__)

CELL_PERMIT_LENGTH = PERMIT_PREFIX_LENGTH + 16
RECORD_FIELDS = 5
DIRECTIVES = (":ENC", ":ECS")

_DATE_LINE = re.compile(r"^:DATE (\d{8})(?: (\d{2}:\d{2}))?$")
_VERSION_LINE = re.compile(r"^:VERSION (\d+)$")


def _parse_u8(text: str, what: str) -> int:
    if not text.isdigit() or not text.isascii():
        msg = f"invalid {what} {text!r}"
        raise InvalidIntegerError(msg)
    value = int(text)
    if value > 255:  # noqa: PLR2004
        msg = f"{what} {value} out of range 0..255"
        raise InvalidIntegerError(msg)
    return value


def _parse_date(text: str) -> date:
    if not text.isdigit():
        msg = f"invalid date {text!r}"
        raise InvalidDateError(msg)
    try:
        return datetime.strptime(text, "%Y%m%d").date()
    except ValueError as err:
        msg = f"invalid date {text!r}"
        raise InvalidDateError(msg, cause=err) from err


def parse_date_line(line: str) -> datetime:
    """Parse the ``:DATE YYYYMMDD[ HH:MM]`` header line."""
    text = line.strip()
    match = _DATE_LINE.match(text)
    if match is None:
        raise HeaderError(1, text)
    day, clock = match.groups()
    try:
        if clock is None:
            return datetime.strptime(day, "%Y%m%d")
        return datetime.strptime(f"{day} {clock}", "%Y%m%d %H:%M")
    except ValueError as err:
        raise HeaderError(1, text, cause=err) from err


def parse_version_line(line: str) -> int:
    """Parse the ``:VERSION <n>`` header line."""
    text = line.strip()
    match = _VERSION_LINE.match(text)
    if match is None:
        raise HeaderError(2, text)
    try:
        return _parse_u8(match.group(1), "version")
    except InvalidIntegerError as err:
        raise HeaderError(2, text, cause=err) from err


def parse_cell_permit(text: str, installation_id: str) -> CellPermit:
    """Authenticate a 64 character cell permit and decrypt its keys."""
    if len(text) != CELL_PERMIT_LENGTH:
        raise CellPermitLengthError(len(text))
    prefix, checksum = text[:PERMIT_PREFIX_LENGTH], text[PERMIT_PREFIX_LENGTH:]
    cell_id = text[0:8]
    if not verify_record_checksum(prefix, checksum, installation_id):
        raise ChecksumError(cell_id)
    return CellPermit(
        cell_id=cell_id,
        expiry=_parse_date(text[8:16]),
        key1=decrypt_cell_key(text[16:32], installation_id),
        key2=decrypt_cell_key(text[32:48], installation_id),
    )


def parse_permit_record(line: str, installation_id: str) -> PermitRecord:
    """Parse one ``cellpermit,sli,edition,data_server_id,comment`` row."""
    fields = line.split(",")
    if len(fields) != RECORD_FIELDS:
        raise FieldCountError(len(fields))
    cell_permit = parse_cell_permit(fields[0], installation_id)
    try:
        sli = ServiceLevelIndicator(fields[1])
    except ValueError as err:
        raise InvalidServiceLevelError(fields[1]) from err
    edition = _parse_u8(fields[2], "edition") if fields[2] else None

    return PermitRecord(
        cell_permit=cell_permit,
        sli=sli,
        edition=edition,
        data_server_id=fields[3],
        comment=fields[4].rstrip(),
    )


def _with_line(err: PermitParseError, line_no: int) -> PermitParseError:
    """Return ``err`` tagged with the line it came from."""
    if err.line_no is None:
        err.line_no = line_no
        err.args = (f"line {line_no}: {err.args[0]}", *err.args[1:])
    return err


class PermitFile:
    """A permit file positioned after its header lines."""

    def __init__(self, stream: IO[AnyStr], line_no: int = 0) -> None:
        self._stream = stream
        self._line_no = line_no

    @classmethod
    def open(cls, stream: IO[AnyStr]) -> tuple[MetaData, PermitFile]:
        """Read the header and return it with a reader for the records."""
        permit_file = cls(stream)
        issue_date = parse_date_line(permit_file._read_header_line(1))
        version = parse_version_line(permit_file._read_header_line(2))
        metadata = MetaData(issue_date=issue_date, format_version=version)
        logger.debug(
            "Permit file issued %s, format version %s", issue_date, version
        )
        return metadata, permit_file

    def _read_line(self) -> str:
        raw = self._stream.readline()
        self._line_no += 1
        if isinstance(raw, bytes):
            return raw.decode("utf-8")
        return raw

    def _read_header_line(self, line_no: int) -> str:
        try:
            return self._read_line()
        except (OSError, UnicodeDecodeError) as err:
            raise HeaderError(line_no, "", cause=err) from err

    def permits(
        self, installation_id: str
    ) -> Iterator[PermitRecord | PermitParseError]:
        """Yield one record, or the error explaining why not, per data line.

        Lines are read one at a time. A failing line does not stop the
        sequence; a read error from the stream is yielded last. An unusable
        installation id raises ``InvalidInstallationIdError`` right away.
        """
        derive_cipher_key(installation_id)
        return self._records(installation_id)

    def _records(
        self, installation_id: str
    ) -> Iterator[PermitRecord | PermitParseError]:
        while True:
            try:
                line = self._read_line()
            except UnicodeDecodeError as err:
                logger.debug("Undecodable permit line %s", self._line_no)
                yield LineEncodingError(
                    "line is not valid UTF-8", self._line_no, cause=err
                )
                continue
            except OSError as err:
                yield PermitIOError(
                    "failed to read permit file", self._line_no, cause=err
                )
                return
            if not line:
                return
            if line.startswith(DIRECTIVES):
                logger.debug("Skipping directive %s", line.strip())
                continue
            try:
                record = parse_permit_record(line, installation_id)
            except PermitParseError as err:
                logger.debug("Rejected permit line %s: %s", self._line_no, err)
                yield _with_line(err, self._line_no)
            else:
                logger.debug("Parsed permit for cell %s", record.cell_permit.cell_id)
                yield record
