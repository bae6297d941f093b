"""
Custom exceptions for permit parsing, cell decryption and user permits.
"""

from __future__ import annotations


class S63Error(Exception):
    """Base class for every error raised by the package."""

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.cause = cause


# Permit file errors


class PermitParseError(S63Error):
    """A permit file line could not be turned into a record."""

    def __init__(
        self,
        message: str,
        line_no: int | None = None,
        cause: BaseException | None = None,
    ) -> None:
        if line_no is not None:
            message = f"line {line_no}: {message}"
        super().__init__(message, cause)
        self.line_no = line_no


class HeaderError(PermitParseError):
    """The :DATE or :VERSION header line is malformed."""

    def __init__(
        self, line_no: int, text: str, cause: BaseException | None = None
    ) -> None:
        field = ":DATE" if line_no == 1 else ":VERSION"
        super().__init__(f"invalid {field} header {text!r}", line_no, cause)
        self.text = text


class FieldCountError(PermitParseError):
    """A data line does not hold exactly five comma separated fields."""

    def __init__(self, count: int, line_no: int | None = None) -> None:
        super().__init__(f"expected 5 fields, got {count}", line_no)
        self.count = count


class CellPermitLengthError(PermitParseError):
    """The cell permit block is not 64 characters long."""

    def __init__(self, length: int, line_no: int | None = None) -> None:
        super().__init__(
            f"invalid cell permit length {length}, expects length 64", line_no
        )
        self.length = length


class ChecksumError(PermitParseError):
    """The encrypted CRC of a cell permit does not match."""

    def __init__(self, cell_id: str, line_no: int | None = None) -> None:
        super().__init__(f"invalid checksum for cell {cell_id}", line_no)
        self.cell_id = cell_id


class InvalidDateError(PermitParseError):
    """A date field is not a valid YYYYMMDD date."""


class InvalidIntegerError(PermitParseError):
    """An integer field holds non-digits or overflows its range."""


class InvalidServiceLevelError(PermitParseError):
    """The service level indicator is neither 0 nor 1."""

    def __init__(self, code: str, line_no: int | None = None) -> None:
        super().__init__(f"invalid service level indicator {code!r}", line_no)
        self.code = code


class HexDecodeError(PermitParseError):
    """An encrypted key or checksum field is not valid hex."""


class PermitIOError(PermitParseError):
    """Reading the permit stream failed."""


class LineEncodingError(PermitParseError):
    """A permit file line is not valid UTF-8."""


class InvalidInstallationIdError(S63Error):
    """The installation id cannot be turned into a Blowfish key."""

    def __init__(self, installation_id: str) -> None:
        super().__init__(
            f"installation id {installation_id!r} does not give a 4 to 56 byte "
            "Blowfish key"
        )
        self.installation_id = installation_id


# Cell decryption errors


class DecryptError(S63Error):
    """A cell could not be decrypted."""


class NoPermitError(DecryptError):
    """The permit source holds no permit for the requested cell."""

    def __init__(self, cell_id: str) -> None:
        super().__init__(f"no permit for cell {cell_id}")
        self.cell_id = cell_id


class DecryptionFailedError(DecryptError):
    """No candidate key produced a readable container."""

    def __init__(
        self, cell_id: str | None = None, cause: BaseException | None = None
    ) -> None:
        target = f"cell {cell_id}" if cell_id else "data"
        super().__init__(f"decryption of {target} failed", cause)
        self.cell_id = cell_id


class BlockAlignmentError(DecryptError):
    """The ciphertext length is not a multiple of the block size."""

    def __init__(self, read_size: int) -> None:
        super().__init__(f"read {read_size} bytes, expected a full 8 byte block")
        self.read_size = read_size


class CellIOError(DecryptError):
    """Reading the encrypted stream or writing the output failed."""


# User permit errors


class UserPermitError(S63Error):
    """A user permit could not be encoded or decoded."""


class NonHexError(UserPermitError):
    """The user permit holds a non hexadecimal character."""

    def __init__(self, text: str) -> None:
        super().__init__(f"user permit {text!r} is not hexadecimal")
        self.text = text


class WrongLengthError(UserPermitError):
    """A user permit part has the wrong length."""

    def __init__(self, actual: int, expected: int, what: str = "user permit") -> None:
        super().__init__(f"{what} has length {actual}, expected {expected}")
        self.actual = actual
        self.expected = expected


class WrongKeyLengthError(WrongLengthError):
    """The installation key has the wrong length."""

    def __init__(self, actual: int, expected: int) -> None:
        super().__init__(actual, expected, "installation key")


class HashMismatchError(UserPermitError):
    """The CRC of the encrypted hardware id does not match."""

    def __init__(self) -> None:
        super().__init__("user permit checksum mismatch")


class InvalidHardwareIdError(UserPermitError):
    """The decrypted hardware id is not valid UTF-8 text."""
