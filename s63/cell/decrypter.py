"""
Decryption of encrypted S-63 cells.

A cell is a zip archive, padded to a multiple of 8 bytes and encrypted with
Blowfish one block at a time. Its permit carries two candidate keys; the
first one that yields a readable archive wins.
"""

from __future__ import annotations

import io
import logging
import zipfile
import zlib
from typing import IO, TYPE_CHECKING

if TYPE_CHECKING:
    from s63.common.interfaces import PermitSource

from s63.common.crypto import BLOCK_SIZE, new_block_decryptor
from s63.common.exceptions import (
    BlockAlignmentError,
    CellIOError,
    DecryptError,
    DecryptionFailedError,
    NoPermitError,
)
from s63.permit.index import EmptyPermitSource

logger = logging.getLogger(__name__)

# Raised by zipfile on archives that a wrong key turned into garbage
_CONTAINER_ERRORS = (
    zipfile.BadZipFile,
    zlib.error,
    EOFError,
    NotImplementedError,
    RuntimeError,
    ValueError,
)


def depad(block: bytes) -> bytes:
    """Strip the padding of the last plaintext block.

    The last byte ``n`` counts as padding only when the final ``n`` bytes
    all equal ``n``; otherwise the block is returned unchanged.
    """
    if len(block) != BLOCK_SIZE:
        msg = f"depad expects a {BLOCK_SIZE} byte block, got {len(block)}"
        raise ValueError(msg)
    n = block[-1]
    if n > BLOCK_SIZE:
        return block
    if any(b != n for b in block[BLOCK_SIZE - n :]):
        return block
    return block[: BLOCK_SIZE - n]


def _read_block(reader: IO[bytes]) -> bytes:
    """Read one cipher block, retrying short reads until it is full or at EOF."""
    block = reader.read(BLOCK_SIZE) or b""
    while block and len(block) < BLOCK_SIZE:
        more = reader.read(BLOCK_SIZE - len(block))
        if not more:
            break
        block += more
    return block


def decrypt_into(key: bytes, reader: IO[bytes], writer: IO[bytes]) -> None:
    """Decrypt ``reader`` block by block into ``writer``.

    Output lags one block behind so the last block can be de-padded.
    """
    decryptor = new_block_decryptor(key)
    previous: bytes | None = None
    try:
        while True:
            block = _read_block(reader)
            if not block:
                break
            if len(block) != BLOCK_SIZE:
                raise BlockAlignmentError(len(block))
            plain = decryptor.update(block)
            if previous is not None:
                writer.write(previous)
            previous = plain
        if previous is not None:
            writer.write(depad(previous))
    except OSError as err:
        msg = "I/O error while decrypting"
        raise CellIOError(msg, cause=err) from err


def _first_entry(data: bytes) -> bytes:
    with zipfile.ZipFile(io.BytesIO(data)) as archive:
        entries = archive.infolist()
        if not entries:
            msg = "archive is empty"
            raise zipfile.BadZipFile(msg)
        return archive.read(entries[0])


class CellDecrypter:
    """Decrypts cells with the keys of an injected permit source."""

    def __init__(self, permits: PermitSource | None = None) -> None:
        self.permits = permits if permits is not None else EmptyPermitSource()
        self.logger = logging.getLogger(__name__)

    def decrypt_cell(self, cell_id: str, stream: IO[bytes]) -> bytes:
        """Return the chart payload of an encrypted cell."""
        record = self.permits.get_permit(cell_id)
        if record is None:
            raise NoPermitError(cell_id)

        for attempt, key in enumerate(record.cell_permit.keys(), start=1):
            self._rewind(stream)
            try:
                payload = self.decrypt_with_key(key, stream)
            except DecryptionFailedError:
                self.logger.debug("Key %d did not open cell %s", attempt, cell_id)
                continue
            self.logger.debug("Cell %s decrypted with key %d", cell_id, attempt)
            return payload

        self.logger.warning("No permit key could decrypt cell %s", cell_id)
        raise DecryptionFailedError(cell_id)

    def decrypt_cell_bytes(self, cell_id: str, data: bytes) -> bytes:
        return self.decrypt_cell(cell_id, io.BytesIO(data))

    def decrypt_with_key(self, key: bytes, stream: IO[bytes]) -> bytes:
        """Decrypt ``stream`` from its current position with a single key."""
        plain = io.BytesIO()
        decrypt_into(key, stream, plain)
        try:
            return _first_entry(plain.getvalue())
        except _CONTAINER_ERRORS as err:
            raise DecryptionFailedError(cause=err) from err

    def decrypt_with_key_bytes(self, key: bytes, data: bytes) -> bytes:
        return self.decrypt_with_key(key, io.BytesIO(data))

    def can_decrypt(self, key: bytes, data: bytes) -> bool:
        try:
            self.decrypt_with_key_bytes(key, data)
        except DecryptError:
            return False
        return True

    @staticmethod
    def _rewind(stream: IO[bytes]) -> None:
        try:
            stream.seek(0)
        except OSError as err:
            msg = "cannot rewind encrypted stream"
            raise CellIOError(msg, cause=err) from err
