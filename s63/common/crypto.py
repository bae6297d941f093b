"""Blowfish and CRC primitives shared by cell permits and user permits.

Cell permit keys and checksums use the installation id with its first
character appended (``"12345"`` becomes ``"123451"``) as Blowfish key.
Checksums are produced by *encrypting* the CRC block, keys are recovered by
*decrypting* their cipher blocks.
"""

from __future__ import annotations

import zlib
from datetime import date

from cryptography.hazmat.decrepit.ciphers.algorithms import Blowfish
from cryptography.hazmat.primitives.ciphers import Cipher, CipherContext, modes

from s63.common.exceptions import HexDecodeError, InvalidInstallationIdError

BLOCK_SIZE = 8
MIN_KEY_BYTES = 4
MAX_KEY_BYTES = 56
CELL_KEY_LENGTH = 5
CHECKSUM_PAD = bytes([4] * 4)
KEY_PAD = bytes([3] * 3)
PERMIT_PREFIX_LENGTH = 8 + 8 + 16 + 16


def derive_cipher_key(installation_id: str) -> bytes:
    """Blowfish key for cell permit records: the id plus its first character."""
    key = (installation_id + installation_id[:1]).encode()
    if not MIN_KEY_BYTES <= len(key) <= MAX_KEY_BYTES:
        raise InvalidInstallationIdError(installation_id)
    return key


def _cipher(key: bytes) -> Cipher:
    return Cipher(Blowfish(key), modes.ECB())


def new_block_decryptor(key: bytes) -> CipherContext:
    """Raw block decryptor, fed one 8 byte block at a time."""
    return _cipher(key).decryptor()


def blowfish_encrypt_block(key: bytes, block: bytes) -> bytes:
    encryptor = _cipher(key).encryptor()
    return encryptor.update(block) + encryptor.finalize()


def blowfish_decrypt_block(key: bytes, block: bytes) -> bytes:
    decryptor = _cipher(key).decryptor()
    return decryptor.update(block) + decryptor.finalize()


def crc32_be(data: bytes) -> bytes:
    """IEEE CRC-32 as four big-endian bytes."""
    return (zlib.crc32(data) & 0xFFFFFFFF).to_bytes(4, "big")


def _unhex(text: str, what: str) -> bytes:
    try:
        return bytes.fromhex(text)
    except ValueError as err:
        msg = f"invalid hex in {what}: {text!r}"
        raise HexDecodeError(msg, cause=err) from err


def decrypt_cell_key(hex_ciphertext: str, installation_id: str) -> bytes:
    """Recover a 5 byte cell key from its 16 hex character cipher block."""
    block = _unhex(hex_ciphertext, "encrypted cell key")
    if len(block) != BLOCK_SIZE:
        msg = f"encrypted cell key must be {BLOCK_SIZE} bytes, got {len(block)}"
        raise HexDecodeError(msg)
    plain = blowfish_decrypt_block(derive_cipher_key(installation_id), block)
    return plain[:CELL_KEY_LENGTH]


def encrypt_cell_key(key: bytes, installation_id: str) -> str:
    """Encrypt a 5 byte cell key into its 16 hex character permit field."""
    if len(key) != CELL_KEY_LENGTH:
        msg = f"cell key must be {CELL_KEY_LENGTH} bytes, got {len(key)}"
        raise ValueError(msg)
    block = blowfish_encrypt_block(derive_cipher_key(installation_id), key + KEY_PAD)
    return block.hex().upper()


def compute_record_checksum(prefix: str, installation_id: str) -> str:
    """Encrypted CRC tag over the first 48 characters of a cell permit."""
    block = crc32_be(prefix.encode()) + CHECKSUM_PAD
    return blowfish_encrypt_block(derive_cipher_key(installation_id), block).hex().upper()


def verify_record_checksum(prefix: str, checksum_hex: str, installation_id: str) -> bool:
    expected = _unhex(checksum_hex, "cell permit checksum")
    return bytes.fromhex(compute_record_checksum(prefix, installation_id)) == expected


def issue_cell_permit(
    cell_id: str,
    expiry: date,
    key1: bytes,
    key2: bytes,
    installation_id: str,
) -> str:
    """Build the 64 character cell permit a data server hands out."""
    if len(cell_id) != 8:  # noqa: PLR2004
        msg = f"cell id must be 8 characters, got {cell_id!r}"
        raise ValueError(msg)
    prefix = (
        cell_id
        + expiry.strftime("%Y%m%d")
        + encrypt_cell_key(key1, installation_id)
        + encrypt_cell_key(key2, installation_id)
    )
    return prefix + compute_record_checksum(prefix, installation_id)
