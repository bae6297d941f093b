"""
User permits: the 28 character code binding a hardware id to a manufacturer.

Layout: ``encrypted hwid (16 hex) + CRC-32 of those 16 chars (8 hex) + id (4)``.
The hardware id is encrypted with the raw 5 character installation key.
"""

from __future__ import annotations

import string

from s63.common.crypto import (
    KEY_PAD,
    blowfish_decrypt_block,
    blowfish_encrypt_block,
    crc32_be,
)
from s63.common.exceptions import (
    HashMismatchError,
    InvalidHardwareIdError,
    NonHexError,
    WrongKeyLengthError,
    WrongLengthError,
)
from s63.common.models import UserPermit

USER_PERMIT_LENGTH = 16 + 8 + 4
KEY_LENGTH = 5
HWID_LENGTH = 5

_HEX_DIGITS = frozenset(string.hexdigits)


def _check_key(installation_key: str) -> bytes:
    if len(installation_key) != KEY_LENGTH:
        raise WrongKeyLengthError(len(installation_key), KEY_LENGTH)
    return installation_key.encode()


def encode_user_permit(permit: UserPermit, installation_key: str) -> str:
    """Encode ``permit`` into its 28 character user permit string."""
    key = _check_key(installation_key)
    hwid = permit.hwid.encode()
    if len(hwid) != HWID_LENGTH:
        raise WrongLengthError(len(hwid), HWID_LENGTH, "hardware id")

    encrypted = blowfish_encrypt_block(key, hwid + KEY_PAD).hex().upper()
    checksum = crc32_be(encrypted.encode()).hex().upper()
    return encrypted + checksum + permit.id


def decode_user_permit(text: str, installation_key: str) -> UserPermit:
    """Validate and decrypt a 28 character user permit string."""
    if not set(text) <= _HEX_DIGITS:
        raise NonHexError(text)
    if len(text) != USER_PERMIT_LENGTH:
        raise WrongLengthError(len(text), USER_PERMIT_LENGTH)
    key = _check_key(installation_key)

    encrypted, checksum, permit_id = text[:16], text[16:24], text[24:]
    if crc32_be(encrypted.encode()) != bytes.fromhex(checksum):
        raise HashMismatchError

    plain = blowfish_decrypt_block(key, bytes.fromhex(encrypted))
    try:
        hwid = plain[:HWID_LENGTH].decode()
    except UnicodeDecodeError as err:
        msg = f"decrypted hardware id {plain[:HWID_LENGTH].hex()} is not valid UTF-8"
        raise InvalidHardwareIdError(msg, cause=err) from err
    if len(hwid) != HWID_LENGTH:
        msg = f"decrypted hardware id {hwid!r} is not {HWID_LENGTH} characters"
        raise InvalidHardwareIdError(msg)

    return UserPermit(hwid=hwid, id=permit_id)
