import io
import zipfile
from datetime import date

import pytest

from s63.common.crypto import BLOCK_SIZE, blowfish_encrypt_block, issue_cell_permit
from s63.common.models import CellPermit, PermitRecord, ServiceLevelIndicator

HWID = "12345"

HEADER_TXT = ":DATE 20200101\n:VERSION 2\n"

PERMIT_TXT = """:DATE 20071023 10:20
:VERSION 2
:ENC
GB10000120071231517C1E9A4BCF3826517C1E9A4BCF38263A5A80B723886A31,0,1,GB,hej
GB10000220071231BBA63203A5992420BBA63203A5992420ED56CD0F5F7390FC,1,0,GB,
GB1000042007123164B51D24FB77ADB364B51D24FB77ADB3EEA2291965966391,0,,GB,
:ECS
"""

CELL_KEY = bytes.fromhex("C1CB518E9C")
OTHER_KEY = bytes.fromhex("0102030405")
PAYLOAD = b"S-57 chart payload " * 40


def zip_payload(payload: bytes, name: str = "GB100001.000") -> bytes:
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        archive.writestr(name, payload)
    return buf.getvalue()


def pad(data: bytes) -> bytes:
    n = -len(data) % BLOCK_SIZE
    return data + bytes([n] * n)


def encrypt_blocks(key: bytes, data: bytes) -> bytes:
    return blowfish_encrypt_block(key, pad(data))


def encrypt_cell(payload: bytes, key: bytes) -> bytes:
    """Produce an encrypted cell the way a data server does."""
    return encrypt_blocks(key, zip_payload(payload))


def make_record(
    key1: bytes, key2: bytes, cell_id: str = "GB100001"
) -> PermitRecord:
    return PermitRecord(
        cell_permit=CellPermit(
            cell_id=cell_id, expiry=date(2030, 12, 31), key1=key1, key2=key2
        ),
        sli=ServiceLevelIndicator.SUBSCRIPTION_PERMIT,
        edition=1,
        data_server_id="GB",
        comment="",
    )


def permit_line(
    cell_id: str, key1: bytes, key2: bytes, expiry: date = date(2030, 12, 31)
) -> str:
    return issue_cell_permit(cell_id, expiry, key1, key2, HWID) + ",0,1,GB,issued\n"


@pytest.fixture
def permit_stream() -> io.BytesIO:
    return io.BytesIO(PERMIT_TXT.encode())
