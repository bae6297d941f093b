# S-63 permits and encrypted ENC cells

from s63.cell.decrypter import CellDecrypter
from s63.common.exceptions import S63Error
from s63.common.models import (
    CellPermit,
    MetaData,
    PermitRecord,
    ServiceLevelIndicator,
    UserPermit,
)
from s63.permit.index import (
    EmptyPermitSource,
    PermitIndex,
    permits_from_file,
    permits_from_stream,
)
from s63.permit.parser import PermitFile

__all__ = [
    "CellDecrypter",
    "CellPermit",
    "EmptyPermitSource",
    "MetaData",
    "PermitFile",
    "PermitIndex",
    "PermitRecord",
    "S63Error",
    "ServiceLevelIndicator",
    "UserPermit",
    "permits_from_file",
    "permits_from_stream",
]
