# Permit file parsing and lookup
from s63.permit.index import (
    EmptyPermitSource,
    PermitIndex,
    permits_from_file,
    permits_from_stream,
)
from s63.permit.parser import PermitFile, parse_cell_permit, parse_permit_record

__all__ = [
    "EmptyPermitSource",
    "PermitFile",
    "PermitIndex",
    "parse_cell_permit",
    "parse_permit_record",
    "permits_from_file",
    "permits_from_stream",
]
