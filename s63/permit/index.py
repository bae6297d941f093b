"""
In-memory permit sources.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import IO, TYPE_CHECKING, AnyStr

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

from s63.common.exceptions import PermitIOError, PermitParseError
from s63.common.models import PermitRecord
from s63.permit.parser import PermitFile

logger = logging.getLogger(__name__)


class PermitIndex:
    """Permit records keyed by cell id."""

    def __init__(self, records: dict[str, PermitRecord] | None = None) -> None:
        self._records: dict[str, PermitRecord] = dict(records or {})

    @classmethod
    def build(
        cls, items: Iterable[PermitRecord | PermitParseError]
    ) -> PermitIndex:
        """Drain parsed items, raising the first parse error encountered."""
        records: dict[str, PermitRecord] = {}
        for item in items:
            if isinstance(item, PermitParseError):
                raise item
            records[item.cell_permit.cell_id] = item
        logger.debug("Indexed permits for %d cells", len(records))
        return cls(records)

    def get_permit(self, cell_id: str) -> PermitRecord | None:
        return self._records.get(cell_id)

    def cell_ids(self) -> list[str]:
        return sorted(self._records)

    def records(self) -> Iterator[PermitRecord]:
        return iter(self._records.values())

    def __contains__(self, cell_id: object) -> bool:
        return cell_id in self._records

    def __len__(self) -> int:
        return len(self._records)


class EmptyPermitSource:
    """Permit source that holds no permits."""

    def get_permit(self, cell_id: str) -> PermitRecord | None:  # noqa: ARG002
        return None


def permits_from_stream(installation_id: str, stream: IO[AnyStr]) -> PermitIndex:
    """Parse a whole permit file into an index."""
    _, permit_file = PermitFile.open(stream)
    return PermitIndex.build(permit_file.permits(installation_id))


def permits_from_file(installation_id: str, path: str | Path) -> PermitIndex:
    """Parse the permit file at ``path`` into an index."""
    try:
        with Path(path).open("rb") as f:
            return permits_from_stream(installation_id, f)
    except OSError as err:
        msg = f"cannot read permit file {path}"
        raise PermitIOError(msg, cause=err) from err
