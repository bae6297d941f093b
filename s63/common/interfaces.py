"""
Interfaces and protocols for dependency injection.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from s63.common.models import PermitRecord


@runtime_checkable
class PermitSource(Protocol):
    """Protocol for looking up the permit of a cell."""

    def get_permit(self, cell_id: str) -> PermitRecord | None: ...
