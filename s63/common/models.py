"""
Pydantic models for permit files, cell permits and user permits.
"""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ServiceLevelIndicator(str, Enum):
    SUBSCRIPTION_PERMIT = "0"
    SINGLE_PURCHASE_PERMIT = "1"


class MetaData(BaseModel):
    """Header of a permit file."""

    model_config = ConfigDict(frozen=True)

    issue_date: datetime
    format_version: int = Field(ge=0, le=255)


class CellPermit(BaseModel):
    """Decrypted keys granted for one cell."""

    model_config = ConfigDict(frozen=True)

    cell_id: str = Field(min_length=8, max_length=8)
    expiry: date
    key1: bytes = Field(min_length=5, max_length=5)
    key2: bytes = Field(min_length=5, max_length=5)

    def keys(self) -> list[bytes]:
        """Candidate keys in decryption order, without a repeated key."""
        if self.key1 == self.key2:
            return [self.key1]
        return [self.key1, self.key2]

    def is_expired(self, today: date | None = None) -> bool:
        """Whether the permit expired before ``today``. Nothing enforces it."""
        return self.expiry < (today or date.today())


class PermitRecord(BaseModel):
    """One data line of a permit file."""

    model_config = ConfigDict(frozen=True)

    cell_permit: CellPermit
    sli: ServiceLevelIndicator
    edition: int | None = Field(default=None, ge=0, le=255)
    data_server_id: str
    comment: str = ""


class UserPermit(BaseModel):
    """Hardware id bound to a manufacturer id."""

    model_config = ConfigDict(frozen=True)

    hwid: str = Field(min_length=5, max_length=5)
    id: str = Field(pattern=r"^[0-9A-Fa-f]{4}$")

    def encode(self, installation_key: str) -> str:
        from s63.userpermit import encode_user_permit  # noqa: PLC0415

        return encode_user_permit(self, installation_key)

    @classmethod
    def decode(cls, text: str, installation_key: str) -> UserPermit:
        from s63.userpermit import decode_user_permit  # noqa: PLC0415

        return decode_user_permit(text, installation_key)
