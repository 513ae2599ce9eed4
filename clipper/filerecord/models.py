"""
FileRecord Models - metadata for attached files.

A FileRecord describes one original artifact (plus its cached variants)
and optionally places it in a named slot of an owning entity.
"""

import mimetypes
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any
from sqlmodel import SQLModel, Field, Column, UniqueConstraint
from sqlalchemy import JSON
from pydantic import BaseModel, ConfigDict, field_validator


def normalize_slot(slot: str | int | None) -> str | None:
    """Slots may be strings or integers; they are stored as strings."""
    if slot is None:
        return None
    if isinstance(slot, bool):
        raise TypeError("Slot must be a string or an integer")
    return str(slot)


class Owner(BaseModel):
    """
    Reference to an entity that can hold files, addressed by (type, id).
    The entity itself is not managed here.
    """
    type: str
    id: str

    model_config = ConfigDict(frozen=True)

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value):
        return str(value) if value is not None else value

    @classmethod
    def of(cls, entity: Any) -> "Owner":
        """Build an owner reference from any object exposing an ``id``."""
        return cls(type=type(entity).__name__, id=entity.id)

    def __str__(self) -> str:
        return f"{self.type}#{self.id}"


# ============================================================================
# Database Tables
# ============================================================================


class FileRecord(SQLModel, table=True):
    """
    Metadata record for an attached file.

    Uses polymorphic association via owner_type and owner_id to link to the
    owning entity. For every owner, a non-null slot holds at most one record.
    """
    __tablename__ = "clippedfile"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    mime_type: str | None = Field(default=None, max_length=255)
    slot: str | None = Field(default=None, max_length=255, index=True)
    owner_type: str | None = Field(default=None, max_length=255)
    owner_id: str | None = Field(default=None, max_length=255)
    # Free-form metadata for processors and drivers
    attributes: dict = Field(default_factory=dict, sa_column=Column(JSON))
    created_on: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        UniqueConstraint("owner_type", "owner_id", "slot", name="uq_clippedfile_owner_slot"),
    )

    model_config = ConfigDict(from_attributes=True)

    @property
    def owner(self) -> Owner | None:
        if self.owner_type is None or self.owner_id is None:
            return None
        return Owner(type=self.owner_type, id=self.owner_id)

    def attach_to(self, owner: Owner | None) -> None:
        self.owner_type = owner.type if owner else None
        self.owner_id = owner.id if owner else None


# ============================================================================
# Working files
# ============================================================================


class Artifact(BaseModel):
    """
    A file on local disk that is being saved, processed or served.

    ``staged`` marks temporary copies owned by clipper (downloads, originals
    materialized by a driver); those are removed with ``discard``.
    """
    path: Path
    mime_type: str | None = None
    staged: bool = False

    @classmethod
    def from_path(cls, path: str | Path, mime_type: str | None = None) -> "Artifact":
        path = Path(path)
        if mime_type is None:
            mime_type, _ = mimetypes.guess_type(path.name)
        return cls(path=path, mime_type=mime_type or "application/octet-stream")

    @property
    def size(self) -> int:
        return self.path.stat().st_size

    def read_bytes(self) -> bytes:
        return self.path.read_bytes()

    def discard(self) -> None:
        """Remove the file if clipper staged it."""
        if self.staged:
            self.path.unlink(missing_ok=True)
