"""
FileRecord repository - metadata persistence for attached files.
"""

import logging
import uuid as uuid_module
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select, col

from clipper.core.errors import SlotConflict
from clipper.filerecord.models import FileRecord, Owner, normalize_slot


logger = logging.getLogger(__name__)

RECORD_COLUMNS = ("mime_type", "slot", "owner_type", "owner_id")


class FileRecordRepository:
    """
    Stores FileRecords through a SQLModel session.

    ``stage`` flushes a change inside the current transaction so several
    slot updates can be applied in order and committed together.
    """

    def __init__(self, session: Session):
        self.session = session

    def create(self, attributes: dict) -> FileRecord:
        """
        Create a record. Known columns are taken from ``attributes``; any
        other keys end up in the record's attribute map.
        """
        attributes = dict(attributes)
        owner = attributes.pop("owner", None)
        fields = {key: attributes.pop(key) for key in RECORD_COLUMNS if key in attributes}
        fields["slot"] = normalize_slot(fields.get("slot"))

        record = FileRecord(**fields, attributes=attributes)
        if owner is not None:
            record.attach_to(owner)

        self.save(record)
        logger.info("Created file record %s (%s)", record.id, record.mime_type)
        return record

    def get_by_id(self, record_id) -> FileRecord | None:
        if not isinstance(record_id, uuid_module.UUID):
            try:
                record_id = uuid_module.UUID(str(record_id))
            except ValueError:
                return None
        return self.session.get(FileRecord, record_id)

    def get_by_slot(self, slot, owner: Owner | None = None) -> FileRecord | None:
        """Find the occupant of a slot, scoped to owner or to unattached records."""
        slot = normalize_slot(slot)
        if slot is None:
            return None
        stmt = self._scope(select(FileRecord), owner).where(FileRecord.slot == slot)
        return self.session.exec(stmt).first()

    def find(
        self,
        owner: Owner | None = None,
        mime_types: list[str] | None = None,
        slots: list | None = None,
    ) -> list[FileRecord]:
        """
        List records, optionally narrowed to one owner, to a set of mime
        types and to a set of slots. Without an owner every record matches.
        """
        stmt = select(FileRecord)
        if owner is not None:
            stmt = self._scope(stmt, owner)
        if slots:
            stmt = stmt.where(col(FileRecord.slot).in_([normalize_slot(s) for s in slots]))
        if mime_types:
            stmt = stmt.where(col(FileRecord.mime_type).in_(mime_types))
        stmt = stmt.order_by(col(FileRecord.created_on))
        return list(self.session.exec(stmt).all())

    def stage(self, record: FileRecord) -> None:
        """Write pending changes for record without committing."""
        self.session.add(record)
        try:
            self.session.flush()
        except IntegrityError as exc:
            slot, owner = record.slot, record.owner
            self.session.rollback()
            raise SlotConflict(slot, owner) from exc

    def save(self, record: FileRecord) -> None:
        self.stage(record)
        self.commit()
        self.refresh(record)

    def refresh(self, record: FileRecord) -> None:
        self.session.refresh(record)

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()

    def destroy(self, record: FileRecord) -> None:
        record_id = record.id
        self.session.delete(record)
        self.session.commit()
        logger.info("Destroyed file record %s", record_id)

    @staticmethod
    def _scope(stmt, owner: Owner | None):
        if owner is None:
            return stmt.where(
                col(FileRecord.owner_type).is_(None),
                col(FileRecord.owner_id).is_(None),
            )
        return stmt.where(
            FileRecord.owner_type == owner.type,
            FileRecord.owner_id == owner.id,
        )
