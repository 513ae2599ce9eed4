"""
Slot allocation.

Every owner holds at most one record per non-null slot. Moving a record
into an occupied slot swaps it with the occupant instead of overwriting:
the occupant takes the mover's previous slot, or is left without a slot
when the mover had none.
"""

import logging

from clipper.core.errors import SlotConflict
from clipper.filerecord.models import FileRecord, normalize_slot
from clipper.filerecord.repository import FileRecordRepository
from clipper.pipeline.models import PipelineEvent
from clipper.pipeline.services import ProcessPipeline


logger = logging.getLogger(__name__)


class SlotAllocator:

    def __init__(self, repository: FileRecordRepository, pipeline: ProcessPipeline):
        self.repository = repository
        self.pipeline = pipeline

    def move_to_slot(self, record: FileRecord, slot) -> FileRecord | None:
        """
        Move record into slot after an onMove pipeline pass.

        Returns the moved record, or None when a processor aborted the move.
        """
        outcome = self.pipeline.dispatch(record, PipelineEvent.ON_MOVE)
        if outcome.aborted:
            logger.info("Move of record %s to slot %r aborted", record.id, slot)
            return None

        record = outcome.subject
        self.assign(record, slot)
        return record

    def assign(self, record: FileRecord, slot) -> FileRecord | None:
        """
        Put record into slot for its owner, swapping with any occupant.

        Returns the displaced occupant, if there was one.
        """
        slot = normalize_slot(slot)
        previous_slot = record.slot
        owner = record.owner

        occupant = self.repository.get_by_slot(slot, owner) if slot is not None else None
        if occupant is None or occupant.id == record.id:
            record.slot = slot
            try:
                self.repository.save(record)
                return None
            except SlotConflict:
                # Someone took the slot between the lookup and the write
                occupant = self.repository.get_by_slot(slot, owner)
                if occupant is None:
                    raise

        self._swap(record, occupant, slot, previous_slot)
        return occupant

    def _swap(self, record: FileRecord, occupant: FileRecord, slot: str, previous_slot: str | None):
        logger.info(
            "Slot %r of %s is held by record %s; swapping with record %s",
            slot,
            record.owner or "unattached files",
            occupant.id,
            record.id,
        )
        # Each step is flushed in order so the unique constraint holds at
        # every point; the three steps commit or roll back together.
        try:
            occupant.slot = None
            self.repository.stage(occupant)

            record.slot = slot
            self.repository.stage(record)

            if previous_slot is not None:
                occupant.slot = previous_slot
                self.repository.stage(occupant)

            self.repository.commit()
        except Exception:
            self.repository.rollback()
            raise

        self.repository.refresh(record)
        self.repository.refresh(occupant)
