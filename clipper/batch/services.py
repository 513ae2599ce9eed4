"""
Batch slot operations.

A batch applies, against one owner, a mapping of slot -> operation and
then a mapping of slot -> uploaded artifact. Operations run first so that
deletes and moves clear the way before uploads are slotted in.

Moves keep the moved record's own owner: the batch owner only scopes the
slot lookup, so an unattached record moved into a slot lands in the
unattached scope. Imports accept http/https URLs only; file:// values
are skipped.
"""

import logging
import uuid as uuid_module
from typing import TYPE_CHECKING, Callable, Mapping

from clipper.core.errors import FetchFailure
from clipper.core.fetch import is_remote_uri
from clipper.filerecord.models import Artifact, FileRecord, Owner


if TYPE_CHECKING:
    from clipper.orchestrator import AttachmentOrchestrator


logger = logging.getLogger(__name__)


def _as_record_id(operation) -> uuid_module.UUID | None:
    if isinstance(operation, uuid_module.UUID):
        return operation
    if isinstance(operation, str):
        try:
            return uuid_module.UUID(operation)
        except ValueError:
            return None
    return None


class BatchExecutor:

    def __init__(self, orchestrator: "AttachmentOrchestrator"):
        self.orchestrator = orchestrator

    def run(
        self,
        operations: Mapping | None = None,
        artifacts: Mapping[str, Artifact] | None = None,
        owner: Owner | None = None,
    ) -> None:
        for slot, operation in (operations or {}).items():
            self.apply(slot, operation, owner)

        for slot, artifact in (artifacts or {}).items():
            self._with_retry(
                slot,
                owner,
                lambda: self.orchestrator.save_from_artifact(
                    artifact, owner, {"attributes": {"slot": slot}}
                ),
            )

    def apply(self, slot, operation, owner: Owner | None = None) -> None:
        """Apply one slot operation: delete, move or import from a URI."""
        # Deletes
        if not operation:
            self.orchestrator.delete_by_slot(slot, owner)
            return

        # Moves/swaps
        record_id = _as_record_id(operation)
        if record_id is not None:
            record = self.orchestrator.get_by_id(record_id)
            if record is None:
                logger.warning("Batch move into slot %r skipped: no record %s", slot, record_id)
                return
            self.orchestrator.move_to_slot(record, slot)
            return

        # Remote files
        if is_remote_uri(operation, local=False):
            self._with_retry(
                slot,
                owner,
                lambda: self.orchestrator.save_from_uri(
                    operation, owner, {"attributes": {"slot": slot}}
                ),
            )
            return

        logger.warning("Batch operation for slot %r not understood: %r", slot, operation)

    def _with_retry(
        self,
        slot,
        owner: Owner | None,
        save: Callable[[], FileRecord | None],
    ) -> FileRecord | None:
        """
        Run save; if it fails or is aborted, displace the slot's occupant and
        try exactly once more. A second FetchFailure propagates.
        """
        try:
            record = save()
        except FetchFailure as exc:
            logger.info("Saving into slot %r failed (%s); retrying", slot, exc)
            record = None
        else:
            if record is not None:
                return record
            logger.info("Saving into slot %r was aborted; retrying", slot)

        self.evict(slot, owner)
        return save()

    def evict(self, slot, owner: Owner | None = None) -> None:
        """Move the slot's current occupant out to no slot."""
        occupant = self.orchestrator.get_by_slot(slot, owner)
        if occupant is not None:
            logger.info("Evicting record %s from slot %r", occupant.id, slot)
            self.orchestrator.move_to_slot(occupant, None)
