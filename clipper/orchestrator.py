"""
AttachmentOrchestrator - the entry point for client code.

Composes the record repository, the processing pipeline, the storage
drivers, the slot allocator and the batch executor.
"""

import logging
from typing import Callable, Mapping

from clipper.batch.services import BatchExecutor
from clipper.core.errors import ConfigurationError
from clipper.core.fetch import HttpFetcher, stage_bytes
from clipper.filerecord.models import Artifact, FileRecord, Owner
from clipper.filerecord.repository import FileRecordRepository
from clipper.pipeline.models import PipelineEvent
from clipper.pipeline.services import ProcessPipeline
from clipper.slots.services import SlotAllocator
from clipper.storage.base import DriverRegistry, StorageDriver
from clipper.storage.services import VariantCache


logger = logging.getLogger(__name__)


def _as_list(value) -> list | None:
    if value is None:
        return None
    return list(value) if isinstance(value, (list, tuple, set)) else [value]


class AttachmentOrchestrator:
    """
    Saves, deletes, moves and serves attached files.

    Options maps accepted by the save operations may carry an
    ``attributes`` dict (e.g. ``{"slot": "avatar"}``) merged into the new
    record, and the active driver's modification key (``filters`` by
    default) selecting a derived variant.
    """

    def __init__(
        self,
        repository: FileRecordRepository,
        drivers: DriverRegistry | Mapping[str, StorageDriver] | None,
        pipeline: ProcessPipeline | None = None,
        fetcher: Callable[[str], bytes] | None = None,
    ):
        if not drivers:
            raise ConfigurationError(
                "You must configure at least one file storage driver for clipper to use."
            )
        if not isinstance(drivers, DriverRegistry):
            drivers = DriverRegistry(drivers)

        self.repository = repository
        self.drivers = drivers
        self.driver_name = drivers.default
        self.pipeline = pipeline or ProcessPipeline()
        self.fetcher = fetcher or HttpFetcher()
        self.slots = SlotAllocator(repository, self.pipeline)
        self.variants = VariantCache(self.pipeline)
        self.batch_executor = BatchExecutor(self)

    #
    # General methods
    #

    def use_driver(self, name: str) -> None:
        """Select which driver subsequent calls use."""
        self.drivers.get(name)
        self.driver_name = name
        logger.info("Using storage driver '%s'", name)

    def get_driver(self, name: str | None = None) -> StorageDriver:
        return self.drivers.get(name or self.driver_name)

    def get_by_id(self, record_id) -> FileRecord | None:
        return self.repository.get_by_id(record_id)

    def get_by_slot(self, slot, owner: Owner | None = None) -> FileRecord | None:
        return self.repository.get_by_slot(slot, owner)

    def get_files_for(
        self,
        owner: Owner | None = None,
        mime_types: str | list[str] | None = None,
        slots=None,
    ) -> list[FileRecord]:
        """
        Files of owner (of every owner when None), optionally narrowed to
        one or many mime types and one or many slots.
        """
        return self.repository.find(
            owner=owner,
            mime_types=_as_list(mime_types),
            slots=_as_list(slots),
        )

    def get_public_uri(self, record: FileRecord, options: dict | None = None) -> str | None:
        """Locator of a variant; the variant is produced and cached on first use."""
        return self.variants.get_public_uri(self.get_driver(), record, options or {})

    def get_public_uri_by_id(self, record_id, options: dict | None = None) -> str | None:
        record = self.get_by_id(record_id)
        if record is None:
            return None
        return self.get_public_uri(record, options)

    def get_public_uri_by_slot(
        self,
        slot,
        owner: Owner | None = None,
        options: dict | None = None,
    ) -> str | None:
        record = self.get_by_slot(slot, owner)
        if record is None:
            return None
        return self.get_public_uri(record, options)

    #
    # Saving
    #

    def save_from_artifact(
        self,
        artifact: Artifact,
        owner: Owner | None = None,
        options: dict | None = None,
    ) -> FileRecord | None:
        """
        Save a local file as a new record.

        Returns None, with nothing created or stored, when the onBeforeSave
        pass aborts. A slot given in the attributes is claimed for owner;
        a previous occupant is kept but left without a slot.
        """
        options = options or {}

        # Pre-save processing, such as validation
        outcome = self.pipeline.dispatch(artifact, PipelineEvent.ON_BEFORE_SAVE, options)
        if outcome.aborted:
            return None
        processed = outcome.subject

        attributes = self._record_attributes(processed, options)
        slot = attributes.pop("slot", None)
        record = self.repository.create(attributes)

        driver = self.get_driver()
        try:
            driver.save_file(processed, record)
        except Exception:
            self.repository.destroy(record)
            raise
        finally:
            if processed is not artifact:
                processed.discard()

        if owner is not None or slot is not None:
            record.attach_to(owner)
            self.slots.assign(record, slot)

        # Default view of the original
        self.variants.save_variant(driver, driver.temp_original(record), record, options)

        return record

    def save_from_uri(
        self,
        uri: str,
        owner: Owner | None = None,
        options: dict | None = None,
    ) -> FileRecord | None:
        """Download uri and save it; raises FetchFailure when it cannot be fetched."""
        content = self.fetcher(uri)
        artifact = stage_bytes(content, uri)
        try:
            return self.save_from_artifact(artifact, owner, options)
        finally:
            artifact.discard()

    #
    # Deleting
    #

    def delete(self, record: FileRecord, options: dict | None = None) -> bool:
        """
        Delete the variant selected by options. Deleting the original
        (no modification entry, or an empty one) also destroys the record.

        Returns False when the onDelete pass aborted.
        """
        options = options or {}
        outcome = self.pipeline.dispatch(record, PipelineEvent.ON_DELETE, options)
        if outcome.aborted:
            return False
        record = outcome.subject

        driver = self.get_driver()
        driver.delete(record, options)

        if driver.is_original(options):
            self.repository.destroy(record)

        return True

    def delete_by_id(self, record_id, options: dict | None = None) -> bool:
        record = self.get_by_id(record_id)
        if record is None:
            return False
        return self.delete(record, options)

    def delete_by_slot(self, slot, owner: Owner | None = None) -> bool:
        record = self.get_by_slot(slot, owner)
        if record is None:
            return False
        return self.delete(record)

    #
    # Slots
    #

    def move_to_slot(self, record: FileRecord, slot) -> FileRecord | None:
        return self.slots.move_to_slot(record, slot)

    def batch(
        self,
        operations: Mapping | None = None,
        artifacts: Mapping[str, Artifact] | None = None,
        owner: Owner | None = None,
    ) -> None:
        """
        Apply slot operations, then uploads, for owner.

        Operation values: empty deletes the slot's file, a record id moves
        that record in (swapping), an http(s) URL imports a new file into the slot.
        """
        self.batch_executor.run(operations, artifacts, owner)

    #
    # Utility methods
    #

    @staticmethod
    def _record_attributes(artifact: Artifact, options: dict) -> dict:
        attributes = {"mime_type": artifact.mime_type}
        if isinstance(options.get("attributes"), dict):
            attributes.update(options["attributes"])
        return attributes
