"""
Services for stored variants.

Variants are produced by running a staged copy of the original through
the onSave pipeline pass and are cached by the active driver.
"""

import logging

from clipper.filerecord.models import Artifact, FileRecord
from clipper.pipeline.models import PipelineEvent
from clipper.pipeline.services import ProcessPipeline
from clipper.storage.base import StorageDriver


logger = logging.getLogger(__name__)


class VariantCache:
    """Produces variants on demand and serves them from the driver afterwards."""

    def __init__(self, pipeline: ProcessPipeline):
        self.pipeline = pipeline

    def save_variant(
        self,
        driver: StorageDriver,
        staged: Artifact,
        record: FileRecord,
        options: dict | None = None,
    ) -> bool:
        """
        Run a staged artifact through onSave and store the result as the
        variant selected by options. Staged files are discarded afterwards,
        whether the pipeline aborted or not.

        Returns False when the pipeline aborted.
        """
        outcome = None
        try:
            outcome = self.pipeline.dispatch(staged, PipelineEvent.ON_SAVE, options)
            if outcome.aborted:
                logger.info(
                    "Variant %s of record %s was not stored",
                    driver.variant_key(options),
                    record.id,
                )
                return False
            driver.save_file(outcome.subject, record, options)
            return True
        finally:
            staged.discard()
            if outcome is not None and not outcome.aborted and isinstance(outcome.subject, Artifact):
                outcome.subject.discard()

    def get_public_uri(
        self,
        driver: StorageDriver,
        record: FileRecord,
        options: dict | None = None,
    ) -> str | None:
        """
        Locator of a variant, materializing it on first request.

        Returns None when the pipeline refused to produce the variant.
        """
        if not driver.has(record, options):
            logger.info(
                "Materializing variant %s of record %s",
                driver.variant_key(options),
                record.id,
            )
            if not self.save_variant(driver, driver.temp_original(record), record, options):
                return None

        return driver.get_public_uri(record, options)
