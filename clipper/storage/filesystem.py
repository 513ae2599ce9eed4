"""
Local filesystem storage driver.

Layout: ``<root>/<record id>/<variant key><ext>``.
"""

import logging
import shutil
import tempfile
from pathlib import Path

from clipper.filerecord.models import Artifact, FileRecord
from clipper.storage.base import StorageDriver, DEFAULT_MODIFICATION_KEY


logger = logging.getLogger(__name__)


class FilesystemDriver(StorageDriver):
    """Stores files under a local directory served from ``public_prefix``."""

    def __init__(
        self,
        root: str | Path,
        public_prefix: str = "/files",
        modification_key: str = DEFAULT_MODIFICATION_KEY,
    ):
        super().__init__(modification_key)
        self.root = Path(root).resolve()
        self.public_prefix = public_prefix.rstrip("/")

    def record_dir(self, record: FileRecord) -> Path:
        return self.root / str(record.id)

    def path_for(self, record: FileRecord, options: dict | None = None) -> Path:
        return self.record_dir(record) / self.filename(record, options)

    def has(self, record, options=None):
        return self.path_for(record, options).is_file()

    def temp_original(self, record):
        source = self.path_for(record)
        with source.open("rb") as original, tempfile.NamedTemporaryFile(
            suffix=source.suffix, delete=False
        ) as handle:
            shutil.copyfileobj(original, handle)
        target = Path(handle.name)
        return Artifact(path=target, mime_type=record.mime_type, staged=True)

    def save_file(self, artifact, record, options=None):
        target = self.path_for(record, options)
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(artifact.path, target)
        logger.debug("Stored %s", target)

    def delete(self, record, options=None):
        if self.is_original(options):
            record_dir = self.record_dir(record)
            if record_dir.exists():
                shutil.rmtree(record_dir)
            logger.debug("Removed all stored files of record %s", record.id)
            return
        self.path_for(record, options).unlink(missing_ok=True)

    def get_public_uri(self, record, options=None):
        return f"{self.public_prefix}/{record.id}/{self.filename(record, options)}"
