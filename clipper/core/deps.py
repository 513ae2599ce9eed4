"""
Define functions for wiring clipper components from settings
"""
from collections.abc import Generator
from sqlmodel import Session

from clipper.core.config import Settings, get_settings
from clipper.core.db import get_session
from clipper.core.errors import ConfigurationError
from clipper.core.fetch import HttpFetcher
from clipper.core.logger import logger
from clipper.filerecord.repository import FileRecordRepository
from clipper.orchestrator import AttachmentOrchestrator
from clipper.pipeline.processors import MaxSizeValidator, MimeTypeValidator
from clipper.pipeline.services import ProcessPipeline
from clipper.storage.base import DriverRegistry, StorageDriver
from clipper.storage.filesystem import FilesystemDriver
from clipper.storage.s3 import S3Driver


def build_drivers(settings: Settings, s3_client=None) -> DriverRegistry:
  """
  Instantiate the storage drivers named in STORAGE_DRIVERS, in order.
  """
  drivers: dict[str, StorageDriver] = {}
  for name in settings.STORAGE_DRIVERS:
    if name == "filesystem":
      drivers[name] = FilesystemDriver(
        root=settings.FILESYSTEM_ROOT,
        public_prefix=settings.FILESYSTEM_PUBLIC_PREFIX,
        modification_key=settings.MODIFICATION_KEY,
      )
    elif name == "s3":
      if not settings.S3_BUCKET_URI:
        raise ConfigurationError("S3 storage driver requires S3_BUCKET_URI")
      drivers[name] = S3Driver(
        bucket_uri=settings.S3_BUCKET_URI,
        s3_client=s3_client,
        public_prefix=settings.S3_PUBLIC_PREFIX,
        presign_expiry=settings.S3_PRESIGN_EXPIRY,
        modification_key=settings.MODIFICATION_KEY,
      )
    else:
      raise ConfigurationError(f"Unknown storage driver '{name}'")
    logger.info("Registered storage driver '%s'", name)

  return DriverRegistry(drivers, default=settings.DEFAULT_STORAGE_DRIVER)


def build_pipeline(settings: Settings) -> ProcessPipeline:
  """
  Pipeline with the validators enabled in settings. Callers register
  their own processors on the returned pipeline.
  """
  pipeline = ProcessPipeline()
  if settings.MAX_ARTIFACT_SIZE_MB:
    pipeline.register(MaxSizeValidator(settings.MAX_ARTIFACT_SIZE_MB * 1024 * 1024))
  if settings.ALLOWED_MIME_TYPES:
    pipeline.register(MimeTypeValidator(settings.ALLOWED_MIME_TYPES))
  return pipeline


def get_orchestrator(
  session: Session,
  settings: Settings | None = None,
  pipeline: ProcessPipeline | None = None,
) -> AttachmentOrchestrator:
  settings = settings or get_settings()
  return AttachmentOrchestrator(
    repository=FileRecordRepository(session),
    drivers=build_drivers(settings),
    pipeline=pipeline or build_pipeline(settings),
    fetcher=HttpFetcher(timeout=settings.FETCH_TIMEOUT),
  )


# Yield an orchestrator bound to a session from get_session
def orchestrator_session() -> Generator[AttachmentOrchestrator, None, None]:
  sessions = get_session()
  try:
    for session in sessions:
      yield get_orchestrator(session)
  finally:
    sessions.close()
