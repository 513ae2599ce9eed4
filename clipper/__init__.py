"""
Clipper - slot-based file attachments.

Attach files to arbitrary owning entities through named slots, run every
save/delete/move through a processing pipeline, and lazily cache
transformed variants behind a swappable storage driver.
"""

from clipper.core.errors import (
    ClipperError,
    ConfigurationError,
    FetchFailure,
    SlotConflict,
)
from clipper.filerecord.models import Artifact, FileRecord, Owner
from clipper.orchestrator import AttachmentOrchestrator
from clipper.pipeline.models import (
    Abort,
    Continue,
    FunctionProcessor,
    PipelineEvent,
    Processor,
)
from clipper.pipeline.services import ProcessPipeline
from clipper.storage.base import DriverRegistry, StorageDriver

__all__ = [
    "Abort",
    "Artifact",
    "AttachmentOrchestrator",
    "ClipperError",
    "ConfigurationError",
    "Continue",
    "DriverRegistry",
    "FetchFailure",
    "FileRecord",
    "FunctionProcessor",
    "Owner",
    "PipelineEvent",
    "ProcessPipeline",
    "Processor",
    "SlotConflict",
    "StorageDriver",
]
