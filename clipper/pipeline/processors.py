"""
Validation processors bundled with clipper.

Both run before a file is saved and abort the save when the incoming
file breaks the configured limits.
"""

from fnmatch import fnmatch

from clipper.pipeline.models import Abort, Continue, PipelineEvent, Processor


class MaxSizeValidator(Processor):
    """Rejects files larger than ``max_bytes``."""
    events = (PipelineEvent.ON_BEFORE_SAVE,)

    def __init__(self, max_bytes: int):
        self.max_bytes = max_bytes

    def handle(self, subject, event, options):
        size = subject.size
        if size > self.max_bytes:
            return Abort(reason=f"File size {size} exceeds limit of {self.max_bytes} bytes")
        return Continue(subject=subject)


class MimeTypeValidator(Processor):
    """Rejects files whose mime type matches none of ``allowed``."""
    events = (PipelineEvent.ON_BEFORE_SAVE,)

    def __init__(self, allowed: list[str]):
        # Kept separate from Processor.mime_types: that attribute would skip
        # disallowed files instead of rejecting them.
        self.allowed = tuple(allowed)

    def handle(self, subject, event, options):
        mime_type = subject.mime_type or ""
        if not any(fnmatch(mime_type, pattern) for pattern in self.allowed):
            return Abort(reason=f"Mime type '{mime_type}' is not allowed")
        return Continue(subject=subject)
