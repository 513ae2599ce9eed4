"""
Clipper exceptions.

Storage backend failures (OSError, botocore ClientError, ...) are not
wrapped; they propagate to the caller unchanged.
"""


class ClipperError(Exception):
    """Base exception for clipper errors."""
    pass


class ConfigurationError(ClipperError):
    """Raised when no usable storage driver is configured."""
    pass


class FetchFailure(ClipperError):
    """Raised when bytes cannot be retrieved from a remote URI."""

    def __init__(self, uri: str, reason: str):
        self.uri = uri
        self.reason = reason
        super().__init__(f"Failed to fetch {uri}: {reason}")


class SlotConflict(ClipperError):
    """
    Raised by the repository when a write would put two records in the
    same slot of one owner. The slot allocator recovers from it; callers
    of the orchestrator never see it.
    """

    def __init__(self, slot, owner=None):
        self.slot = slot
        self.owner = owner
        super().__init__(f"Slot {slot!r} is already occupied for owner {owner}")
