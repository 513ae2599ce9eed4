"""
Pipeline Models - lifecycle events, dispatch outcomes and processors.
"""

from abc import ABC, abstractmethod
from enum import Enum
from fnmatch import fnmatch
from typing import Any, Callable, Iterable
from pydantic import BaseModel, ConfigDict


class PipelineEvent(str, Enum):
    """Lifecycle points at which processors run."""
    ON_BEFORE_SAVE = "onBeforeSave"
    ON_SAVE = "onSave"
    ON_DELETE = "onDelete"
    ON_MOVE = "onMove"


class Continue(BaseModel):
    """Dispatch went through; ``subject`` is the (possibly replaced) input."""
    subject: Any

    model_config = ConfigDict(frozen=True)

    @property
    def aborted(self) -> bool:
        return False


class Abort(BaseModel):
    """A processor rejected the subject; the operation must not happen."""
    reason: str | None = None
    processor: str | None = None

    model_config = ConfigDict(frozen=True)

    @property
    def aborted(self) -> bool:
        return True


Outcome = Continue | Abort


class Processor(ABC):
    """
    Base class for pipeline processors.

    Subclasses declare the events they take part in and, optionally, the
    mime types they apply to (``fnmatch`` patterns such as ``image/*``).
    """
    events: tuple[PipelineEvent, ...] = ()
    mime_types: tuple[str, ...] | None = None

    @property
    def name(self) -> str:
        return type(self).__name__

    def handles(self, event: PipelineEvent, mime_type: str | None = None) -> bool:
        if PipelineEvent(event) not in self.events:
            return False
        # Mime gating only applies once the subject's type is known
        if mime_type is None or self.mime_types is None:
            return True
        return any(fnmatch(mime_type, pattern) for pattern in self.mime_types)

    @abstractmethod
    def handle(self, subject: Any, event: PipelineEvent, options: dict) -> Outcome:
        """Return Continue(subject') to pass the subject on, or Abort()."""


class FunctionProcessor(Processor):
    """Wraps a plain callable ``func(subject, event, options) -> Outcome``."""

    def __init__(
        self,
        func: Callable[[Any, PipelineEvent, dict], Outcome],
        events: Iterable[PipelineEvent | str],
        mime_types: Iterable[str] | None = None,
    ):
        self.func = func
        self.events = tuple(PipelineEvent(event) for event in events)
        self.mime_types = tuple(mime_types) if mime_types is not None else None

    @property
    def name(self) -> str:
        return getattr(self.func, "__name__", type(self).__name__)

    def handle(self, subject, event, options):
        return self.func(subject, event, options)
