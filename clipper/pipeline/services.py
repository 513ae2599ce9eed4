"""
Services for the processing pipeline.
"""

import logging
from typing import Any, Iterable

from clipper.pipeline.models import Abort, Continue, Outcome, PipelineEvent, Processor


logger = logging.getLogger(__name__)


class ProcessPipeline:
    """
    Ordered chain of processors.

    A dispatch feeds the subject through every processor registered for the
    event, in declaration order, each one consuming the previous output. The
    first Abort stops the chain. Work done by earlier processors is not
    undone; cleaning up is left to the caller.
    """

    def __init__(self, processors: Iterable[Processor] | None = None):
        self.processors: list[Processor] = list(processors or [])

    def register(self, processor: Processor) -> Processor:
        self.processors.append(processor)
        return processor

    def processors_for(self, event: PipelineEvent, mime_type: str | None = None) -> list[Processor]:
        return [p for p in self.processors if p.handles(event, mime_type)]

    def dispatch(
        self,
        subject: Any,
        event: PipelineEvent | str,
        options: dict | None = None,
    ) -> Outcome:
        event = PipelineEvent(event)
        options = options or {}
        mime_type = getattr(subject, "mime_type", None)

        current = subject
        for processor in self.processors_for(event, mime_type):
            outcome = processor.handle(current, event, options)
            if isinstance(outcome, Abort):
                logger.info(
                    "%s aborted %s: %s",
                    processor.name,
                    event.value,
                    outcome.reason or "no reason given",
                )
                if outcome.processor is None:
                    outcome = outcome.model_copy(update={"processor": processor.name})
                return outcome
            if not isinstance(outcome, Continue):
                raise TypeError(
                    f"Processor {processor.name} returned {type(outcome).__name__}, "
                    "expected Continue or Abort"
                )
            current = outcome.subject

        return Continue(subject=current)
