"""
Stage events emitted by the render pipeline.

The pipeline reports each stage (timing and outcome) to an observer and
never logs by itself. The HTTP layer plugs in LoggingStageObserver.
"""

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)

OUTCOME_OK = "ok"
OUTCOME_ERROR = "error"
OUTCOME_CLEANUP_ERROR = "cleanup_error"


@dataclass(frozen=True)
class StageEvent:
    """One finished pipeline stage."""

    stage: str
    duration_ms: float
    outcome: str
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.outcome != OUTCOME_OK


StageObserver = Callable[[StageEvent], None]


def null_observer(event: StageEvent) -> None:
    return None


class LoggingStageObserver:
    """
    Forward stage events to the standard logger.

    Every line carries the request id so a 500 response can be traced back
    to the failing stage.
    """

    def __init__(self, request_id: str, log: Optional[logging.Logger] = None):
        self.request_id = request_id
        self.log = log or logger

    def __call__(self, event: StageEvent) -> None:
        message = (
            f"[{self.request_id}] stage={event.stage} outcome={event.outcome} "
            f"duration_ms={event.duration_ms:.1f}"
        )
        if event.outcome == OUTCOME_OK:
            self.log.info(message)
        elif event.outcome == OUTCOME_CLEANUP_ERROR:
            self.log.warning(f"{message} error={event.error}")
        else:
            self.log.error(f"{message} error={event.error}")


class RecordingStageObserver:
    """Keep events in memory (startup self-check and tests)."""

    def __init__(self):
        self.events: List[StageEvent] = []

    def __call__(self, event: StageEvent) -> None:
        self.events.append(event)

    @property
    def stages(self) -> List[str]:
        return [event.stage for event in self.events]
