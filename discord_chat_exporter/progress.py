"""Progress and completion notifications.

The sinks themselves belong to whoever drives the export (the CLI prints,
a GUI would move a bar). Reporters only guarantee that the percentage
passed on never goes backwards within a run.
"""

import logging
from typing import Callable, Optional

from .models import ExportResult

logger = logging.getLogger(__name__)

ProgressSink = Callable[[int, str], None]
CompletionSink = Callable[[ExportResult], None]


class ProgressReporter:
    """Clamps percentages to 0-100 and keeps them monotonic."""

    def __init__(self, sink: Optional[ProgressSink] = None):
        self.sink = sink
        self.percent = 0

    def report(self, percent: float, label: str) -> None:
        value = max(self.percent, min(100, max(0, int(percent))))
        self.percent = value
        logger.debug("progress %d%%: %s", value, label)
        if self.sink is not None:
            self.sink(value, label)
