"""
Export State Tracking

Records the lifecycle transitions of one export invocation.
"""

import logging
from typing import List, Optional

from roadmap_export.core.models import ExportState

logger = logging.getLogger(__name__)


class ExportTracker:
    """Invocation-local state machine record; starts in IDLE."""

    def __init__(self, export_id: str, logger: Optional[logging.Logger] = None):
        self.export_id = export_id
        self.logger = logger or logging.getLogger(__name__)
        self.states: List[ExportState] = [ExportState.IDLE]

    @property
    def state(self) -> ExportState:
        return self.states[-1]

    def enter(self, state: ExportState) -> None:
        if state == self.state:
            return
        self.logger.debug(f"Export {self.export_id}: {self.state} -> {state}")
        self.states.append(state)
