"""In-memory registry of verification workflows.

Each workflow is an independent instance with its own ID, timer and
decider, so several customer sessions can be served by one process.
Nothing survives a restart.
"""

import logging
from typing import Callable

from lifecert.workflow.decider import OutcomeDecider
from lifecert.workflow.state_machine import VerificationWorkflow
from lifecert.workflow.timer import AsyncioTimerService, TimerService

logger = logging.getLogger(__name__)


class WorkflowRegistry:
    """Creates and tracks workflows by ID."""

    def __init__(
        self,
        timer_factory: Callable[[], TimerService] = AsyncioTimerService,
        decider_factory: Callable[[], OutcomeDecider] = OutcomeDecider,
    ):
        self._timer_factory = timer_factory
        self._decider_factory = decider_factory
        self._workflows: dict[str, VerificationWorkflow] = {}

    def create(self) -> VerificationWorkflow:
        workflow = VerificationWorkflow(
            timer=self._timer_factory(),
            decider=self._decider_factory(),
        )
        self._workflows[workflow.workflow_id] = workflow
        logger.info(f"Created workflow {workflow.workflow_id}")
        return workflow

    def get(self, workflow_id: str) -> VerificationWorkflow | None:
        return self._workflows.get(workflow_id)

    def list_workflows(self) -> list[VerificationWorkflow]:
        return list(self._workflows.values())

    def remove(self, workflow_id: str) -> bool:
        """Remove a workflow and drop its pending steps. Returns False if unknown."""
        workflow = self._workflows.pop(workflow_id, None)
        if workflow is None:
            return False
        workflow.timer.shutdown()
        logger.info(f"Removed workflow {workflow_id}")
        return True

    def shutdown(self) -> None:
        for workflow in self._workflows.values():
            workflow.timer.shutdown()
        self._workflows.clear()


# Global instance
workflow_registry = WorkflowRegistry()
