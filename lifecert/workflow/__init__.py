"""Verification workflow: state machine, outcome decider, event log and timers."""

from lifecert.workflow.decider import Outcome, OutcomeDecider, Phase
from lifecert.workflow.event_log import EventLog
from lifecert.workflow.registry import WorkflowRegistry, workflow_registry
from lifecert.workflow.state_machine import (
    INVALID_QUESTION_INDEX,
    INVALID_STATE_TRANSITION,
    VerificationWorkflow,
)
from lifecert.workflow.timer import (
    AsyncioTimerService,
    ManualTimerService,
    ScheduledStep,
    TimerService,
)

__all__ = [
    "Outcome",
    "OutcomeDecider",
    "Phase",
    "EventLog",
    "WorkflowRegistry",
    "workflow_registry",
    "INVALID_QUESTION_INDEX",
    "INVALID_STATE_TRANSITION",
    "VerificationWorkflow",
    "AsyncioTimerService",
    "ManualTimerService",
    "ScheduledStep",
    "TimerService",
]
