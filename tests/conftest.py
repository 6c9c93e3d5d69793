from datetime import datetime, timezone

import pytest

from lifecert.workflow import ManualTimerService, OutcomeDecider, VerificationWorkflow

START = datetime(2025, 1, 1, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def timer():
    return ManualTimerService(start=START)


@pytest.fixture
def make_workflow(timer):
    """Build a workflow whose decider draws the given values in order.

    Drawing more values than supplied raises StopIteration inside the
    decider; the workflow logs it and takes the unfavourable outcome.
    """
    def _make(*values):
        decider = OutcomeDecider(rng=iter(values).__next__)
        return VerificationWorkflow(timer=timer, decider=decider)
    return _make
