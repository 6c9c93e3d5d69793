"""Outcome decision for the capture and re-verification phases."""

import logging
import random
from enum import Enum
from typing import Callable

from lifecert.config import settings
from lifecert.models import VerificationMode

logger = logging.getLogger(__name__)


class Phase(str, Enum):
    """Which decision is being made."""
    FIRST_PASS = "first_pass"
    RE_VERIFY = "re_verify"


class Outcome(str, Enum):
    """Decision outcome."""
    SUCCESS = "success"
    SUSPICIOUS = "suspicious"  # first pass only, needs follow-up
    FAIL = "fail"  # re-verification only


class OutcomeDecider:
    """
    Decides verification outcomes from a random draw.

    First pass: a draw below the mode's suspicion probability is suspicious,
    anything else succeeds. Re-verification: a draw below the clear
    probability succeeds, anything else fails. The override flag forces the
    unfavourable outcome in both phases without drawing.

    The random source is any zero-argument callable returning a float in
    [0, 1), so tests can inject fixed values.
    """

    def __init__(
        self,
        rng: Callable[[], float] | None = None,
        remote_suspicion: float | None = None,
        agent_location_suspicion: float | None = None,
        follow_up_clear: float | None = None,
    ):
        self._rng = rng or random.Random().random
        self.remote_suspicion = (
            settings.remote_suspicion_probability if remote_suspicion is None else remote_suspicion
        )
        self.agent_location_suspicion = (
            settings.agent_location_suspicion_probability
            if agent_location_suspicion is None
            else agent_location_suspicion
        )
        self.follow_up_clear = (
            settings.follow_up_clear_probability if follow_up_clear is None else follow_up_clear
        )

    def suspicion_probability(self, mode: VerificationMode) -> float:
        if mode == VerificationMode.AGENT_LOCATION:
            return self.agent_location_suspicion
        return self.remote_suspicion

    def decide(self, mode: VerificationMode, override: bool, phase: Phase) -> Outcome:
        """
        Decide the outcome of a verification phase.

        Args:
            mode: Capture mode chosen for the run
            override: Force the unfavourable outcome
            phase: First pass or re-verification after follow-up

        Returns:
            Outcome: SUCCESS or SUSPICIOUS on first pass, SUCCESS or FAIL on re-verify
        """
        if phase == Phase.FIRST_PASS:
            if override:
                logger.info("Override set: forcing suspicious first-pass outcome")
                return Outcome.SUSPICIOUS
            threshold = self.suspicion_probability(mode)
            draw = self._rng()
            logger.debug(f"First pass draw={draw:.3f} threshold={threshold:.3f} mode={mode.value}")
            return Outcome.SUSPICIOUS if draw < threshold else Outcome.SUCCESS

        if override:
            logger.info("Override set: forcing failed re-verification")
            return Outcome.FAIL
        draw = self._rng()
        logger.debug(f"Re-verify draw={draw:.3f} threshold={self.follow_up_clear:.3f}")
        return Outcome.SUCCESS if draw < self.follow_up_clear else Outcome.FAIL
