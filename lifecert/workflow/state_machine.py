"""
Life Certificate verification workflow.

State machine for one customer session:

    Idle → AwaitingModeChoice → Verifying → Issued
                                          → AwaitingFollowUp → ReVerifying → Issued
                                                                           → EscalatedToOffice
                                          → AwaitingFollowUp → EscalatedToOffice (visit)

Commands return immediately. Capture narration and decisions are scheduled
on the timer against the current run ID; ``start_run`` issues a new run ID,
so anything still scheduled for an older run is discarded when it fires.
Only one step sequence (the greeting or a decision) is in flight at a time,
tracked by ``running``.
"""

import logging
import uuid
from datetime import datetime

from lifecert.config import settings
from lifecert.models import (
    Certificate,
    CommandResult,
    FollowUpQuestionnaire,
    LogEntry,
    ResultNote,
    Speaker,
    VerificationMode,
    VerificationResult,
    WorkflowSnapshot,
    WorkflowState,
)
from lifecert.services import issue_certificate as issue_life_certificate
from lifecert.workflow import narration
from lifecert.workflow.decider import Outcome, OutcomeDecider, Phase
from lifecert.workflow.event_log import EventLog
from lifecert.workflow.timer import AsyncioTimerService, ScheduledStep, TimerService

logger = logging.getLogger(__name__)

INVALID_STATE_TRANSITION = "invalid_state_transition"
INVALID_QUESTION_INDEX = "invalid_question_index"


class VerificationWorkflow:
    """
    Annual KYC and Life Certificate workflow for one customer session.

    Invalid commands are rejected with a ``CommandResult`` carrying
    ``accepted=False``; no exception leaves the workflow.
    """

    def __init__(
        self,
        workflow_id: str | None = None,
        timer: TimerService | None = None,
        decider: OutcomeDecider | None = None,
    ):
        self.workflow_id = workflow_id or str(uuid.uuid4())
        self.timer = timer or AsyncioTimerService()
        self.decider = decider or OutcomeDecider()
        self.log = EventLog()
        self.state = WorkflowState.IDLE
        self.running = False
        self.override = False
        self.run_id: str | None = None
        self.mode: VerificationMode | None = None
        self.kyc_started_at: datetime | None = None
        self.result: VerificationResult | None = None
        self.questionnaire: FollowUpQuestionnaire | None = None

        self._narrate(Speaker.AGENT, narration.READY)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def start_run(self) -> CommandResult:
        """
        Start a fresh run from any state.

        Clears the log, result, questionnaire, mode and KYC start time,
        greets the customer and waits for a mode choice. The greeting counts
        as a running sequence: a mode can only be chosen once the mode
        question has been asked. Supersedes any sequence still in flight.
        The override flag is kept.
        """
        self.run_id = uuid.uuid4().hex
        self.log.reset()
        self.state = WorkflowState.IDLE
        self.running = False
        self.mode = None
        self.kyc_started_at = None
        self.result = None
        self.questionnaire = None

        logger.info(f"🚀 [Workflow {self.workflow_id}] Starting run {self.run_id}")

        self._narrate(Speaker.AGENT, narration.GREETING)
        self.state = WorkflowState.AWAITING_MODE_CHOICE
        self.running = True
        self._schedule(
            ScheduledStep(
                settings.greeting_request_delay,
                lambda: self._narrate(Speaker.CUSTOMER, narration.CUSTOMER_REQUEST),
            ),
            ScheduledStep(settings.greeting_mode_question_delay, self._ask_for_mode),
        )
        return self._accept("Run started. Choose Video KYC or Biometrics at agent location.")

    def choose_mode(self, mode: VerificationMode) -> CommandResult:
        """
        Record the capture mode and start verification.

        Args:
            mode: REMOTE (Video KYC) or AGENT_LOCATION (Biometrics)
        """
        if self.running or self.state != WorkflowState.AWAITING_MODE_CHOICE:
            return self._reject("choose_mode")

        self.mode = mode
        self.kyc_started_at = self.timer.now()

        if mode == VerificationMode.AGENT_LOCATION:
            self._narrate(Speaker.CUSTOMER, narration.CUSTOMER_CHOSE_AGENT_LOCATION)
        else:
            self._narrate(Speaker.CUSTOMER, narration.CUSTOMER_CHOSE_REMOTE)
        self._narrate(Speaker.AGENT, narration.INITIATING)

        self.state = WorkflowState.VERIFYING
        self.running = True
        logger.info(f"🔍 [Workflow {self.workflow_id}] Verifying via {mode.value}")

        self._schedule(
            ScheduledStep(
                settings.capture_video_delay,
                lambda: self._narrate(Speaker.VIDEO_KYC_AGENT, narration.CAPTURE_VIDEO),
            ),
            ScheduledStep(
                settings.capture_biometrics_delay,
                lambda: self._narrate(Speaker.BIOMETRICS_AGENT, narration.CAPTURE_BIOMETRICS),
            ),
            ScheduledStep(settings.first_pass_decision_delay, self._resolve_first_pass),
        )
        return self._accept("Verification started.")

    def set_override(self, enabled: bool) -> CommandResult:
        """Force the unfavourable outcome for the next decision computed."""
        self.override = bool(enabled)
        logger.info(f"[Workflow {self.workflow_id}] Override {'enabled' if self.override else 'disabled'}")
        return self._accept(f"Override {'enabled' if self.override else 'disabled'}.")

    def answer_question(self, index: int, text: str) -> CommandResult:
        """Store or overwrite the answer to a follow-up question. Empty answers are allowed."""
        if self.running or self.state != WorkflowState.AWAITING_FOLLOW_UP:
            return self._reject("answer_question")
        if not self.questionnaire.has_question(index):
            return self._reject(
                "answer_question",
                error=INVALID_QUESTION_INDEX,
                message=f"No follow-up question at index {index}.",
            )

        self.questionnaire.answers[index] = text
        return self._accept(f"Answer {index} recorded.")

    def submit_answers(self) -> CommandResult:
        """Submit follow-up answers (possibly partial) and re-run verification."""
        if self.running or self.state != WorkflowState.AWAITING_FOLLOW_UP:
            return self._reject("submit_answers")

        self._narrate(Speaker.CUSTOMER, narration.ANSWERS_SUBMITTED)
        self.state = WorkflowState.RE_VERIFYING
        self.running = True
        logger.info(
            f"🔁 [Workflow {self.workflow_id}] Re-verifying with "
            f"{len(self.questionnaire.answers)}/{len(self.questionnaire.prompts)} answers"
        )

        self._schedule(
            ScheduledStep(
                settings.reverify_narration_delay,
                lambda: self._narrate(Speaker.AGENT, narration.RERUNNING),
            ),
            ScheduledStep(settings.reverify_decision_delay, self._resolve_re_verification),
        )
        return self._accept("Follow-up answers submitted.")

    def schedule_visit(self) -> CommandResult:
        """Skip re-verification; the customer will verify in person at an office."""
        if self.running or self.state != WorkflowState.AWAITING_FOLLOW_UP:
            return self._reject("schedule_visit")

        self._narrate(Speaker.CUSTOMER, narration.CUSTOMER_VISIT)
        self._record_result(False, ResultNote.USER_OPTED_IN_PERSON)
        self._narrate(Speaker.AGENT, narration.OFFICES_NOTIFIED)
        self.questionnaire = None
        self.state = WorkflowState.ESCALATED_TO_OFFICE
        logger.info(f"🏢 [Workflow {self.workflow_id}] Customer opted for in-person verification")
        return self._accept("In-person visit scheduled.")

    def issue_certificate(self) -> Certificate | None:
        """
        Issue the Life Certificate for the current run.

        Returns:
            Certificate if the current result is successful, otherwise None
        """
        if self.result is None or not self.result.success:
            logger.warning(f"[Workflow {self.workflow_id}] Certificate requested without a successful result")
            return None

        certificate = issue_life_certificate(self.result, self.timer.now())
        self._narrate(Speaker.AGENT, narration.CERTIFICATE_ISSUED)
        logger.info(f"📄 [Workflow {self.workflow_id}] Issued certificate {certificate.id}")
        return certificate

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def settled(self) -> bool:
        """True when no decision is in flight and no narration is pending for this run."""
        if self.running:
            return False
        return self.run_id is None or self.timer.pending(self.run_id) == 0

    def snapshot(self) -> WorkflowSnapshot:
        return WorkflowSnapshot(
            workflow_id=self.workflow_id,
            run_id=self.run_id,
            state=self.state,
            running=self.running,
            mode=self.mode,
            override=self.override,
            kyc_started_at=self.kyc_started_at,
            log=list(self.log.snapshot()),
            result=self.result,
            questionnaire=self.questionnaire.model_copy(deep=True) if self.questionnaire else None,
        )

    # ------------------------------------------------------------------
    # Scheduled steps and decisions
    # ------------------------------------------------------------------

    def _ask_for_mode(self) -> None:
        self._narrate(Speaker.AGENT, narration.MODE_QUESTION)
        self.running = False

    def _decide(self, phase: Phase) -> Outcome:
        """Run the decider; a failing decider counts as the unfavourable outcome."""
        try:
            return self.decider.decide(self.mode, self.override, phase)
        except Exception:
            logger.exception(f"❌ [Workflow {self.workflow_id}] Outcome decision failed during {phase.value}")
            return Outcome.SUSPICIOUS if phase == Phase.FIRST_PASS else Outcome.FAIL

    def _resolve_first_pass(self) -> None:
        outcome = self._decide(Phase.FIRST_PASS)

        if outcome == Outcome.SUCCESS:
            self._narrate(Speaker.AGENT, narration.VERIFIED)
            self._record_result(True, ResultNote.AUTO_VERIFIED)
            self.state = WorkflowState.ISSUED
            logger.info(f"   ✅ [Workflow {self.workflow_id}] Verified automatically")
        else:
            self._narrate(Speaker.AGENT, narration.SUSPICIOUS)
            self.questionnaire = FollowUpQuestionnaire(prompts=list(narration.FOLLOW_UP_QUESTIONS))
            self.state = WorkflowState.AWAITING_FOLLOW_UP
            logger.info(f"   ⚠️ [Workflow {self.workflow_id}] Suspicious signals, asking follow-up questions")

        self.running = False

    def _resolve_re_verification(self) -> None:
        outcome = self._decide(Phase.RE_VERIFY)
        self.questionnaire = None

        if outcome == Outcome.SUCCESS:
            self._narrate(Speaker.AGENT, narration.CLEARED)
            self._record_result(True, ResultNote.CLEARED_AFTER_FOLLOW_UP)
            self.state = WorkflowState.ISSUED
            logger.info(f"   ✅ [Workflow {self.workflow_id}] Cleared after follow-up")
        else:
            self._narrate(Speaker.AGENT, narration.UNRESOLVED)
            self._record_result(False, ResultNote.UNRESOLVED_IN_PERSON)
            self.state = WorkflowState.ESCALATED_TO_OFFICE
            self._schedule(
                ScheduledStep(
                    settings.staff_alert_delay,
                    lambda: self._narrate(Speaker.NOTIFICATION, narration.STAFF_ALERTED),
                ),
            )
            logger.info(f"   ❌ [Workflow {self.workflow_id}] Unresolved, escalated to office")

        self.running = False

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _narrate(self, speaker: Speaker, text: str) -> LogEntry:
        entry = self.log.append(LogEntry(timestamp=self.timer.now(), speaker=speaker, text=text))
        logger.debug(f"[Workflow {self.workflow_id}] {entry.line}")
        return entry

    def _record_result(self, success: bool, note: ResultNote) -> None:
        self.result = VerificationResult(success=success, decided_at=self.timer.now(), note=note)

    def _schedule(self, *steps: ScheduledStep) -> None:
        self.timer.schedule(self.run_id, steps, self._is_current)

    def _is_current(self, run_id: str) -> bool:
        return run_id == self.run_id

    def _accept(self, message: str) -> CommandResult:
        return CommandResult(accepted=True, state=self.state, message=message)

    def _reject(
        self,
        command: str,
        error: str = INVALID_STATE_TRANSITION,
        message: str | None = None,
    ) -> CommandResult:
        message = message or (
            f"Cannot {command.replace('_', ' ')} while {self.state.value}"
            + (" (a step sequence is in progress)" if self.running else "")
        )
        logger.warning(f"[Workflow {self.workflow_id}] Rejected {command}: {message}")
        return CommandResult(accepted=False, state=self.state, error=error, message=message)
