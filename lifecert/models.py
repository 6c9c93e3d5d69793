"""Domain models for the Life Certificate verification workflow."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class WorkflowState(str, Enum):
    """Verification workflow states."""
    IDLE = "idle"
    AWAITING_MODE_CHOICE = "awaiting_mode_choice"
    VERIFYING = "verifying"
    AWAITING_FOLLOW_UP = "awaiting_follow_up"
    RE_VERIFYING = "re_verifying"
    ISSUED = "issued"
    ESCALATED_TO_OFFICE = "escalated_to_office"


TERMINAL_STATES = frozenset({WorkflowState.ISSUED, WorkflowState.ESCALATED_TO_OFFICE})


class VerificationMode(str, Enum):
    """How the customer is captured."""
    REMOTE = "remote"  # Video KYC
    AGENT_LOCATION = "agent_location"  # Biometrics at an agent location


class ResultNote(str, Enum):
    """Why a verification result was reached."""
    AUTO_VERIFIED = "Verified automatically"
    CLEARED_AFTER_FOLLOW_UP = "Cleared after follow-up"
    UNRESOLVED_IN_PERSON = "Unresolved. In-person required"
    USER_OPTED_IN_PERSON = "User opted for in-person"


class Speaker(str, Enum):
    """Who a narration line is attributed to."""
    AGENT = "Agent"
    CUSTOMER = "Customer"
    VIDEO_KYC_AGENT = "Video KYC Agent"
    BIOMETRICS_AGENT = "Biometrics Agent"
    NOTIFICATION = "Notification"


class LogEntry(BaseModel):
    """A single timestamped narration line."""

    model_config = {"frozen": True}

    timestamp: datetime = Field(..., description="When the line was appended")
    speaker: Speaker = Field(..., description="Who the line is attributed to")
    text: str = Field(..., description="Narration text without the speaker tag")

    @property
    def line(self) -> str:
        return f"{self.speaker.value}: {self.text}"


class VerificationResult(BaseModel):
    """Outcome of the latest decision in a run."""

    model_config = {"frozen": True}

    success: bool = Field(..., description="Whether the customer was verified")
    decided_at: datetime = Field(..., description="When the decision was made")
    note: ResultNote = Field(..., description="Reason for the result")


class FollowUpQuestionnaire(BaseModel):
    """Clarification questions asked after a suspicious capture."""

    prompts: list[str] = Field(..., description="Fixed question prompts, in order")
    answers: dict[int, str] = Field(default_factory=dict, description="Answers keyed by prompt index")

    def has_question(self, index: int) -> bool:
        return 0 <= index < len(self.prompts)


class Certificate(BaseModel):
    """Issued Life Certificate record."""

    model_config = {"frozen": True, "populate_by_name": True}

    id: str = Field(..., description="Certificate ID (e.g., LC-1735689600000)")
    issued_at: datetime = Field(..., alias="issuedAt", description="Issuance timestamp")
    note: str = Field(..., description="Note carried over from the verification result")


class CommandResult(BaseModel):
    """Result of a workflow command: accepted, or rejected with a reason."""

    accepted: bool = Field(..., description="Whether the command changed the workflow")
    state: WorkflowState = Field(..., description="Workflow state after the command")
    error: str | None = Field(None, description="Rejection code when not accepted")
    message: str = Field("", description="Human-readable explanation")


class WorkflowSnapshot(BaseModel):
    """Read-only view of every observable of a workflow."""

    workflow_id: str
    run_id: str | None = None
    state: WorkflowState
    running: bool
    mode: VerificationMode | None = None
    override: bool
    kyc_started_at: datetime | None = None
    log: list[LogEntry] = Field(default_factory=list)
    result: VerificationResult | None = None
    questionnaire: FollowUpQuestionnaire | None = None
