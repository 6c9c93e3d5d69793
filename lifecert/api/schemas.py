"""Pydantic schemas for request and response models."""

from pydantic import BaseModel, Field

from lifecert.models import CommandResult, WorkflowSnapshot


# ============================================
# Command Schemas
# ============================================

class ModeChoiceRequest(BaseModel):
    """Request model for choosing the verification mode."""

    agent_location: bool = Field(
        ...,
        description="True for Biometrics at an agent location, False for remote Video KYC",
    )


class OverrideRequest(BaseModel):
    """Request model for the force-unsuccessful toggle."""

    enabled: bool = Field(..., description="Force the unfavourable outcome for the next decision")


class AnswerRequest(BaseModel):
    """Request model for answering a follow-up question."""

    text: str = Field("", description="Free-text answer (may be empty)")


class CommandResponse(CommandResult):
    """Response model for workflow commands."""

    workflow: WorkflowSnapshot = Field(..., description="Workflow snapshot after the command")


# ============================================
# Event Schemas
# ============================================

class WorkflowCompleteEvent(BaseModel):
    """Final event of the narration stream."""

    state: str = Field(..., description="Terminal workflow state")
    success: bool | None = Field(None, description="Whether the run ended verified")
    note: str | None = Field(None, description="Result note")
