"""API routes for the Life Certificate verification workflow."""

import asyncio
import json
import logging

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sse_starlette.sse import EventSourceResponse

from lifecert.api.schemas import (
    AnswerRequest,
    CommandResponse,
    ModeChoiceRequest,
    OverrideRequest,
    WorkflowCompleteEvent,
)
from lifecert.config import settings
from lifecert.models import TERMINAL_STATES, CommandResult, VerificationMode, WorkflowSnapshot
from lifecert.services import certificate_filename, export_certificate
from lifecert.workflow import VerificationWorkflow, WorkflowRegistry, workflow_registry

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/verification", tags=["verification"])


def get_registry() -> WorkflowRegistry:
    """Dependency that provides the workflow registry."""
    return workflow_registry


def get_workflow(
    workflow_id: str,
    registry: WorkflowRegistry = Depends(get_registry),
) -> VerificationWorkflow:
    """
    Dependency that resolves a workflow by ID.

    Raises:
        HTTPException: If the workflow does not exist
    """
    workflow = registry.get(workflow_id)
    if workflow is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Workflow not found",
        )
    return workflow


def _command_response(workflow: VerificationWorkflow, result: CommandResult) -> CommandResponse:
    response = CommandResponse(**result.model_dump(), workflow=workflow.snapshot())
    if not result.accepted:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=response.model_dump(mode="json"),
        )
    return response


# ============================================
# Workflow lifecycle
# ============================================

@router.post("/workflows", response_model=WorkflowSnapshot, status_code=status.HTTP_201_CREATED)
async def create_workflow(
    registry: WorkflowRegistry = Depends(get_registry),
) -> WorkflowSnapshot:
    """Create a new, idle verification workflow."""
    return registry.create().snapshot()


@router.get("/workflows", response_model=list[WorkflowSnapshot])
async def list_workflows(
    registry: WorkflowRegistry = Depends(get_registry),
) -> list[WorkflowSnapshot]:
    """List snapshots of all workflows."""
    return [workflow.snapshot() for workflow in registry.list_workflows()]


@router.get("/workflows/{workflow_id}", response_model=WorkflowSnapshot)
async def get_workflow_snapshot(
    workflow: VerificationWorkflow = Depends(get_workflow),
) -> WorkflowSnapshot:
    """Get the current state, log, result and questionnaire of a workflow."""
    return workflow.snapshot()


@router.delete("/workflows/{workflow_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_workflow(
    workflow_id: str,
    registry: WorkflowRegistry = Depends(get_registry),
) -> Response:
    """Remove a workflow and drop anything still scheduled for it."""
    if not registry.remove(workflow_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Workflow not found",
        )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ============================================
# Commands
# ============================================

@router.post("/workflows/{workflow_id}/start", response_model=CommandResponse)
async def start_run(workflow: VerificationWorkflow = Depends(get_workflow)) -> CommandResponse:
    """Start (or restart) a verification run."""
    return _command_response(workflow, workflow.start_run())


@router.post("/workflows/{workflow_id}/mode", response_model=CommandResponse)
async def choose_mode(
    request: ModeChoiceRequest,
    workflow: VerificationWorkflow = Depends(get_workflow),
) -> CommandResponse:
    """
    Choose Video KYC or Biometrics and start verification.

    Returns immediately; follow progress via the events stream or snapshot.
    """
    mode = VerificationMode.AGENT_LOCATION if request.agent_location else VerificationMode.REMOTE
    return _command_response(workflow, workflow.choose_mode(mode))


@router.put("/workflows/{workflow_id}/override", response_model=CommandResponse)
async def set_override(
    request: OverrideRequest,
    workflow: VerificationWorkflow = Depends(get_workflow),
) -> CommandResponse:
    """Toggle the force-unsuccessful case."""
    return _command_response(workflow, workflow.set_override(request.enabled))


@router.put("/workflows/{workflow_id}/answers/{index}", response_model=CommandResponse)
async def answer_question(
    index: int,
    request: AnswerRequest,
    workflow: VerificationWorkflow = Depends(get_workflow),
) -> CommandResponse:
    """Answer a follow-up question by index."""
    return _command_response(workflow, workflow.answer_question(index, request.text))


@router.post("/workflows/{workflow_id}/answers/submit", response_model=CommandResponse)
async def submit_answers(workflow: VerificationWorkflow = Depends(get_workflow)) -> CommandResponse:
    """Submit follow-up answers and re-run verification."""
    return _command_response(workflow, workflow.submit_answers())


@router.post("/workflows/{workflow_id}/visit", response_model=CommandResponse)
async def schedule_visit(workflow: VerificationWorkflow = Depends(get_workflow)) -> CommandResponse:
    """Opt for in-person verification at a NAPSA office."""
    return _command_response(workflow, workflow.schedule_visit())


@router.post("/workflows/{workflow_id}/certificate")
async def download_certificate(workflow: VerificationWorkflow = Depends(get_workflow)) -> Response:
    """
    Issue and download the Life Certificate as JSON.

    Raises:
        HTTPException: If the current run has no successful verification
    """
    certificate = workflow.issue_certificate()
    if certificate is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Life Certificate is only available after a successful verification",
        )

    return Response(
        content=export_certificate(certificate),
        media_type="application/json",
        headers={
            "Content-Disposition": f'attachment; filename="{certificate_filename(certificate)}"'
        },
    )


# ============================================
# Narration stream
# ============================================

async def stream_workflow_events(
    workflow: VerificationWorkflow,
    poll_interval: float | None = None,
    max_polls: int | None = None,
):
    """
    Yield SSE events for a workflow's narration.

    Sends an ``init`` snapshot, then one ``log`` event per new entry, and
    ``complete`` once the run is terminal and nothing is left pending. A new
    run started mid-stream restarts from an ``init`` event.
    """
    poll_interval = settings.event_poll_interval if poll_interval is None else poll_interval
    max_polls = settings.event_max_polls if max_polls is None else max_polls

    snapshot = workflow.snapshot()
    yield {"event": "init", "data": snapshot.model_dump_json()}
    run_id = snapshot.run_id
    sent = len(snapshot.log)

    poll_count = 0
    while poll_count < max_polls:
        if workflow.run_id != run_id:
            snapshot = workflow.snapshot()
            yield {"event": "init", "data": snapshot.model_dump_json()}
            run_id = snapshot.run_id
            sent = len(snapshot.log)

        for entry in workflow.log.since(sent):
            yield {"event": "log", "data": entry.model_dump_json()}
            sent += 1

        if workflow.state in TERMINAL_STATES and workflow.settled:
            result = workflow.result
            complete = WorkflowCompleteEvent(
                state=workflow.state.value,
                success=result.success if result else None,
                note=result.note.value if result else None,
            )
            yield {"event": "complete", "data": complete.model_dump_json()}
            return

        await asyncio.sleep(poll_interval)
        poll_count += 1

    yield {
        "event": "timeout",
        "data": json.dumps({"message": "Event stream timed out"}),
    }


@router.get("/workflows/{workflow_id}/events")
async def get_event_stream(workflow: VerificationWorkflow = Depends(get_workflow)):
    """
    Stream workflow narration via Server-Sent Events.

    Returns:
        EventSourceResponse: SSE stream of init, log and complete events
    """
    return EventSourceResponse(stream_workflow_events(workflow))
