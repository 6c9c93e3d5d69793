import asyncio
import json

import pytest
from fastapi.testclient import TestClient

from lifecert.api.verification import get_registry, stream_workflow_events
from lifecert.main import app
from lifecert.models import VerificationMode, WorkflowState
from lifecert.workflow import OutcomeDecider, VerificationWorkflow, WorkflowRegistry


@pytest.fixture
def draws():
    """Values the deciders will draw, in order."""
    return []


@pytest.fixture
def client(timer, draws):
    registry = WorkflowRegistry(
        timer_factory=lambda: timer,
        decider_factory=lambda: OutcomeDecider(rng=lambda: draws.pop(0)),
    )
    app.dependency_overrides[get_registry] = lambda: registry
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides = {}


def create(client):
    response = client.post("/verification/workflows")
    assert response.status_code == 201
    return response.json()["workflow_id"]


def test_health(client):
    assert client.get("/health").json()["status"] == "healthy"


def test_create_workflow_is_idle(client):
    response = client.post("/verification/workflows")

    body = response.json()
    assert response.status_code == 201
    assert body["state"] == WorkflowState.IDLE.value
    assert body["running"] is False
    assert len(body["log"]) == 1
    assert body["result"] is None


def test_unknown_workflow_is_404(client):
    assert client.get("/verification/workflows/missing").status_code == 404
    assert client.post("/verification/workflows/missing/start").status_code == 404


def test_verified_run_and_certificate_download(client, timer, draws):
    draws.append(0.5)
    workflow_id = create(client)

    start = client.post(f"/verification/workflows/{workflow_id}/start")
    assert start.status_code == 200
    assert start.json()["state"] == WorkflowState.AWAITING_MODE_CHOICE.value
    assert start.json()["workflow"]["running"] is True

    timer.run_until_idle()

    mode = client.post(f"/verification/workflows/{workflow_id}/mode", json={"agent_location": False})
    assert mode.status_code == 200
    assert mode.json()["workflow"]["running"] is True
    assert mode.json()["workflow"]["mode"] == VerificationMode.REMOTE.value

    timer.run_until_idle()

    snapshot = client.get(f"/verification/workflows/{workflow_id}").json()
    assert snapshot["state"] == WorkflowState.ISSUED.value
    assert snapshot["result"]["success"] is True
    assert snapshot["result"]["note"] == "Verified automatically"

    download = client.post(f"/verification/workflows/{workflow_id}/certificate")
    assert download.status_code == 200
    assert download.headers["content-type"].startswith("application/json")
    certificate = json.loads(download.content.decode("utf-8"))
    assert set(certificate) == {"id", "issuedAt", "note"}
    assert certificate["id"].startswith("LC-")
    assert f'filename="{certificate["id"]}.json"' in download.headers["content-disposition"]


def test_rejected_command_returns_400(client):
    workflow_id = create(client)

    response = client.post(f"/verification/workflows/{workflow_id}/mode", json={"agent_location": True})

    assert response.status_code == 400
    detail = response.json()["detail"]
    assert detail["accepted"] is False
    assert detail["error"] == "invalid_state_transition"
    assert detail["workflow"]["state"] == WorkflowState.IDLE.value


def test_mode_rejected_until_greeting_finishes(client, timer):
    workflow_id = create(client)
    client.post(f"/verification/workflows/{workflow_id}/start")

    early = client.post(f"/verification/workflows/{workflow_id}/mode", json={"agent_location": False})
    assert early.status_code == 400
    assert early.json()["detail"]["error"] == "invalid_state_transition"
    assert early.json()["detail"]["workflow"]["mode"] is None

    timer.run_until_idle()
    late = client.post(f"/verification/workflows/{workflow_id}/mode", json={"agent_location": False})
    assert late.status_code == 200


def test_follow_up_escalation_blocks_certificate(client, timer, draws):
    draws.extend([0.01, 0.9])
    workflow_id = create(client)
    client.post(f"/verification/workflows/{workflow_id}/start")
    timer.run_until_idle()
    client.post(f"/verification/workflows/{workflow_id}/mode", json={"agent_location": False})
    timer.run_until_idle()

    snapshot = client.get(f"/verification/workflows/{workflow_id}").json()
    assert snapshot["state"] == WorkflowState.AWAITING_FOLLOW_UP.value
    assert len(snapshot["questionnaire"]["prompts"]) == 3

    answer = client.put(f"/verification/workflows/{workflow_id}/answers/0", json={"text": "Jane Banda"})
    assert answer.status_code == 200
    assert answer.json()["workflow"]["questionnaire"]["answers"] == {"0": "Jane Banda"}

    bad_index = client.put(f"/verification/workflows/{workflow_id}/answers/7", json={"text": "x"})
    assert bad_index.status_code == 400
    assert bad_index.json()["detail"]["error"] == "invalid_question_index"

    submit = client.post(f"/verification/workflows/{workflow_id}/answers/submit")
    assert submit.json()["state"] == WorkflowState.RE_VERIFYING.value
    timer.run_until_idle()

    snapshot = client.get(f"/verification/workflows/{workflow_id}").json()
    assert snapshot["state"] == WorkflowState.ESCALATED_TO_OFFICE.value
    assert snapshot["result"]["note"] == "Unresolved. In-person required"
    assert snapshot["questionnaire"] is None

    assert client.post(f"/verification/workflows/{workflow_id}/certificate").status_code == 400


def test_override_and_schedule_visit(client, timer):
    workflow_id = create(client)
    override = client.put(f"/verification/workflows/{workflow_id}/override", json={"enabled": True})
    assert override.json()["workflow"]["override"] is True

    client.post(f"/verification/workflows/{workflow_id}/start")
    timer.run_until_idle()
    client.post(f"/verification/workflows/{workflow_id}/mode", json={"agent_location": True})
    timer.run_until_idle()

    visit = client.post(f"/verification/workflows/{workflow_id}/visit")

    assert visit.status_code == 200
    assert visit.json()["state"] == WorkflowState.ESCALATED_TO_OFFICE.value
    assert visit.json()["workflow"]["result"]["note"] == "User opted for in-person"


def test_delete_workflow(client):
    workflow_id = create(client)

    assert client.delete(f"/verification/workflows/{workflow_id}").status_code == 204
    assert client.get(f"/verification/workflows/{workflow_id}").status_code == 404
    assert client.delete(f"/verification/workflows/{workflow_id}").status_code == 404


def test_list_workflows(client):
    first = create(client)
    second = create(client)

    ids = {snapshot["workflow_id"] for snapshot in client.get("/verification/workflows").json()}

    assert {first, second} <= ids


# ============================================
# Narration stream
# ============================================

async def collect(events):
    return [event async for event in events]


def test_event_stream_completes_for_settled_run(timer):
    workflow = VerificationWorkflow(timer=timer, decider=OutcomeDecider(rng=lambda: 0.5))
    workflow.start_run()
    timer.run_until_idle()
    workflow.choose_mode(VerificationMode.REMOTE)
    timer.run_until_idle()

    events = asyncio.run(collect(stream_workflow_events(workflow, poll_interval=0, max_polls=5)))

    assert [event["event"] for event in events] == ["init", "complete"]
    complete = json.loads(events[-1]["data"])
    assert complete == {"state": "issued", "success": True, "note": "Verified automatically"}


def test_event_stream_sends_new_log_entries(timer):
    workflow = VerificationWorkflow(timer=timer, decider=OutcomeDecider(rng=lambda: 0.5))
    workflow.start_run()
    timer.run_until_idle()
    workflow.choose_mode(VerificationMode.REMOTE)
    initial = len(workflow.log)

    async def drive():
        events = []
        async for event in stream_workflow_events(workflow, poll_interval=0, max_polls=10):
            events.append(event)
            if event["event"] == "init":
                timer.run_until_idle()
        return events

    events = asyncio.run(drive())
    kinds = [event["event"] for event in events]

    assert kinds[0] == "init"
    assert kinds[-1] == "complete"
    assert kinds.count("log") == len(workflow.log) - initial
    texts = [json.loads(event["data"])["text"] for event in events if event["event"] == "log"]
    assert texts[-1].startswith("Verification successful")


def test_event_stream_times_out_while_waiting(timer):
    workflow = VerificationWorkflow(timer=timer, decider=OutcomeDecider(rng=lambda: 0.5))
    workflow.start_run()

    events = asyncio.run(collect(stream_workflow_events(workflow, poll_interval=0, max_polls=2)))

    assert [event["event"] for event in events] == ["init", "timeout"]
