"""
API Endpoint Tests
==================
Context management, run lifecycle, issue listing, approvals and download
through the FastAPI app. The Gemini producer is replaced with a fake stream.
"""
import asyncio
import time

import pytest
from fastapi.testclient import TestClient

from codecourt.agents.orchestrator import AnalysisOrchestrator
from codecourt.api.dependencies import get_orchestrator
from codecourt.parser import issue_extractor
from codecourt.core.constants import EXPORT_FILENAME, Persona, RunStatus
from codecourt.state.session import CodeCourtSession
from main import app


STREAM = [
    "## Main Title: SQL injection in login\n### The Problem\nQuery is built",
    " by string concatenation.\n### The Impact\n- **Critical:** full DB read\n",
    "### The Fix\nUse parameters.\n### Code Fix\n```js\ndb.query(sql, [name]);\n```\n",
    "\n## Main Title: Verbose errors\n### The Problem\nStack traces are shown.\n",
    "### Code Fix\n```\nN/A\n```",
    "\n## Main Title: Pending",
]


def _fake_producer(context):
    async def produce():
        for chunk in STREAM:
            await asyncio.sleep(0)
            yield chunk
    return produce()


@pytest.fixture
def orchestrator():
    orch = AnalysisOrchestrator(CodeCourtSession(), _fake_producer)
    app.dependency_overrides[get_orchestrator] = lambda: orch
    yield orch
    app.dependency_overrides.clear()


@pytest.fixture
def client(orchestrator):
    with TestClient(app) as c:
        yield c


def _wait_for_terminal(client, timeout=5.0):
    deadline = time.time() + timeout
    while time.time() < deadline:
        status = client.get("/api/status").json()
        if status["status"] in (RunStatus.DONE, RunStatus.ERROR):
            return status
        time.sleep(0.01)
    raise AssertionError("run did not finish")


def _run_analysis(client):
    client.post("/api/code-files", json={"name": "login.js", "content": "db.query(s + name)"})
    resp = client.post("/api/analyze")
    assert resp.status_code == 202
    return _wait_for_terminal(client)


# ===========================================================================
# 1. Health and context
# ===========================================================================
def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_add_pasted_and_named_files(client):
    resp = client.post("/api/code-files", json={"content": "let a = 1;"})
    assert resp.status_code == 200
    assert resp.json()["files"][0].startswith("pasted-code-")

    resp = client.post("/api/code-files", json={"name": "b.js", "content": "let b = 2;"})
    assert resp.json()["files"][1] == "b.js"
    assert len(client.get("/api/code-files").json()["files"]) == 2

    assert client.delete("/api/code-files").json() == {"files": []}


def test_empty_code_rejected(client):
    assert client.post("/api/code-files", json={"content": ""}).status_code == 400


def test_select_persona(client, orchestrator):
    resp = client.post("/api/persona", json={"persona": Persona.SCALABILITY})
    assert resp.status_code == 200
    assert resp.json()["name"] == "Scalability Architect"
    assert orchestrator.session.active_persona == Persona.SCALABILITY


def test_unknown_persona_rejected(client):
    assert client.post("/api/persona", json={"persona": "pirate"}).status_code == 422


def test_frame_toggles_screen_sharing(client):
    assert client.put("/api/frame", json={"frame": "data:image/jpeg;base64,AA"}).json() == {
        "screen_sharing": True
    }
    assert client.get("/api/status").json()["screen_sharing"] is True
    client.delete("/api/frame")
    assert client.get("/api/status").json()["screen_sharing"] is False


# ===========================================================================
# 2. Run lifecycle
# ===========================================================================
def test_analyze_without_context(client):
    resp = client.post("/api/analyze")
    assert resp.status_code == 400


def test_analyze_while_streaming(client, orchestrator):
    orchestrator.run.set_status(RunStatus.STREAMING)
    assert client.post("/api/analyze").status_code == 409
    assert client.post("/api/persona", json={"persona": Persona.UI_UX}).status_code == 409


def test_full_run_lists_visible_issues(client):
    status = _run_analysis(client)
    assert status["status"] == RunStatus.DONE
    assert status["issue_count"] == 3

    body = client.get("/api/issues").json()
    titles = [i["title"] for i in body["issues"]]
    assert titles == ["SQL injection in login", "Verbose errors"]

    first = body["issues"][0]
    assert first["problem"] == "Query is built by string concatenation."
    assert first["impact"] == [{"severity": "critical", "text": "full DB read"}]
    assert first["fix"] == "Use parameters."
    assert first["code_fix"] == "db.query(sql, [name]);"
    assert body["issues"][1]["code_fix"] is None
    assert body["with_fixes"] == [first["id"]]


def test_issue_listing_extracts_each_issue_once(client, monkeypatch):
    _run_analysis(client)
    calls = []
    original = issue_extractor.extract

    def counting_extract(content):
        calls.append(content)
        return original(content)

    monkeypatch.setattr(issue_extractor, "extract", counting_extract)
    body = client.get("/api/issues").json()
    assert len(body["issues"]) == 2
    assert len(calls) == 3
    assert len(set(calls)) == 3


def test_persona_change_clears_issues(client):
    _run_analysis(client)
    client.post("/api/persona", json={"persona": Persona.UI_UX})
    body = client.get("/api/issues").json()
    assert body["issues"] == []
    assert client.get("/api/status").json()["persona"] == Persona.UI_UX


# ===========================================================================
# 3. Approvals and download
# ===========================================================================
def test_approve_and_download(client):
    _run_analysis(client)
    issues = client.get("/api/issues").json()["issues"]
    fix_id, no_fix_id = issues[0]["id"], issues[1]["id"]

    assert client.post(f"/api/issues/{no_fix_id}/approve").status_code == 409
    assert client.post(f"/api/issues/{fix_id}/approve").json() == {"approved_issue_ids": [fix_id]}

    resp = client.get("/api/fixes/download")
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/javascript")
    assert EXPORT_FILENAME in resp.headers["content-disposition"]
    assert resp.text == "/* --- Fix for: SQL injection in login --- */\n\ndb.query(sql, [name]);\n\n"

    assert client.post(f"/api/issues/{fix_id}/approve").json() == {"approved_issue_ids": []}


def test_approve_all(client):
    _run_analysis(client)
    fix_id = client.get("/api/issues").json()["with_fixes"][0]
    resp = client.post("/api/issues/approve-all")
    assert resp.json() == {"approved_issue_ids": [fix_id]}
    assert client.get("/api/issues").json()["issues"][0]["approved"] is True


def test_approve_unknown_issue(client):
    assert client.post("/api/issues/nope/approve").status_code == 404


def test_download_without_approvals(client):
    assert client.get("/api/fixes/download").status_code == 404
