"""
Analysis endpoints
==================
Start runs, poll their progress and manage approved fixes.

    POST /api/analyze                 - start a run in the background
    GET  /api/status                  - run id, persona, status, counts
    GET  /api/issues                  - visible issues with extracted fields
    POST /api/issues/{id}/approve     - toggle approval of one fix
    POST /api/issues/approve-all      - approve every issue with a code fix
    GET  /api/fixes/download          - approved fixes as one JS artifact

Issues are re-extracted on every GET so partially streamed issues render with
whatever sections have arrived; issues with no meaningful section yet are
left out of the listing.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response
from pydantic import BaseModel

from codecourt.agents.orchestrator import AnalysisOrchestrator
from codecourt.api.dependencies import get_orchestrator
from codecourt.core.constants import EXPORT_FILENAME, EXPORT_MEDIA_TYPE
from codecourt.core.errors import ApprovalError, EmptyContextError, UnknownIssueError
from codecourt.llm.prompts import PERSONA_NAMES
from codecourt.models.extracted_fields import ImpactItem
from codecourt.parser.issue_extractor import is_visible, visible_fields
from codecourt.services.fix_exporter import FixExporter

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Analysis"])


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------
class RunStatusResponse(BaseModel):
    run_id: str
    persona: str
    persona_name: str
    status: str
    error: str = ""
    issue_count: int
    approved_count: int
    screen_sharing: bool
    code_file_count: int


class IssueView(BaseModel):
    id: str
    persona: str
    title: str
    problem: str
    impact: List[ImpactItem]
    fix: str
    code_fix: Optional[str] = None
    approved: bool = False


class IssuesResponse(BaseModel):
    run_id: str
    status: str
    issues: List[IssueView]
    with_fixes: List[str]


class ApprovalResponse(BaseModel):
    approved_issue_ids: List[str]


def _status_response(orchestrator: AnalysisOrchestrator) -> RunStatusResponse:
    run = orchestrator.run
    session = orchestrator.session
    return RunStatusResponse(
        run_id=run.run_id,
        persona=run.persona,
        persona_name=PERSONA_NAMES.get(run.persona, run.persona),
        status=run.status,
        error=run.error,
        issue_count=len(run.issues),
        approved_count=len(run.approved_issue_ids),
        screen_sharing=session.frame is not None,
        code_file_count=len(session.code_files),
    )


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------
@router.post("/analyze", response_model=RunStatusResponse, status_code=202)
async def start_analysis(orchestrator: AnalysisOrchestrator = Depends(get_orchestrator)):
    if orchestrator.run.is_active:
        raise HTTPException(status_code=409, detail="Analysis already in progress")
    try:
        orchestrator.launch()
    except EmptyContextError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _status_response(orchestrator)


@router.get("/status", response_model=RunStatusResponse)
async def get_status(orchestrator: AnalysisOrchestrator = Depends(get_orchestrator)):
    return _status_response(orchestrator)


@router.get("/issues", response_model=IssuesResponse)
async def list_issues(orchestrator: AnalysisOrchestrator = Depends(get_orchestrator)):
    run = orchestrator.run
    views: List[IssueView] = []
    for issue in run.issues:
        fields = visible_fields(issue)
        if fields is None:
            continue
        views.append(IssueView(
            id=issue.id,
            persona=issue.persona,
            title=fields.title,
            problem=fields.problem,
            impact=fields.impact,
            fix=fields.fix,
            code_fix=fields.code_fix,
            approved=run.is_approved(issue.id),
        ))
    return IssuesResponse(
        run_id=run.run_id,
        status=run.status,
        issues=views,
        with_fixes=[v.id for v in views if v.code_fix],
    )


@router.post("/issues/approve-all", response_model=ApprovalResponse)
async def approve_all(orchestrator: AnalysisOrchestrator = Depends(get_orchestrator)):
    run = orchestrator.run
    if run.is_active:
        raise HTTPException(status_code=409, detail="Analysis in progress")
    visible_ids = [i.id for i in run.issues if is_visible(i)]
    return ApprovalResponse(approved_issue_ids=run.approve_all(visible_ids))


@router.post("/issues/{issue_id}/approve", response_model=ApprovalResponse)
async def toggle_approval(
    issue_id: str,
    orchestrator: AnalysisOrchestrator = Depends(get_orchestrator),
):
    run = orchestrator.run
    try:
        run.toggle_approval(issue_id)
    except UnknownIssueError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ApprovalError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return ApprovalResponse(approved_issue_ids=list(run.approved_issue_ids))


@router.get("/fixes/download")
async def download_fixes(orchestrator: AnalysisOrchestrator = Depends(get_orchestrator)):
    run = orchestrator.run
    if not run.approved_issue_ids:
        raise HTTPException(status_code=404, detail="No approved fixes to download")
    logger.info("Exporting %d approved fixes from run %s", len(run.approved_issue_ids), run.run_id)
    return Response(
        content=FixExporter.render(run),
        media_type=EXPORT_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{EXPORT_FILENAME}"'},
    )
