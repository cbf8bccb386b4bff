"""
Context endpoints
=================
Manage what the next run analyses: persona, code files and captured frame.

    POST   /api/persona      - select persona (clears issues and approvals)
    GET    /api/code-files   - list code file names
    POST   /api/code-files   - add an uploaded file, or pasted code when no name is given
    DELETE /api/code-files   - clear the code context
    PUT    /api/frame        - store the latest captured frame
    DELETE /api/frame        - stop sharing (drop the frame)

Context edits are refused while a run is connecting or streaming.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, field_validator

from codecourt.agents.orchestrator import AnalysisOrchestrator
from codecourt.api.dependencies import get_orchestrator
from codecourt.core.constants import PERSONAS
from codecourt.llm.prompts import PERSONA_NAMES
from codecourt.models.code_context import CodeFile

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Context"])


# ---------------------------------------------------------------------------
# Request / Response schemas
# ---------------------------------------------------------------------------
class PersonaRequest(BaseModel):
    persona: str

    @field_validator("persona")
    @classmethod
    def persona_must_be_known(cls, v: str) -> str:
        if v not in PERSONAS:
            raise ValueError(f"Unknown persona '{v}'")
        return v


class CodeFileRequest(BaseModel):
    content: str
    name: Optional[str] = None


class FrameRequest(BaseModel):
    frame: str


class CodeFilesResponse(BaseModel):
    files: List[str]


def _ensure_idle(orchestrator: AnalysisOrchestrator) -> None:
    if orchestrator.run.is_active:
        raise HTTPException(status_code=409, detail="Analysis in progress")


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------
@router.post("/persona")
async def select_persona(
    request: PersonaRequest,
    orchestrator: AnalysisOrchestrator = Depends(get_orchestrator),
):
    _ensure_idle(orchestrator)
    orchestrator.select_persona(request.persona)
    logger.info("Persona set to %s", request.persona)
    return {"persona": request.persona, "name": PERSONA_NAMES[request.persona]}


@router.get("/code-files", response_model=CodeFilesResponse)
async def list_code_files(orchestrator: AnalysisOrchestrator = Depends(get_orchestrator)):
    return CodeFilesResponse(files=[f.name for f in orchestrator.session.code_files])


@router.post("/code-files", response_model=CodeFilesResponse)
async def add_code_file(
    request: CodeFileRequest,
    orchestrator: AnalysisOrchestrator = Depends(get_orchestrator),
):
    _ensure_idle(orchestrator)
    if not request.content:
        raise HTTPException(status_code=400, detail="Code content is empty")

    if request.name:
        code_file = CodeFile(name=request.name, content=request.content)
    else:
        code_file = CodeFile.from_paste(request.content)
    orchestrator.session.add_code_file(code_file)
    return CodeFilesResponse(files=[f.name for f in orchestrator.session.code_files])


@router.delete("/code-files", response_model=CodeFilesResponse)
async def clear_code_files(orchestrator: AnalysisOrchestrator = Depends(get_orchestrator)):
    _ensure_idle(orchestrator)
    orchestrator.session.clear_code_files()
    return CodeFilesResponse(files=[])


@router.put("/frame")
async def set_frame(
    request: FrameRequest,
    orchestrator: AnalysisOrchestrator = Depends(get_orchestrator),
):
    orchestrator.session.set_frame(request.frame)
    return {"screen_sharing": orchestrator.session.frame is not None}


@router.delete("/frame")
async def clear_frame(orchestrator: AnalysisOrchestrator = Depends(get_orchestrator)):
    orchestrator.session.set_frame(None)
    return {"screen_sharing": False}
