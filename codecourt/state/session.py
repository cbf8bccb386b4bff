"""
Session State
=============
Everything one user works with between runs: the active persona, the code
context, the latest captured frame, and the current AnalysisRun.

Changing persona or starting a run replaces `run` with a fresh AnalysisRun,
which is how issues and approvals get cleared.
"""
import logging
from typing import List, Optional

from codecourt.core.constants import DEFAULT_PERSONA, PERSONAS
from codecourt.models.code_context import AnalysisContext, CodeFile
from codecourt.state.run_state import AnalysisRun

logger = logging.getLogger(__name__)


class CodeCourtSession:

    def __init__(self, persona: str = DEFAULT_PERSONA) -> None:
        if persona not in PERSONAS:
            raise ValueError(f"Unknown persona '{persona}'")
        self.active_persona = persona
        self.code_files: List[CodeFile] = []
        self.frame: Optional[str] = None
        self.run = AnalysisRun(persona=persona)

    def select_persona(self, persona: str) -> AnalysisRun:
        """Switch persona; issues and approvals of the previous run are dropped."""
        if persona not in PERSONAS:
            raise ValueError(f"Unknown persona '{persona}'. Expected one of {list(PERSONAS)}")
        self.active_persona = persona
        return self.reset_run()

    def reset_run(self) -> AnalysisRun:
        """Swap in an empty run for the active persona."""
        previous = self.run
        self.run = AnalysisRun(persona=self.active_persona)
        logger.debug("Run %s replaced by %s", previous.run_id, self.run.run_id)
        return self.run

    # --- code context ---
    def add_code_file(self, code_file: CodeFile) -> None:
        self.code_files.append(code_file)

    def clear_code_files(self) -> None:
        self.code_files = []

    def set_frame(self, frame: Optional[str]) -> None:
        self.frame = frame or None

    def snapshot_context(self) -> AnalysisContext:
        """Immutable copy of what the next run will analyse."""
        return AnalysisContext.build(self.active_persona, self.code_files, self.frame)
