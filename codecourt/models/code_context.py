"""
Code Context Model
==================
Pydantic models for the caller-supplied material a run analyses.

Fields:
    CodeFile.name     - display name of the file (upload name or generated paste name)
    CodeFile.content  - full text of the file

    AnalysisContext.persona     - persona tag the run is started with
    AnalysisContext.code_files  - ordered CodeFile list, copied at run start
    AnalysisContext.frame       - optional base64 still frame (data URL or bare payload)

The context is immutable once a run has been submitted: the session hands the
run a frozen copy, so later edits to the session's files never leak into a
stream that is already in flight.
"""
import time
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, field_validator

from codecourt.core.constants import PERSONAS
from codecourt.core.errors import EmptyContextError


class CodeFile(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    content: str

    @classmethod
    def from_paste(cls, content: str) -> "CodeFile":
        """Wrap pasted text in a CodeFile with a timestamped name."""
        return cls(name=f"pasted-code-{int(time.time() * 1000)}.txt", content=content)


class AnalysisContext(BaseModel):
    model_config = ConfigDict(frozen=True)

    persona: str
    code_files: tuple[CodeFile, ...] = ()
    frame: Optional[str] = None

    @field_validator("persona")
    @classmethod
    def persona_must_be_known(cls, v: str) -> str:
        if v not in PERSONAS:
            raise ValueError(f"Unknown persona '{v}'. Expected one of {list(PERSONAS)}")
        return v

    @property
    def is_empty(self) -> bool:
        return not self.code_files and not self.frame

    def require_content(self) -> None:
        """Raise EmptyContextError when there is nothing to analyse."""
        if self.is_empty:
            raise EmptyContextError()

    @classmethod
    def build(
        cls,
        persona: str,
        code_files: List[CodeFile],
        frame: Optional[str] = None,
    ) -> "AnalysisContext":
        return cls(persona=persona, code_files=tuple(code_files), frame=frame or None)
