"""
Extracted Fields Model
======================
Structured view of an Issue's markdown, recomputed on demand by the extractor.

Fields:
    title     - "Main Title" heading text, or the fallback label
    problem   - body of "The Problem" section ("" when absent)
    impact    - bullet items of "The Impact" section, each with a severity
    fix       - body of "The Fix" section ("" when absent)
    code_fix  - inner text of the fenced block under "Code Fix" (None when absent or N/A)

Never persisted; a pure function of Issue.content.
"""
from typing import List, Optional

from pydantic import BaseModel, ConfigDict

from codecourt.core.constants import DEFAULT_SEVERITY, FALLBACK_TITLE


class ImpactItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    severity: str = DEFAULT_SEVERITY
    text: str


class ExtractedFields(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str = FALLBACK_TITLE
    problem: str = ""
    impact: List[ImpactItem] = []
    fix: str = ""
    code_fix: Optional[str] = None

    @property
    def has_code_fix(self) -> bool:
        return bool(self.code_fix)
