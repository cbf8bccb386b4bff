"""
Issue Model
===========
One structured finding streamed out of a run.

Fields:
    id       - opaque unique identifier assigned at creation (never changes)
    persona  - persona tag of the run that produced it (never changes)
    content  - append-only markdown buffer; grows as chunks arrive

The only mutation after creation is append(); nothing rewrites or truncates
content, so every reader sees a monotonically growing prefix of the final text.
"""
from pydantic import BaseModel, Field


class Issue(BaseModel):
    id: str = Field(frozen=True)
    persona: str = Field(frozen=True)
    content: str = Field(default="", frozen=True)

    def append(self, text_delta: str) -> None:
        # Fields are frozen against assignment; append is the one writer
        self.__dict__["content"] = self.content + text_delta
