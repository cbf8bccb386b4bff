"""
Errors
======
Exception types raised across the analysis pipeline.

Propagation policy:
    - Extraction never raises; malformed sections become empty fields.
    - ProducerFailure ends a run with status "error" (issues are kept).
    - EmptyContextError is a precondition check, raised before any stream opens.
"""


class CodeCourtError(Exception):
    """Base class for all service errors."""


class EmptyContextError(CodeCourtError, ValueError):
    """Raised when a run is requested with neither code files nor a frame."""

    def __init__(self, message: str = "Provide code or share your screen to start the analysis."):
        super().__init__(message)


class ProducerFailure(CodeCourtError, RuntimeError):
    """The upstream text stream failed or terminated abnormally."""


class UnknownIssueError(CodeCourtError, KeyError):
    """An issue id does not belong to the current run."""

    def __init__(self, issue_id: str):
        super().__init__(issue_id)
        self.issue_id = issue_id

    def __str__(self) -> str:
        return f"Unknown issue id: {self.issue_id}"


class ApprovalError(CodeCourtError):
    """An issue cannot be approved (it carries no usable code fix)."""
