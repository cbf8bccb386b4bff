"""
Run State
=========
Explicit, caller-owned context for one analysis invocation.

An AnalysisRun holds:
    run_id              - unique id of this invocation
    persona             - persona the run was started with
    status              - idle / connecting / streaming / done / error
    issues              - ordered Issue list (the issue store)
    approved_issue_ids  - ordered, de-duplicated approvals
    error               - failure message when status == "error"

Superseding a run never mutates the old object: the session swaps in a new
AnalysisRun, so a stale stream still holding the old one cannot touch the
issues of the run that replaced it.
"""
import logging
import uuid
from typing import Iterable, List, Optional, Protocol

from codecourt.core.constants import ACTIVE_STATUSES, RUN_STATUSES, RunStatus
from codecourt.core.errors import ApprovalError, UnknownIssueError
from codecourt.models.issue import Issue
from codecourt.parser.issue_extractor import extract

logger = logging.getLogger(__name__)


class IssueStore(Protocol):
    """Monotonic store the segmenter writes to."""

    def create_issue(self, issue_id: str, persona: str, content: str) -> Issue:
        ...

    def append_to_issue(self, issue_id: str, text_delta: str) -> None:
        ...

    def clear(self) -> None:
        ...


class AnalysisRun:
    """
    One analysis invocation: its issues, status and approvals.

    Usage:
        run = AnalysisRun(persona="security")
        run.set_status(RunStatus.CONNECTING)
        run.create_issue("id-1", "security", "## Main Title: ...")
        run.append_to_issue("id-1", "more text")
    """

    def __init__(self, persona: str, run_id: Optional[str] = None) -> None:
        self.run_id = run_id or str(uuid.uuid4())
        self.persona = persona
        self.status: str = RunStatus.IDLE
        self.error: str = ""
        self.issues: List[Issue] = []
        self.approved_issue_ids: List[str] = []

    # -----------------------------------------------------------------------
    # Issue store
    # -----------------------------------------------------------------------
    def create_issue(self, issue_id: str, persona: str, content: str) -> Issue:
        issue = Issue(id=issue_id, persona=persona, content=content)
        self.issues.append(issue)
        return issue

    def append_to_issue(self, issue_id: str, text_delta: str) -> None:
        self.get_issue(issue_id).append(text_delta)

    def clear(self) -> None:
        """Drop all issues and approvals."""
        self.issues = []
        self.approved_issue_ids = []

    def get_issue(self, issue_id: str) -> Issue:
        for issue in self.issues:
            if issue.id == issue_id:
                return issue
        raise UnknownIssueError(issue_id)

    # -----------------------------------------------------------------------
    # Status
    # -----------------------------------------------------------------------
    def set_status(self, status: str, error: str = "") -> None:
        if status not in RUN_STATUSES:
            raise ValueError(f"Unknown run status: {status}")
        self.status = status
        self.error = error

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    # -----------------------------------------------------------------------
    # Approvals
    # -----------------------------------------------------------------------
    def is_approved(self, issue_id: str) -> bool:
        return issue_id in self.approved_issue_ids

    def toggle_approval(self, issue_id: str) -> bool:
        """
        Flip the approval of one issue.

        Returns
        -------
        bool
            True if the issue is approved after the call.

        Raises
        ------
        UnknownIssueError
            The id is not part of this run.
        ApprovalError
            Approving an issue that has no code fix.
        """
        issue = self.get_issue(issue_id)
        if issue_id in self.approved_issue_ids:
            self.approved_issue_ids = [i for i in self.approved_issue_ids if i != issue_id]
            return False

        if not extract(issue.content).has_code_fix:
            raise ApprovalError(f"Issue {issue_id} has no code fix to approve")
        self.approved_issue_ids.append(issue_id)
        return True

    def approve_all(self, issue_ids: Optional[Iterable[str]] = None) -> List[str]:
        """
        Approve every issue carrying a code fix (or the given subset of them).

        Already-approved ids keep their position; the result has no duplicates.
        """
        candidates = list(issue_ids) if issue_ids is not None else [i.id for i in self.issues]
        for issue_id in candidates:
            if issue_id in self.approved_issue_ids:
                continue
            issue = self.get_issue(issue_id)
            if extract(issue.content).has_code_fix:
                self.approved_issue_ids.append(issue_id)
        return list(self.approved_issue_ids)

    def approved_issues(self) -> List[Issue]:
        """Approved issues in run order."""
        return [i for i in self.issues if i.id in self.approved_issue_ids]
