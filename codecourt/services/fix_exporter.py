"""
Fix Exporter
============
Compiles the code fixes of approved issues into one downloadable artifact.

Artifact format, one block per approved issue in run order:

    /* --- Fix for: <title> --- */

    <code fix>

Approved issues whose code fix is absent are skipped.
"""
import logging
import os
from typing import Iterable, List

from codecourt.core.constants import EXPORT_FILENAME
from codecourt.models.issue import Issue
from codecourt.parser.issue_extractor import extract
from codecourt.state.run_state import AnalysisRun

logger = logging.getLogger(__name__)


def format_fix_block(title: str, code_fix: str) -> str:
    return f"/* --- Fix for: {title} --- */\n\n{code_fix}\n\n"


def build_fix_artifact(issues: Iterable[Issue], approved_ids: Iterable[str]) -> str:
    """
    Concatenate the code fixes of the approved issues.

    Parameters
    ----------
    issues : Iterable[Issue]
        Issues of the run, in run order.
    approved_ids : Iterable[str]
        Ids selected for export.

    Returns
    -------
    str
        The artifact text ("" when nothing approved has a code fix).
    """
    approved = set(approved_ids)
    blocks: List[str] = []
    for issue in issues:
        if issue.id not in approved:
            continue
        fields = extract(issue.content)
        if not fields.code_fix:
            logger.warning("Approved issue %s has no code fix; skipped in export", issue.id)
            continue
        blocks.append(format_fix_block(fields.title, fields.code_fix))
    return "".join(blocks)


class FixExporter:
    """Builds and optionally writes the artifact for a run's approvals."""

    @staticmethod
    def render(run: AnalysisRun) -> str:
        return build_fix_artifact(run.issues, run.approved_issue_ids)

    @staticmethod
    def write(run: AnalysisRun, output_dir: str = ".", filename: str = EXPORT_FILENAME) -> str:
        """
        Write the artifact to disk.

        Returns
        -------
        str
            Absolute path of the written file.
        """
        abs_output = os.path.abspath(os.path.join(output_dir, filename))
        logger.info("Writing %d approved fixes to %s", len(run.approved_issue_ids), abs_output)
        with open(abs_output, "w", encoding="utf-8") as f:
            f.write(FixExporter.render(run))
        return abs_output
