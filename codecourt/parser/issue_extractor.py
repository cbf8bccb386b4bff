"""
Issue Field Extractor
=====================
Converts the accumulated markdown of one Issue into ExtractedFields.

Expected grammar (requested from the model by the persona prompts):

    ## Main Title: <title>
    ### The Problem
    <text>
    ### The Impact
    - **High:** <text>
    ### The Fix
    <text>
    ### Code Fix
    ```lang
    <code or N/A>
    ```

Pipeline:
    1. Match each field's heading independently (case-insensitive)
    2. Capture up to the next sibling heading, or end of available text
    3. Decompose the impact section into severity-tagged bullet items
    4. Capture the fenced block under "Code Fix", treating N/A as absent

Contract:
    - DETERMINISTIC: same content → same fields, always.
    - Safe on any prefix of the final text, including "" and an unterminated
      section or code fence still being streamed.
    - Never raises: a missing or out-of-order section is just an empty field.
"""
import logging
import re
from typing import List, Optional, Tuple

from codecourt.core.constants import (
    DEFAULT_SEVERITY,
    FALLBACK_TITLE,
    MIN_VISIBLE_CONTENT_LENGTH,
    NOT_APPLICABLE,
    SEVERITIES,
)
from codecourt.models.extracted_fields import ExtractedFields, ImpactItem
from codecourt.models.issue import Issue

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Heading Patterns
# ---------------------------------------------------------------------------
_FLAGS = re.IGNORECASE | re.DOTALL

# "## Main Title: ..." at line start; leading '#' optional
_TITLE = re.compile(
    r"^[ \t]*(?:#{1,3}[ \t]*)?Main Title:(.*)$",
    re.IGNORECASE | re.MULTILINE,
)


def _heading_pattern(heading: str) -> re.Pattern:
    return re.compile(rf"###[ \t]*{heading}[ \t]*:?", re.IGNORECASE)


def _terminator_pattern(terminators: List[str]) -> re.Pattern:
    return re.compile(rf"###[ \t]*(?:{'|'.join(terminators)})", re.IGNORECASE)


# field → (heading, first following sibling heading); each evaluated on its own
SECTION_PATTERNS: dict[str, Tuple[re.Pattern, re.Pattern]] = {
    "problem": (
        _heading_pattern("The Problem"),
        _terminator_pattern(["The Impact", "The Fix", "Code Fix"]),
    ),
    "impact": (
        _heading_pattern("The Impact"),
        _terminator_pattern(["The Fix", "Code Fix"]),
    ),
    "fix": (
        _heading_pattern("The Fix"),
        _terminator_pattern(["Code Fix"]),
    ),
}

# Fence on the heading line or after it; closing fence optional while streaming
_CODE_FIX = re.compile(
    r"###[ \t]*Code Fix[^\n]*(?:\n\s*)?```[^\n]*\n(.*?)(?:(?P<close>\n[ \t]*```)|\Z)",
    _FLAGS,
)

# Impact bullets
_SEVERITY_TOKEN = re.compile(
    rf"\*\*[ \t]*({'|'.join(SEVERITIES)})[ \t]*:?[ \t]*\*\*[:\s]*",
    re.IGNORECASE,
)
# "-" or a single "*"; a leading "**" is bold, not a bullet
_BULLET_MARKER = re.compile(r"^(?:-|\*(?!\*))\s*")


# ---------------------------------------------------------------------------
# Field Extraction
# ---------------------------------------------------------------------------
def extract_title(content: str) -> str:
    """Return the Main Title text, or the fallback label when missing or blank."""
    match = _TITLE.search(content)
    if not match:
        return FALLBACK_TITLE

    title = match.group(1).rstrip()
    if title.endswith("#"):
        # Closing "##" only when set off by whitespace ("C#" stays)
        bare = title.rstrip("#")
        if not bare or bare[-1] in " \t":
            title = bare
    return title.strip() or FALLBACK_TITLE


def extract_section(content: str, field_name: str) -> str:
    """Return the trimmed body of a named section ("" when its heading is absent)."""
    heading, terminator = SECTION_PATTERNS[field_name]
    match = heading.search(content)
    if not match:
        return ""
    body = content[match.end():]
    stop = terminator.search(body)
    if stop:
        body = body[:stop.start()]
    return body.strip()


def extract_code_fix(content: str) -> Optional[str]:
    """
    Return the code inside the fenced block under "### Code Fix".

    Returns None when the heading or fence is missing, the block is empty,
    or the block only says N/A.
    """
    match = _CODE_FIX.search(content)
    if not match:
        return None

    code = match.group(1)
    if match.group("close") is None:
        # Still streaming: drop a half-received closing fence line
        lines = code.split("\n")
        tail = lines[-1].strip()
        if tail and set(tail) == {"`"}:
            code = "\n".join(lines[:-1])

    code = code.strip()
    if not code or code.upper() == NOT_APPLICABLE:
        return None
    return code


def parse_impact_items(impact: str) -> List[ImpactItem]:
    """
    Decompose an impact section into severity-tagged bullet items.

    Parameters
    ----------
    impact : str
        Trimmed body of the "The Impact" section.

    Returns
    -------
    List[ImpactItem]
        One item per bullet line with non-empty text, in source order.
        Severity is the first bold Critical/High/Medium/Low token on the
        line, lower-cased; "medium" when the line has none.
    """
    items: List[ImpactItem] = []
    for raw_line in impact.split("\n"):
        line = raw_line.strip()
        if not line.startswith(("-", "*")):
            continue

        severity_match = _SEVERITY_TOKEN.search(line)
        severity = severity_match.group(1).lower() if severity_match else DEFAULT_SEVERITY

        text = _BULLET_MARKER.sub("", line, count=1)
        if severity_match:
            text = _SEVERITY_TOKEN.sub("", text, count=1)
        text = text.strip()

        # A bold opener still streaming ("- **") has no text yet
        if text.strip("*"):
            items.append(ImpactItem(severity=severity, text=text))
    return items


def extract(content: str) -> ExtractedFields:
    """
    Derive every structured field from an Issue's current content.

    Idempotent and side-effect free; call it on every streamed update.

    Parameters
    ----------
    content : str
        Full or partial markdown of one Issue.

    Returns
    -------
    ExtractedFields
        Complete field set; absent sections are empty, never an error.
    """
    content = content or ""
    impact = extract_section(content, "impact")
    return ExtractedFields(
        title=extract_title(content),
        problem=extract_section(content, "problem"),
        impact=parse_impact_items(impact) if impact else [],
        fix=extract_section(content, "fix"),
        code_fix=extract_code_fix(content),
    )


# ---------------------------------------------------------------------------
# Rendering Suppression
# ---------------------------------------------------------------------------
def is_displayable(fields: ExtractedFields) -> bool:
    """False while problem, impact, fix and code fix are all still empty."""
    return bool(fields.problem or fields.impact or fields.fix or fields.code_fix)


def visible_fields(issue: Issue) -> Optional[ExtractedFields]:
    """Extract an Issue once; None when it should not be listed yet."""
    if len(issue.content.strip()) <= MIN_VISIBLE_CONTENT_LENGTH:
        return None
    fields = extract(issue.content)
    return fields if is_displayable(fields) else None


def is_visible(issue: Issue) -> bool:
    """Whether an Issue should be listed to readers at its current state."""
    return visible_fields(issue) is not None
