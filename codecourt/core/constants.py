"""
Constants
Centralised storage for personas, run statuses, severities and export settings.
"""


class Persona:
    """Analytical viewpoints a run can be started with."""
    SECURITY    = "security"
    SCALABILITY = "scalability"
    UI_UX       = "ui/ux"


PERSONAS: tuple[str, ...] = (Persona.SECURITY, Persona.SCALABILITY, Persona.UI_UX)
DEFAULT_PERSONA = Persona.SECURITY


class RunStatus:
    """Lifecycle states of an analysis run."""
    IDLE       = "idle"
    CONNECTING = "connecting"
    STREAMING  = "streaming"
    DONE       = "done"
    ERROR      = "error"


RUN_STATUSES: set[str] = {
    RunStatus.IDLE,
    RunStatus.CONNECTING,
    RunStatus.STREAMING,
    RunStatus.DONE,
    RunStatus.ERROR,
}
ACTIVE_STATUSES: set[str] = {RunStatus.CONNECTING, RunStatus.STREAMING}

# Ordered from most to least severe
SEVERITIES: tuple[str, ...] = ("critical", "high", "medium", "low")
DEFAULT_SEVERITY = "medium"

FALLBACK_TITLE = "Analysis Finding"
NOT_APPLICABLE = "N/A"

# Issues at or below this many characters (trimmed) are not listed at all
MIN_VISIBLE_CONTENT_LENGTH = 10

EXPORT_FILENAME = "codecourt_fixes.js"
EXPORT_MEDIA_TYPE = "text/javascript; charset=utf-8"
