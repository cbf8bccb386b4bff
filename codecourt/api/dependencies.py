"""
API Dependencies
Process-wide session, Gemini client and orchestrator shared by the routers.
Override get_orchestrator via app.dependency_overrides in tests.
"""
from typing import Optional

from codecourt.agents.orchestrator import AnalysisOrchestrator
from codecourt.llm.client import GeminiStreamClient
from codecourt.state.session import CodeCourtSession

_client: Optional[GeminiStreamClient] = None
_orchestrator: Optional[AnalysisOrchestrator] = None


def get_orchestrator() -> AnalysisOrchestrator:
    global _client, _orchestrator
    if _orchestrator is None:
        _client = GeminiStreamClient()
        _orchestrator = AnalysisOrchestrator(CodeCourtSession(), _client.stream_analysis)
    return _orchestrator


async def shutdown() -> None:
    """Abandon any in-flight run and close the HTTP client."""
    if _orchestrator is not None:
        _orchestrator.cancel()
    if _client is not None:
        await _client.close()
