"""
LLM Client
==========
Asynchronous streaming client for Google Gemini, used as the chunk producer
of an analysis run.

Streaming:
    - POST {base_url}/models/{model}:streamGenerateContent?alt=sse
    - The response is Server-Sent Events; each event's data is one JSON
      GenerateContentResponse whose candidate parts carry the next text delta
    - Text deltas are yielded in arrival order, one per event, untouched

Request shape:
    - system_instruction = persona prompt from the catalog
    - user parts = code files prompt, plus the captured frame as inline_data
      when one is present

Failure Handling:
    - HTTP status errors, timeouts, transport errors and a blocked prompt
      are raised as ProducerFailure
    - No retry here: a retry is a new run started by the caller
"""
import json
import logging
from typing import AsyncIterator, List, Optional

import httpx

from codecourt.core.config import (
    GEMINI_API_KEY,
    GEMINI_BASE_URL,
    GEMINI_MODEL,
    GEMINI_STREAM_TIMEOUT,
)
from codecourt.core.errors import ProducerFailure
from codecourt.llm.prompts import build_user_prompt, get_system_prompt
from codecourt.models.code_context import AnalysisContext

logger = logging.getLogger(__name__)

_DEFAULT_FRAME_MIME = "image/jpeg"


# ---------------------------------------------------------------------------
# Payload helpers
# ---------------------------------------------------------------------------
def frame_to_inline_part(frame: str) -> dict:
    """
    Convert a captured frame into a Gemini inline_data part.

    Accepts a data URL ("data:image/png;base64,....") or a bare base64 payload,
    which is assumed to be JPEG.
    """
    mime_type = _DEFAULT_FRAME_MIME
    data = frame
    if frame.startswith("data:") and "," in frame:
        header, data = frame.split(",", 1)
        declared = header[len("data:"):].split(";", 1)[0]
        if declared:
            mime_type = declared
    return {"inline_data": {"mime_type": mime_type, "data": data}}


def build_request_payload(context: AnalysisContext) -> dict:
    parts: List[dict] = [{"text": build_user_prompt(context.code_files)}]
    if context.frame:
        parts.append(frame_to_inline_part(context.frame))
    return {
        "system_instruction": {"parts": [{"text": get_system_prompt(context.persona)}]},
        "contents": [{"role": "user", "parts": parts}],
    }


def extract_event_text(data: dict) -> str:
    """
    Return the text delta carried by one streamed response.

    Raises
    ------
    ProducerFailure
        The prompt was blocked by the provider.
    """
    feedback = data.get("promptFeedback") or {}
    if feedback.get("blockReason"):
        raise ProducerFailure(f"Prompt blocked by provider: {feedback['blockReason']}")

    texts: List[str] = []
    try:
        candidates = data.get("candidates") or []
        if candidates:
            for part in (candidates[0].get("content") or {}).get("parts") or []:
                text = part.get("text")
                if text:
                    texts.append(text)
    except (AttributeError, TypeError):
        logger.warning("Unexpected stream event shape: %s", str(data)[:200])
    return "".join(texts)


async def iter_sse_data(lines: AsyncIterator[str]) -> AsyncIterator[str]:
    """Group SSE lines into events and yield each event's data field."""
    buffer: List[str] = []
    async for line in lines:
        if not line.strip():
            if buffer:
                yield "\n".join(buffer)
                buffer = []
            continue
        if line.startswith("data:"):
            buffer.append(line[len("data:"):].lstrip())
    if buffer:
        yield "\n".join(buffer)


# ---------------------------------------------------------------------------
# Gemini Stream Client
# ---------------------------------------------------------------------------
class GeminiStreamClient:
    """
    Async HTTP client that streams analysis text from Gemini.

    Usage:
        client = GeminiStreamClient()
        async for chunk in client.stream_analysis(context):
            ...
        await client.close()
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else (GEMINI_API_KEY or "")
        self.model = model or GEMINI_MODEL
        self.base_url = (base_url or GEMINI_BASE_URL).rstrip("/")
        self.timeout_seconds = timeout_seconds or GEMINI_STREAM_TIMEOUT
        self._transport = transport
        self._http: Optional[httpx.AsyncClient] = None

        if not self.api_key:
            logger.warning(
                "GEMINI_API_KEY is not set. Requests to Gemini will be rejected "
                "until a valid key is provided."
            )

    async def _get_http(self) -> httpx.AsyncClient:
        """Lazy-initialise the HTTP client."""
        if self._http is None or self._http.is_closed:
            self._http = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout_seconds, connect=10.0),
                transport=self._transport,
            )
        return self._http

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._http and not self._http.is_closed:
            await self._http.aclose()
            self._http = None

    @property
    def stream_url(self) -> str:
        return f"{self.base_url}/models/{self.model}:streamGenerateContent"

    async def stream_analysis(self, context: AnalysisContext) -> AsyncIterator[str]:
        """
        Stream the persona's analysis of a context as text fragments.

        Parameters
        ----------
        context : AnalysisContext
            Persona, code files and optional frame of the run.

        Yields
        ------
        str
            Non-empty text deltas in arrival order.

        Raises
        ------
        ProducerFailure
            On HTTP error, timeout, transport failure, malformed event or a
            blocked prompt.
        """
        http = await self._get_http()
        payload = build_request_payload(context)
        params = {"alt": "sse", "key": self.api_key}

        try:
            async with http.stream("POST", self.stream_url, params=params, json=payload) as resp:
                resp.raise_for_status()
                async for raw in iter_sse_data(resp.aiter_lines()):
                    try:
                        data = json.loads(raw)
                    except json.JSONDecodeError as e:
                        raise ProducerFailure(f"Malformed stream event: {raw[:120]}") from e
                    text = extract_event_text(data)
                    if text:
                        yield text
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logger.warning("Gemini stream rejected: HTTP %d", status)
            raise ProducerFailure(f"Gemini returned HTTP {status}") from e
        except httpx.TimeoutException as e:
            logger.warning("Gemini stream timed out after %.0fs", self.timeout_seconds)
            raise ProducerFailure("Gemini stream timed out") from e
        except httpx.HTTPError as e:
            logger.warning("Gemini stream transport error: %s", e)
            raise ProducerFailure(f"Gemini transport error: {e}") from e
