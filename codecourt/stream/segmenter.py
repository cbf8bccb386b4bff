"""
Stream Segmenter
================
Partitions a stream of text chunks into separate Issues as they arrive.

Boundary heuristic:
    A boundary is a newline followed by one or two '#' and a space, i.e. a
    level-1 or level-2 markdown heading opening on a new line. "### " section
    headings inside an issue never split it.

Per chunk:
    1. First chunk of the run   → new Issue with the chunk verbatim
    2. No boundary in the chunk → append verbatim to the current Issue
    3. Boundary found           → append the text before it to the current
                                  Issue, open a new Issue with the stripped
                                  remainder and make it current

Known limitations (heuristic, marker syntax only):
    - A heading inside a fenced code block also starts a new Issue.
    - Only the first boundary in a chunk is a split point; later ones stay
      inside the new Issue's initial content.

Chunks are processed strictly in arrival order, one at a time.
"""
import logging
import re
import uuid
from typing import Callable, Optional

from codecourt.state.run_state import IssueStore

logger = logging.getLogger(__name__)

BOUNDARY_MARKER = re.compile(r"\n#{1,2} ")


def split_at_boundary(chunk: str) -> tuple[str, Optional[str]]:
    """
    Split a chunk at its first boundary marker.

    Returns
    -------
    tuple[str, Optional[str]]
        (text before the marker, marker-led remainder). The remainder is None
        when the chunk holds no marker.
    """
    match = BOUNDARY_MARKER.search(chunk)
    if not match:
        return chunk, None
    return chunk[:match.start()], chunk[match.start():]


def _new_issue_id() -> str:
    return str(uuid.uuid4())


class StreamSegmenter:
    """
    Feeds chunks of one run into an issue store.

    Usage:
        segmenter = StreamSegmenter(run, persona="security")
        for chunk in chunks:
            segmenter.process_chunk(chunk)
    """

    def __init__(
        self,
        store: IssueStore,
        persona: str,
        id_factory: Callable[[], str] = _new_issue_id,
    ) -> None:
        self._store = store
        self._persona = persona
        self._id_factory = id_factory
        self._current_issue_id: Optional[str] = None
        self.chunk_count = 0

    @property
    def current_issue_id(self) -> Optional[str]:
        return self._current_issue_id

    def process_chunk(self, chunk: str) -> Optional[str]:
        """
        Route one chunk into the store.

        Returns
        -------
        Optional[str]
            Id of the current issue after the chunk was applied.
        """
        self.chunk_count += 1

        if self._current_issue_id is None:
            self._open_issue(chunk)
            return self._current_issue_id

        head, remainder = split_at_boundary(chunk)
        if head:
            self._store.append_to_issue(self._current_issue_id, head)
        if remainder is not None:
            self._open_issue(remainder.strip())
        return self._current_issue_id

    def _open_issue(self, content: str) -> None:
        issue_id = self._id_factory()
        self._store.create_issue(issue_id, self._persona, content)
        self._current_issue_id = issue_id
        logger.debug("Opened issue %s at chunk %d", issue_id, self.chunk_count)
