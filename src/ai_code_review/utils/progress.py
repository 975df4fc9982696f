"""
Per-chunk status table with progress notifications
"""

import logging
from typing import Callable, Dict, List, Optional, Sequence

from ai_code_review.models.review_models import ChunkStatus

logger = logging.getLogger(__name__)

STATUS_GLYPHS: Dict[ChunkStatus, str] = {
    ChunkStatus.COMPLETED: "✓",
    ChunkStatus.FAILED: "✗",
    ChunkStatus.IN_PROGRESS: "⋯",
    ChunkStatus.RETRYING: "↻",
    ChunkStatus.PENDING: "○",
}

ProgressCallback = Callable[[Sequence[ChunkStatus]], None]


def render_progress(statuses: Sequence[ChunkStatus]) -> str:
    """Render one glyph per chunk followed by aggregate counts"""
    bar = " ".join(STATUS_GLYPHS[status] for status in statuses)
    completed = sum(1 for s in statuses if s == ChunkStatus.COMPLETED)
    failed = sum(1 for s in statuses if s == ChunkStatus.FAILED)
    retrying = sum(1 for s in statuses if s == ChunkStatus.RETRYING)
    in_progress = sum(1 for s in statuses if s == ChunkStatus.IN_PROGRESS)
    return (
        f"Progress [{bar}] - {completed}/{len(statuses)} completed, "
        f"{failed} failed, {retrying} retrying, {in_progress} in progress"
    )


def log_progress(statuses: Sequence[ChunkStatus]) -> None:
    """Default observer: emit the rendered bar through the logger"""
    logger.info(render_progress(statuses), extra={"operation": "chunk_progress"})


class ChunkProgressTracker:
    """Status table keyed by chunk index.

    Each chunk task writes only its own slot, so interleaved updates from
    concurrent tasks never touch the same entry. Every transition notifies
    the observer with a snapshot of the whole table.
    """

    def __init__(self, total_chunks: int, on_progress: Optional[ProgressCallback] = None):
        self._statuses: List[ChunkStatus] = [ChunkStatus.PENDING] * total_chunks
        self._on_progress = on_progress or log_progress

    def update(self, index: int, status: ChunkStatus) -> None:
        self._statuses[index] = status
        self._on_progress(self.snapshot())

    def callback_for(self, index: int) -> Callable[[ChunkStatus], None]:
        """Status callback bound to one chunk slot"""

        def _update(status: ChunkStatus) -> None:
            self.update(index, status)

        return _update

    def snapshot(self) -> List[ChunkStatus]:
        return list(self._statuses)

    def count(self, status: ChunkStatus) -> int:
        return self._statuses.count(status)

    def __len__(self) -> int:
        return len(self._statuses)
