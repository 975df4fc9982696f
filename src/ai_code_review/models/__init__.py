"""
Data models for the code review pipeline
"""

from .review_models import (
    SEVERITIES,
    Chunk,
    ChunkError,
    ChunkResult,
    ChunkStatus,
    CombinedReport,
    ExtractedSections,
    FocusArea,
    IssueCount,
    IssuesBySeverity,
    ReviewReport,
    ReviewRequest,
)

__all__ = [
    "SEVERITIES",
    "Chunk",
    "ChunkError",
    "ChunkResult",
    "ChunkStatus",
    "CombinedReport",
    "ExtractedSections",
    "FocusArea",
    "IssueCount",
    "IssuesBySeverity",
    "ReviewReport",
    "ReviewRequest",
]
