"""
Data models for code review operations
"""

from enum import Enum
from typing import Any, Dict, FrozenSet, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, computed_field

SEVERITIES = ("critical", "high", "medium", "low")

Severity = Literal["critical", "high", "medium", "low"]


class FocusArea(str, Enum):
    """Review lens that shapes the prompt sent to the model"""

    SECURITY = "security"
    PERFORMANCE = "performance"
    READABILITY = "readability"
    MAINTAINABILITY = "maintainability"
    GENERAL = "general"


class ChunkStatus(str, Enum):
    """Lifecycle of a single chunk inside one review run"""

    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    RETRYING = "retrying"
    COMPLETED = "completed"
    FAILED = "failed"


class ReviewRequest(BaseModel):
    """Immutable description of one review run"""

    model_config = ConfigDict(frozen=True)

    code: str = Field(..., description="Source code to review")
    focus_areas: FrozenSet[FocusArea] = Field(
        default_factory=lambda: frozenset({FocusArea.GENERAL}),
        description="Requested review lenses",
    )
    timeout: float = Field(40.0, gt=0, description="Per-request timeout in seconds")


class Chunk(BaseModel):
    """Line-aligned slice of the source code"""

    model_config = ConfigDict(frozen=True)

    index: int = Field(..., ge=0, description="0-based position in the source")
    text: str = Field(..., description="Chunk contents")
    size_hint: int = Field(3000, gt=0, description="Target maximum characters")

    @property
    def chunk_number(self) -> int:
        """1-based ordinal used in prompts and reports"""
        return self.index + 1


class IssuesBySeverity(BaseModel):
    """Issue strings bucketed by severity, in extraction order"""

    critical: List[str] = Field(default_factory=list)
    high: List[str] = Field(default_factory=list)
    medium: List[str] = Field(default_factory=list)
    low: List[str] = Field(default_factory=list)

    def for_severity(self, severity: Severity) -> List[str]:
        return getattr(self, severity)


class IssueCount(BaseModel):
    """Per-severity issue counts"""

    critical: int = 0
    high: int = 0
    medium: int = 0
    low: int = 0

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total(self) -> int:
        return self.critical + self.high + self.medium + self.low

    @classmethod
    def from_issues(cls, issues: IssuesBySeverity) -> "IssueCount":
        return cls(
            **{severity: len(issues.for_severity(severity)) for severity in SEVERITIES}
        )


class ExtractedSections(BaseModel):
    """Structured view of a free-text review"""

    summary: str = ""
    issues: IssuesBySeverity = Field(default_factory=IssuesBySeverity)
    recommendations: str = ""
    strengths: str = ""


class ChunkResult(BaseModel):
    """Review of a single chunk"""

    model: str = Field(..., description="Model tag that produced the review")
    focus_areas: List[FocusArea] = Field(default_factory=list)
    summary: str = ""
    issues: IssuesBySeverity = Field(default_factory=IssuesBySeverity)
    recommendations: str = ""
    strengths: str = ""
    raw_response: str = ""
    chunk_number: int = Field(1, ge=1, description="1-based chunk ordinal")
    total_chunks: int = Field(1, ge=1, description="Number of chunks in the split")
    retry_attempts: Optional[int] = Field(
        None, description="Retries needed before this chunk succeeded"
    )
    retry_success: Optional[bool] = None


class ChunkError(BaseModel):
    """A chunk that could not be reviewed"""

    chunk_number: int
    error: str
    code_sample: str = Field("", description="Start of the failed chunk for context")


class CombinedReport(ChunkResult):
    """Merged review of every successful chunk"""

    issue_count: IssueCount = Field(default_factory=IssueCount)
    errors: List[ChunkError] = Field(default_factory=list)
    partial_success: bool = False
    processed_chunks: int = 1
    chunk_results: List[Optional[ChunkResult]] = Field(default_factory=list)

    @classmethod
    def from_result(cls, result: ChunkResult, **overrides: Any) -> "CombinedReport":
        """Promote a single chunk review into a report"""
        if isinstance(result, CombinedReport):
            return result.model_copy(update=overrides)
        data = dict(result)
        data.setdefault("issue_count", IssueCount.from_issues(result.issues))
        data.setdefault("chunk_results", [result])
        data.update(overrides)
        return cls(**data)


class ReviewReport(BaseModel):
    """Outcome of reviewing one file or snippet, as handed to the formatter"""

    source_type: Literal["file", "snippet"]
    source_name: str
    language: str = "plaintext"
    focus_areas: List[FocusArea] = Field(default_factory=list)
    deepseek: Optional[Union[CombinedReport, Dict[str, str]]] = None
    timestamp: str

    @property
    def review_error(self) -> Optional[str]:
        if isinstance(self.deepseek, dict):
            return self.deepseek.get("error")
        return None
