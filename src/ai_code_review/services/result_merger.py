"""
Merging of per-chunk reviews into one combined report
"""

import logging
import re
from typing import Iterable, List, Optional, Sequence, Set

from ai_code_review.models.review_models import (
    SEVERITIES,
    ChunkResult,
    CombinedReport,
    IssueCount,
    IssuesBySeverity,
)

logger = logging.getLogger(__name__)

RAW_RESPONSE_SEPARATOR = "\n\n---\n\n"
_BLANK_LINE = re.compile(r"\n\s*\n")


def _normalise(item: str) -> str:
    return item.strip().lower()


def _merge_paragraphs(blocks: Iterable[str]) -> str:
    """Split blocks on blank lines, drop repeated items, rejoin with blank lines"""
    seen: Set[str] = set()
    items: List[str] = []
    for block in blocks:
        if not block:
            continue
        for item in _BLANK_LINE.split(block):
            item = item.strip()
            key = _normalise(item)
            if item and key not in seen:
                seen.add(key)
                items.append(item)
    return "\n\n".join(items)


def merge_chunk_results(
    chunk_results: Sequence[Optional[ChunkResult]],
) -> ChunkResult:
    """
    Combine chunk reviews into one report.

    ``None`` entries stand for failed chunks and are skipped. A single
    surviving result is returned unchanged. Otherwise summaries are labelled
    per chunk and issues, recommendations and strengths are de-duplicated on
    their lower-cased, trimmed text, keeping the first occurrence.

    Raises:
        ValueError: If no result survives
    """
    results = [result for result in chunk_results if result is not None]
    if not results:
        raise ValueError("No chunk results to combine")

    if len(results) == 1:
        return results[0]

    summaries = "\n\n".join(
        f"Chunk {result.chunk_number}: {result.summary or 'No summary available'}"
        for result in results
    )
    summary = f"Code Review Summary ({len(results)} chunks):\n\n{summaries}"

    # One seen-set across every severity: an issue is kept at its first severity
    seen: Set[str] = set()
    issues = IssuesBySeverity()
    for result in results:
        for severity in SEVERITIES:
            for issue in result.issues.for_severity(severity):
                key = _normalise(issue)
                if key not in seen:
                    seen.add(key)
                    issues.for_severity(severity).append(issue)

    first = results[0]
    combined = CombinedReport(
        model=first.model,
        focus_areas=first.focus_areas,
        summary=summary,
        issues=issues,
        issue_count=IssueCount.from_issues(issues),
        recommendations=_merge_paragraphs(r.recommendations for r in results),
        strengths=_merge_paragraphs(r.strengths for r in results),
        raw_response=RAW_RESPONSE_SEPARATOR.join(r.raw_response for r in results),
        chunk_number=1,
        total_chunks=first.total_chunks,
        processed_chunks=len(results),
        chunk_results=list(chunk_results),
    )

    logger.debug(
        f"Merged {len(results)} chunk reviews with {combined.issue_count.total} unique issues",
        extra={"operation": "merge_chunk_results", "processed_chunks": len(results)},
    )
    return combined


def enhance_output_format(report: CombinedReport) -> CombinedReport:
    """Prefix the summary with quick stats and the critical/high issues"""
    count = report.issue_count
    recovered = sum(
        1 for chunk in report.chunk_results if chunk is not None and chunk.retry_success
    )

    stats = [
        "## Quick Stats",
        f"- **Total Issues**: {count.total}",
        f"- **Critical**: {count.critical}",
        f"- **High**: {count.high}",
        f"- **Medium**: {count.medium}",
        f"- **Low**: {count.low}",
        f"- **Focus Areas**: {', '.join(area.value for area in report.focus_areas)}",
        f"- **Chunks Processed**: {report.processed_chunks}/{report.total_chunks}",
    ]
    if recovered:
        stats.append(f"- **Chunks Recovered**: {recovered} (via retry mechanism)")

    key_issues: List[str] = []
    if count.critical or count.high:
        key_issues.append("## Key Issues to Address")
        for heading, items in (
            ("### Critical Issues", report.issues.critical),
            ("### High Priority Issues", report.issues.high),
        ):
            if items:
                key_issues.append(heading)
                key_issues.extend(f"{i}. {issue}" for i, issue in enumerate(items, 1))

    parts = ["\n".join(stats)]
    if key_issues:
        parts.append("\n".join(key_issues))
    parts.append(report.summary)
    summary = "\n\n".join(parts)

    if recovered:
        summary += (
            f"\n\n**Note:** {recovered} chunk(s) initially failed but were "
            "successfully recovered through the automatic retry mechanism."
        )

    return report.model_copy(update={"summary": summary})
