"""
Rendering of review reports as text, markdown or JSON
"""

from typing import Callable, Dict, List

from ai_code_review.models.review_models import SEVERITIES, CombinedReport, ReviewReport

OUTPUT_FORMATS = ("text", "json", "markdown")


def _has_heading(summary: str, name: str) -> bool:
    return f"## {name}" in summary or f"### {name}" in summary


def _focus_list(report: ReviewReport) -> str:
    return ", ".join(area.value for area in report.focus_areas)


def format_text(report: ReviewReport) -> str:
    lines: List[str] = [
        "===== AI CODE REVIEW REPORT =====",
        f"Source: {report.source_name} ({report.source_type})",
        f"Focus Areas: {_focus_list(report)}",
        f"Timestamp: {report.timestamp}",
        "",
    ]

    deepseek = report.deepseek
    if deepseek is not None:
        lines.append("===== DEEPSEEK REVIEW =====")
        if isinstance(deepseek, CombinedReport):
            lines.extend(_text_sections(deepseek))
        else:
            lines.extend([f"Error: {report.review_error}", ""])

    lines.append("===== SUMMARY =====")
    if isinstance(deepseek, CombinedReport):
        lines.append("DeepSeek review completed successfully.")
    else:
        lines.append("No reviews completed successfully.")
    return "\n".join(lines) + "\n"


def _text_sections(review: CombinedReport) -> List[str]:
    lines = [review.summary, ""]
    if not _has_heading(review.summary, "Issues"):
        lines.append("Issues:")
        for severity in SEVERITIES:
            issues = review.issues.for_severity(severity)
            if issues:
                lines.append(f"{severity.upper()}:")
                lines.extend(f"  - {issue}" for issue in issues)
                lines.append("")
    if not _has_heading(review.summary, "Recommendations"):
        lines.extend(["Recommendations:", review.recommendations, ""])
    if not _has_heading(review.summary, "Strengths"):
        lines.extend(["Strengths:", review.strengths, ""])
    return lines


def format_markdown(report: ReviewReport) -> str:
    lines: List[str] = [
        "# AI Code Review Report",
        "",
        f"**Source:** {report.source_name} ({report.source_type})  ",
        f"**Focus Areas:** {_focus_list(report)}  ",
        f"**Timestamp:** {report.timestamp}  ",
        "",
    ]

    deepseek = report.deepseek
    if deepseek is not None:
        lines.extend(["## DeepSeek Review", ""])
        if isinstance(deepseek, CombinedReport):
            lines.extend(_markdown_sections(deepseek))
        else:
            lines.extend([f"**Error:** {report.review_error}", ""])

    lines.extend(["## Summary", ""])
    if isinstance(deepseek, CombinedReport):
        lines.append("DeepSeek review completed successfully.")
    else:
        lines.append("**No reviews completed successfully.**")
    return "\n".join(lines) + "\n"


def _markdown_sections(review: CombinedReport) -> List[str]:
    lines = [review.summary, ""]
    if not _has_heading(review.summary, "Issues"):
        lines.extend(["### Issues", ""])
        for severity in SEVERITIES:
            issues = review.issues.for_severity(severity)
            if issues:
                lines.extend([f"#### {severity.upper()}", ""])
                lines.extend(f"- {issue}" for issue in issues)
                lines.append("")
    if not _has_heading(review.summary, "Recommendations"):
        lines.extend(["### Recommendations", "", review.recommendations, ""])
    if not _has_heading(review.summary, "Strengths"):
        lines.extend(["### Strengths", "", review.strengths, ""])
    return lines


def format_json(report: ReviewReport) -> str:
    return report.model_dump_json(indent=2)


_FORMATTERS: Dict[str, Callable[[ReviewReport], str]] = {
    "text": format_text,
    "markdown": format_markdown,
    "json": format_json,
}


def format_output(report: ReviewReport, output_format: str = "text") -> str:
    """Render a report; unknown formats fall back to text"""
    return _FORMATTERS.get(output_format.lower(), format_text)(report)
