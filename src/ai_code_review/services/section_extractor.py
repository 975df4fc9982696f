"""
Extraction of structured review sections from free-text model output
"""

import logging
import re
from typing import Dict, List, Optional, Pattern, Protocol, Sequence, Tuple

from ai_code_review.models.review_models import (
    SEVERITIES,
    ExtractedSections,
    IssuesBySeverity,
)

logger = logging.getLogger(__name__)

# Heading prefixes tried for every section/severity name, plain word first
_HEADING_PREFIXES = ("", r"###\s*", r"##\s*", r"#\s*")

_NUMBERED_ITEM = re.compile(r"\d+\.\s+.+?(?=\n\s*\d+\.\s|\n\s*\n|\Z)", re.DOTALL)
_LIST_MARKER = re.compile(r"\n\s*[-*•]\s*|\n\s*\d+\.\s+")


class ReviewExtractor(Protocol):
    """Turns the raw text of one model response into review sections"""

    def parse(self, raw_text: str) -> ExtractedSections: ...


class HeadingSectionExtractor:
    """
    Heuristic extractor keyed on Markdown-ish headings.

    Each section runs from its heading to the heading of the section that
    follows it in ``SECTIONS``. Headings match the bare word or the word after
    one to three ``#`` markers, case-insensitively, and the earliest match wins.
    """

    SECTIONS: Sequence[Tuple[str, Optional[str]]] = (
        ("Summary", "Issues"),
        ("Issues", "Recommendations"),
        ("Recommendations", "Strengths"),
        ("Strengths", None),
    )
    SEVERITY_HEADINGS: Sequence[str] = ("Critical", "High", "Medium", "Low")

    def __init__(self) -> None:
        self._patterns: Dict[str, List[Pattern[str]]] = {}

    def parse(self, raw_text: str) -> ExtractedSections:
        sections = {
            name.lower(): self.extract_section(raw_text, name, next_name)
            for name, next_name in self.SECTIONS
        }

        issues = IssuesBySeverity(
            **{
                severity: self.extract_issues_by_severity(sections["issues"], heading)
                for severity, heading in zip(SEVERITIES, self.SEVERITY_HEADINGS)
            }
        )

        if not sections["summary"]:
            logger.debug("No summary heading found, using full response as summary")

        return ExtractedSections(
            summary=sections["summary"] or raw_text,
            issues=issues,
            recommendations=sections["recommendations"],
            strengths=sections["strengths"],
        )

    def extract_section(
        self, text: str, section_name: str, next_section_name: Optional[str]
    ) -> str:
        """Return the trimmed text between a heading and the next one"""
        if not text:
            return ""

        heading = self._find_heading(text, section_name)
        if heading is None:
            return ""

        start = heading[1]
        end = len(text)
        if next_section_name:
            next_heading = self._find_heading(text, next_section_name, start)
            if next_heading is not None:
                end = next_heading[0]

        return text[start:end].strip()

    def extract_issues_by_severity(self, issues_text: str, severity: str) -> List[str]:
        """Return the list items filed under one severity heading"""
        if not issues_text:
            return []

        heading = self._find_heading(issues_text, severity)
        if heading is None:
            return []

        start = heading[1]
        end = len(issues_text)
        for other in self.SEVERITY_HEADINGS:
            if other.lower() == severity.lower():
                continue
            next_heading = self._find_heading(issues_text, other, start)
            if next_heading is not None and next_heading[0] < end:
                end = next_heading[0]

        return split_items(issues_text[start:end].strip())

    def _find_heading(
        self, text: str, name: str, pos: int = 0
    ) -> Optional[Tuple[int, int]]:
        """Earliest (start, end) span of any heading variant of ``name`` at or after ``pos``"""
        best: Optional[Tuple[int, int]] = None
        for pattern in self._heading_patterns(name):
            match = pattern.search(text, pos)
            if match and (best is None or match.start() < best[0]):
                best = (match.start(), match.end())
        return best

    def _heading_patterns(self, name: str) -> List[Pattern[str]]:
        if name not in self._patterns:
            escaped = re.escape(name)
            self._patterns[name] = [
                re.compile(rf"{prefix}\b{escaped}\b[:\s]*", re.IGNORECASE)
                for prefix in _HEADING_PREFIXES
            ]
        return self._patterns[name]


def split_items(text: str) -> List[str]:
    """
    Split a block of text into list items.

    Numbered items (``1. text``) are preferred; each runs until the next
    number, a blank line or the end. Otherwise the text is split on bullet
    (``-``, ``*``, ``•``) or numbered markers and empty fragments dropped.
    """
    if not text:
        return []

    numbered = _NUMBERED_ITEM.findall(text)
    if numbered:
        return [item.strip() for item in numbered]

    fragments = _LIST_MARKER.split("\n" + text)
    return [fragment.strip() for fragment in fragments if fragment.strip()]


default_extractor = HeadingSectionExtractor()


def parse_review_response(raw_text: str) -> ExtractedSections:
    """Parse a raw model response with the default heading extractor"""
    return default_extractor.parse(raw_text)
