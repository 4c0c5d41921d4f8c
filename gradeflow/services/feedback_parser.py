"""
Parser for the evaluator's sectioned free-text response.

The model is asked to answer with fixed headers (OVERALL GRADE, STRENGTHS,
AREAS FOR IMPROVEMENT, DETAILED FEEDBACK, RECOMMENDATIONS, CONCLUDING
REMARKS). It does not always comply, so every field has a fallback and
nothing here raises on a malformed response.
"""
import logging
import re
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

OVERALL_GRADE = "OVERALL GRADE:"
STRENGTHS = "STRENGTHS:"
AREAS_FOR_IMPROVEMENT = "AREAS FOR IMPROVEMENT:"
DETAILED_FEEDBACK = "DETAILED FEEDBACK:"
RECOMMENDATIONS = "RECOMMENDATIONS:"
CONCLUDING_REMARKS = "CONCLUDING REMARKS:"

_GRADE_RE = re.compile(r"^OVERALL GRADE:\s*(\d+)", re.IGNORECASE | re.MULTILINE)
_LIST_MARKER_RE = re.compile(r"^-\s*")

GRADE_MIN = 0
GRADE_MAX = 100


@dataclass
class EvaluationResult:
    grade: int | None
    feedback: str
    suggestions: list[str] = field(default_factory=list)


def extract_section(text: str, start_header: str, end_header: str | None = None) -> str | None:
    """
    Text between ``start_header`` and the next ``end_header``, stripped.

    Returns None when the start header is missing. A missing end header
    extends the section to the end of the text.
    """
    start = text.find(start_header)
    if start == -1:
        return None

    content_start = start + len(start_header)
    content_end = len(text)
    if end_header:
        end = text.find(end_header, content_start)
        if end != -1:
            content_end = end
    return text[content_start:content_end].strip()


def parse_grade(text: str) -> int | None:
    match = _GRADE_RE.search(text)
    if not match:
        return None
    return max(GRADE_MIN, min(GRADE_MAX, int(match.group(1))))


def parse_suggestions(text: str) -> list[str]:
    section = extract_section(text, RECOMMENDATIONS, CONCLUDING_REMARKS)
    if not section:
        return []
    suggestions = []
    for line in section.split("\n"):
        item = _LIST_MARKER_RE.sub("", line.strip()).strip()
        if item:
            suggestions.append(item)
    return suggestions


def parse_evaluation(raw: str) -> EvaluationResult:
    grade = parse_grade(raw)
    if grade is None:
        logger.warning("Could not parse OVERALL GRADE from evaluator response")

    feedback = extract_section(raw, DETAILED_FEEDBACK, RECOMMENDATIONS)
    if not feedback:
        logger.warning("No DETAILED FEEDBACK section; falling back to AREAS FOR IMPROVEMENT")
        feedback = extract_section(raw, AREAS_FOR_IMPROVEMENT, CONCLUDING_REMARKS) or raw

    suggestions = parse_suggestions(raw)
    if RECOMMENDATIONS not in raw:
        logger.warning("No RECOMMENDATIONS section in evaluator response")

    return EvaluationResult(grade=grade, feedback=feedback, suggestions=suggestions)
