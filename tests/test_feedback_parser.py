from conftest import CANONICAL_REPLY

from gradeflow.services.feedback_parser import (
    DETAILED_FEEDBACK,
    RECOMMENDATIONS,
    extract_section,
    parse_evaluation,
    parse_grade,
    parse_suggestions,
)


def test_canonical_response():
    result = parse_evaluation(CANONICAL_REPLY)

    assert result.grade == 85
    assert result.feedback == "Good work overall. The argument is easy to follow."
    assert result.suggestions == ["Add citations", "Proofread the conclusion"]


def test_sample_response_with_exclamation_close():
    raw = (
        "OVERALL GRADE:\n87\n\nSTRENGTHS:\n- Clear thesis\n\nAREAS FOR IMPROVEMENT:\n- Weak conclusion\n\n"
        "DETAILED FEEDBACK:\nSolid argument overall.\n\nRECOMMENDATIONS:\n- Add a stronger conclusion\n"
        "- Cite two more sources\n\nCONCLUDING REMARKS:\nKeep it up!"
    )
    result = parse_evaluation(raw)

    assert result.grade == 87
    assert result.feedback == "Solid argument overall."
    assert result.suggestions == ["Add a stronger conclusion", "Cite two more sources"]


def test_grade_on_same_line_and_case_insensitive():
    assert parse_grade("overall grade: 77\nrest") == 77


def test_grade_is_clamped():
    assert parse_grade("OVERALL GRADE:\n150") == 100
    assert parse_grade("OVERALL GRADE: 0") == 0


def test_grade_must_start_a_line():
    assert parse_grade("The OVERALL GRADE: 90 is what I would give") is None
    assert parse_grade("OVERALL GRADE:\nninety") is None


def test_extract_section_missing_start_header():
    assert extract_section("nothing here", DETAILED_FEEDBACK, RECOMMENDATIONS) is None


def test_extract_section_runs_to_end_without_end_header():
    text = "DETAILED FEEDBACK:\n  Thorough and careful.  \n"
    assert extract_section(text, DETAILED_FEEDBACK, RECOMMENDATIONS) == "Thorough and careful."


def test_feedback_falls_back_to_areas_for_improvement():
    raw = (
        "OVERALL GRADE: 60\n"
        "AREAS FOR IMPROVEMENT:\n- Expand the introduction\n"
        "CONCLUDING REMARKS:\nNice start."
    )
    result = parse_evaluation(raw)

    assert result.grade == 60
    assert result.feedback == "- Expand the introduction"
    assert result.suggestions == []


def test_empty_detailed_feedback_falls_back():
    raw = "DETAILED FEEDBACK:\n\nRECOMMENDATIONS:\n- Try again\n"
    result = parse_evaluation(raw)

    # no AREAS FOR IMPROVEMENT either, so the whole response is kept
    assert result.feedback == raw
    assert result.suggestions == ["Try again"]


def test_unstructured_response_keeps_raw_text():
    raw = "I liked this essay a lot."
    result = parse_evaluation(raw)

    assert result.grade is None
    assert result.feedback == raw
    assert result.suggestions == []


def test_suggestions_strip_markers_and_blank_lines():
    raw = "RECOMMENDATIONS:\n- one\n\n   -   two  \nthree\n-\nCONCLUDING REMARKS:\nbye"
    assert parse_suggestions(raw) == ["one", "two", "three"]
