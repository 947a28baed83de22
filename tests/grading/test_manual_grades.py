"""
Unit tests for reviewer amendments of grade results.
"""

from datetime import timedelta

import pytest

from qbank_toolkit.core.errors import QuestionNotInPaperError
from qbank_toolkit.core.models import ExamSession
from qbank_toolkit.grading import ManualGrade, apply_manual_grades, grade_session


@pytest.fixture
def pending_result(mixed_paper, start_time):
    session = ExamSession(
        "s1", mixed_paper, start_time, timedelta(minutes=30),
        answers={"single": "B", "short": "forty-two", "essay": "An essay"},
    )
    return grade_session(session, start_time)


class TestApplyManualGrades:
    """Tests for apply_manual_grades."""

    def test_apply_when_essay_graded_then_new_revision_with_points(self, pending_result, start_time):
        # Arrange
        grades = [ManualGrade("essay", 3.0, notes="Good structure")]

        # Act
        amended = apply_manual_grades(pending_result, grades, start_time + timedelta(days=1))

        # Assert
        record = amended.get_record("essay")
        assert record.points_awarded == 3.0
        assert record.is_correct is False
        assert record.notes == "Good structure"
        assert amended.revision == 1
        assert amended.pending_count == pending_result.pending_count - 1
        assert amended.max_score == pending_result.max_score + 5.0
        assert amended.total_score == pending_result.total_score + 3.0
        assert pending_result.get_record("essay").is_pending

    def test_apply_when_full_points_then_correct(self, pending_result, start_time):
        amended = apply_manual_grades(pending_result, [ManualGrade("short", 1.0)], start_time)

        assert amended.get_record("short").is_correct is True

    def test_apply_when_points_out_of_range_then_clamped(self, pending_result, start_time):
        amended = apply_manual_grades(
            pending_result,
            [ManualGrade("essay", 9.0), ManualGrade("short", -1.0)],
            start_time,
        )

        assert amended.get_record("essay").points_awarded == 5.0
        assert amended.get_record("short").points_awarded == 0.0
        assert amended.pending_count == 0
        assert not amended.is_provisional

    def test_apply_when_nothing_left_pending_then_max_matches_paper(
        self, pending_result, mixed_paper, start_time
    ):
        assert pending_result.max_score < mixed_paper.max_score

        amended = apply_manual_grades(
            pending_result,
            [ManualGrade("essay", 4.0), ManualGrade("short", 1.0)],
            start_time,
        )

        assert amended.pending_count == 0
        assert amended.max_score == mixed_paper.max_score

    def test_apply_when_unknown_question_then_raises(self, pending_result, start_time):
        with pytest.raises(QuestionNotInPaperError):
            apply_manual_grades(pending_result, [ManualGrade("nope", 1.0)], start_time,
                                paper_id="paper-1")
