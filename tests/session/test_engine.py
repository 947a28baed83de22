"""
Unit tests for the exam session state machine.
"""

import itertools
import json
from datetime import timedelta

import pytest

from qbank_toolkit.core.errors import (
    InvalidAnswerError,
    InvalidStateError,
    PaperNotFoundError,
    QuestionNotInPaperError,
    SessionExpiredError,
    SessionNotFoundError,
)
from qbank_toolkit.core.models import SessionMode, SessionStatus
from qbank_toolkit.core.utils import to_envelope
from qbank_toolkit.grading import GradingEngine
from qbank_toolkit.session import ExamSessionEngine

LIMIT = timedelta(minutes=30)


class CountingGradingEngine(GradingEngine):
    """GradingEngine that records how often it graded a session."""

    def __init__(self):
        super().__init__()
        self.calls = 0

    def grade(self, session, graded_at):
        self.calls += 1
        return super().grade(session, graded_at)


@pytest.fixture
def grading():
    return CountingGradingEngine()


@pytest.fixture
def engine(store, grading, mixed_paper):
    store.save_paper(mixed_paper)
    ids = itertools.count(1)
    return ExamSessionEngine(store, grading, id_factory=lambda: f"s{next(ids)}")


@pytest.fixture
def session(engine, mixed_paper, start_time):
    return engine.start(mixed_paper.id, LIMIT, start_time, learner_id="learner-1")


class TestStart:
    """Tests for ExamSessionEngine.start."""

    def test_start_when_paper_stored_then_in_progress_with_deadline(
        self, session, store, start_time
    ):
        stored = store.load_session(session.id)

        assert stored == session
        assert stored.status is SessionStatus.IN_PROGRESS
        assert stored.deadline == start_time + LIMIT
        assert stored.learner_id == "learner-1"

    def test_start_when_paper_unknown_then_raises(self, engine, start_time):
        with pytest.raises(PaperNotFoundError):
            engine.start("missing", LIMIT, start_time)

    def test_start_when_exam_without_limit_then_raises(self, engine, mixed_paper, start_time):
        with pytest.raises(ValueError, match="time limit"):
            engine.start(mixed_paper.id, None, start_time)

    def test_start_when_practice_then_untimed(self, engine, mixed_paper, start_time):
        practice = engine.start(mixed_paper.id, LIMIT, start_time, mode=SessionMode.PRACTICE)

        assert practice.deadline is None
        assert engine.answer(practice.id, "single", "B", start_time + timedelta(days=3)) is None


class TestAnswer:
    """Tests for ExamSessionEngine.answer."""

    def test_answer_when_before_deadline_then_visible_and_remaining_returned(
        self, engine, session, start_time
    ):
        now = start_time + timedelta(minutes=10)

        remaining = engine.answer(session.id, "single", "B", now)

        assert remaining == timedelta(minutes=20)
        view = engine.view(session.id, now)
        assert view.questions[0].answer == "B"
        assert view.answered_count == 1

    def test_answer_when_rewritten_then_last_write_wins(self, engine, session, start_time):
        engine.answer(session.id, "multi", ["A"], start_time)
        engine.answer(session.id, "multi", ["C", "A"], start_time)

        assert engine.get(session.id).answers["multi"] == ("A", "C")

    def test_answer_when_none_then_cleared(self, engine, session, start_time):
        engine.answer(session.id, "single", "B", start_time)
        engine.answer(session.id, "single", None, start_time)

        assert "single" not in engine.get(session.id).answers

    def test_answer_when_exactly_at_deadline_then_expired_and_auto_submitted(
        self, engine, session, store, grading
    ):
        # Act
        with pytest.raises(SessionExpiredError) as exc_info:
            engine.answer(session.id, "single", "B", session.deadline)

        # Assert
        assert exc_info.value.deadline == session.deadline
        stored = store.load_session(session.id)
        assert stored.status is SessionStatus.SUBMITTED
        assert "single" not in stored.answers
        assert store.load_grade_result(session.id) is not None
        assert grading.calls == 1

    def test_answer_when_repeated_after_auto_submit_then_still_expired(
        self, engine, session, store, grading
    ):
        # Arrange: the first late answer persists the expiry by grading
        with pytest.raises(SessionExpiredError):
            engine.answer(session.id, "single", "B", session.deadline)

        # Act / Assert
        with pytest.raises(SessionExpiredError):
            engine.answer(session.id, "single", "B", session.deadline + timedelta(seconds=1))
        with pytest.raises(SessionExpiredError):
            engine.flag(session.id, "essay", True, session.deadline + timedelta(minutes=5))

        assert store.load_session(session.id).status is SessionStatus.SUBMITTED
        assert grading.calls == 1

    def test_answer_when_submitted_early_then_late_answer_expired(
        self, engine, session, start_time
    ):
        engine.submit(session.id, start_time)

        with pytest.raises(SessionExpiredError):
            engine.answer(session.id, "single", "B", session.deadline)

    def test_answer_when_expired_without_grading_then_parked_as_expired(
        self, store, mixed_paper, start_time
    ):
        store.save_paper(mixed_paper)
        engine = ExamSessionEngine(store, grade_on_expiry=False)
        session = engine.start(mixed_paper.id, LIMIT, start_time)

        with pytest.raises(SessionExpiredError):
            engine.answer(session.id, "single", "B", start_time + timedelta(hours=1))
        with pytest.raises(SessionExpiredError):
            engine.answer(session.id, "single", "B", start_time + timedelta(hours=2))

        stored = store.load_session(session.id)
        assert stored.status is SessionStatus.EXPIRED
        assert stored.submitted_at == session.deadline
        assert store.load_grade_result(session.id) is None

        result = engine.submit(session.id, start_time + timedelta(hours=3))

        assert result.total_score == 0.0
        assert store.load_session(session.id).status is SessionStatus.SUBMITTED

    def test_answer_when_submitted_then_invalid_state(self, engine, session, start_time):
        engine.submit(session.id, start_time)

        with pytest.raises(InvalidStateError):
            engine.answer(session.id, "single", "B", start_time)

    def test_answer_when_question_not_in_paper_then_raises(self, engine, session, start_time):
        with pytest.raises(QuestionNotInPaperError):
            engine.answer(session.id, "other", "A", start_time)

    def test_answer_when_invalid_value_then_raises_and_nothing_saved(
        self, engine, session, start_time
    ):
        with pytest.raises(InvalidAnswerError):
            engine.answer(session.id, "single", "Z", start_time)

        assert engine.get(session.id).version == session.version

    def test_answer_when_session_unknown_then_raises(self, engine, start_time):
        with pytest.raises(SessionNotFoundError):
            engine.answer("nope", "single", "B", start_time)


class TestFlag:
    """Tests for ExamSessionEngine.flag."""

    def test_flag_when_toggled_then_reflected_in_view(self, engine, session, start_time):
        engine.flag(session.id, "essay", True, start_time)
        assert engine.view(session.id, start_time).flagged_ids == ("essay",)

        engine.flag(session.id, "essay", False, start_time)
        assert engine.view(session.id, start_time).flagged_ids == ()


class TestSubmit:
    """Tests for ExamSessionEngine.submit."""

    def test_submit_when_single_b_answered_then_correct(self, engine, session, start_time):
        engine.answer(session.id, "single", "B", start_time + timedelta(minutes=1))

        result = engine.submit(session.id, start_time + timedelta(minutes=2))

        assert result.get_record("single").is_correct is True
        assert result.session_id == session.id

    def test_submit_when_called_twice_then_identical_result_graded_once(
        self, engine, session, start_time, grading
    ):
        engine.answer(session.id, "single", "B", start_time)

        first = engine.submit(session.id, start_time + timedelta(minutes=1))
        second = engine.submit(session.id, start_time + timedelta(minutes=9))

        assert first == second
        assert json.dumps(to_envelope("result", first)) == json.dumps(to_envelope("result", second))
        assert grading.calls == 1

    def test_submit_when_after_deadline_unanswered_then_empty_records(
        self, engine, session, mixed_paper, start_time
    ):
        result = engine.submit(session.id, start_time + timedelta(hours=5))

        assert [r.question_id for r in result.records] == list(mixed_paper.question_ids)
        single = result.get_record("single")
        assert single.answer == ""
        assert single.is_correct is False
        assert result.total_score == 0.0

    def test_submit_when_result_already_stored_then_reused_not_regraded(
        self, engine, session, store, grading, start_time
    ):
        # Arrange: a crash left a result behind while the session is IN_PROGRESS
        stored_result = GradingEngine().grade(store.load_session(session.id), start_time)
        store.save_grade_result(stored_result)

        # Act
        result = engine.submit(session.id, start_time + timedelta(minutes=5))

        # Assert
        assert result == stored_result
        assert grading.calls == 0
        assert store.load_session(session.id).status is SessionStatus.SUBMITTED


class TestViewAndSettle:
    """Tests for read paths."""

    def test_view_when_overdue_then_expired_without_persisting(
        self, engine, session, store, start_time
    ):
        view = engine.view(session.id, start_time + timedelta(hours=1))

        assert view.status is SessionStatus.EXPIRED
        assert view.remaining == timedelta(0)
        assert store.load_session(session.id).status is SessionStatus.IN_PROGRESS

    def test_view_when_built_then_no_answer_keys_exposed(self, engine, session, start_time):
        view = engine.view(session.id, start_time)

        for question in view.questions:
            assert not hasattr(question, "answer_key")

    def test_settle_when_overdue_then_expiry_persisted(self, engine, session, store, start_time):
        settled = engine.settle(session.id, start_time + timedelta(hours=1))

        assert settled.status is SessionStatus.SUBMITTED
        assert store.load_grade_result(session.id) is not None

    def test_settle_when_not_due_then_unchanged(self, engine, session, start_time):
        assert engine.settle(session.id, start_time) == session
