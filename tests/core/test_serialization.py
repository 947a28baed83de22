"""
Unit Tests for Serialization Utilities

Tests for question JSONL files and stored artifact envelopes.
"""

import json
from datetime import timedelta

import pytest

from qbank_toolkit.core.models import (
    AccessGrant,
    ExamSession,
    QuestionType,
    SessionMode,
)
from qbank_toolkit.core.schemas.validator import ValidationError
from qbank_toolkit.core.utils.serialization import (
    deserialize_question,
    from_envelope,
    load_questions_jsonl,
    save_questions_jsonl,
    serialize_question,
    to_envelope,
)
from qbank_toolkit.grading import grade_session


class TestQuestionSerialization:
    """Tests for question serialization/deserialization."""

    def test_serialize_when_question_given_then_sorted_lists(self, make_question):
        q = make_question("q1", qtype=QuestionType.MULTI_CHOICE, key=["C", "A"], kps=["b", "a"])

        data = serialize_question(q)

        assert data["answer_key"] == ["A", "C"]
        assert data["knowledge_point_ids"] == ["a", "b"]
        assert "analysis" not in data

    def test_deserialize_when_serialized_then_equal(self, make_question):
        q = make_question("q1", kps=["algebra"], points=2.5)

        assert deserialize_question(serialize_question(q)) == q

    def test_deserialize_when_key_not_in_options_then_value_error(self, make_question):
        data = serialize_question(make_question("q1"))
        data["answer_key"] = ["Z"]

        with pytest.raises(ValueError):
            deserialize_question(data)


class TestJsonl:
    """Tests for questions.jsonl helpers."""

    def test_save_then_load_when_questions_given_then_order_kept(self, tmp_path, make_question):
        questions = [make_question(f"q{i}") for i in (3, 1, 2)]
        path = tmp_path / "bank" / "questions.jsonl"

        save_questions_jsonl(questions, path)
        loaded = load_questions_jsonl(path)

        assert [q.id for q in loaded] == ["q3", "q1", "q2"]

    def test_load_when_blank_lines_then_skipped(self, tmp_path, make_question):
        path = tmp_path / "questions.jsonl"
        line = json.dumps(serialize_question(make_question("q1")))
        path.write_text(f"\n{line}\n\n", encoding="utf-8")

        assert len(load_questions_jsonl(path)) == 1

    def test_load_when_bad_line_then_reports_line_number(self, tmp_path, make_question):
        path = tmp_path / "questions.jsonl"
        line = json.dumps(serialize_question(make_question("q1")))
        path.write_text(f"{line}\n{{not json\n", encoding="utf-8")

        with pytest.raises(ValidationError, match="line 2"):
            load_questions_jsonl(path)

    def test_load_when_file_missing_then_file_not_found(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_questions_jsonl(tmp_path / "missing.jsonl")


class TestEnvelopes:
    """Tests for stored artifact envelopes."""

    def test_from_envelope_when_session_with_multi_answer_then_tuple_restored(
        self, mixed_paper, start_time
    ):
        session = ExamSession(
            "s1", mixed_paper, start_time, timedelta(minutes=30),
            answers={"multi": ("A", "C"), "single": "B"},
            flagged=frozenset({"essay"}),
        )

        restored = from_envelope("session", json.loads(json.dumps(to_envelope("session", session))))

        assert restored == session
        assert restored.answers["multi"] == ("A", "C")
        assert restored.deadline == session.deadline

    def test_from_envelope_when_result_then_equal(self, mixed_paper, start_time):
        session = ExamSession("s1", mixed_paper, start_time, timedelta(minutes=30),
                              answers={"single": "B"})
        result = grade_session(session, start_time)

        assert from_envelope("result", to_envelope("result", result)) == result

    def test_from_envelope_when_practice_grant_then_untimed(self):
        grant = AccessGrant("code", "p1", None, mode=SessionMode.PRACTICE)

        assert from_envelope("access", to_envelope("access", grant)) == grant

    def test_from_envelope_when_payload_breaks_invariant_then_validation_error(self, mixed_paper):
        envelope = to_envelope("paper", mixed_paper)
        envelope["payload"]["questions"].append(envelope["payload"]["questions"][0])

        with pytest.raises(ValidationError, match="Invalid paper payload"):
            from_envelope("paper", envelope)

    def test_to_envelope_when_unknown_kind_then_raises(self, mixed_paper):
        with pytest.raises(ValueError, match="Unknown artifact kind"):
            to_envelope("exam", mixed_paper)
