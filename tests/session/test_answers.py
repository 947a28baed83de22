"""
Unit tests for answer normalization.
"""

import pytest

from qbank_toolkit.core.errors import InvalidAnswerError
from qbank_toolkit.core.models import PaperQuestion, QuestionType
from qbank_toolkit.session import normalize_answer


@pytest.fixture
def snapshot(make_question):
    def _snapshot(qtype):
        return PaperQuestion.from_question(make_question("q1", qtype=qtype))
    return _snapshot


class TestNormalizeAnswer:
    """Tests for normalize_answer."""

    def test_normalize_when_none_then_cleared(self, snapshot):
        assert normalize_answer(snapshot(QuestionType.SINGLE_CHOICE), None) is None

    def test_normalize_when_single_choice_then_stripped_id(self, snapshot):
        assert normalize_answer(snapshot(QuestionType.SINGLE_CHOICE), " B ") == "B"

    def test_normalize_when_single_choice_unknown_option_then_raises(self, snapshot):
        with pytest.raises(InvalidAnswerError, match="Unknown option"):
            normalize_answer(snapshot(QuestionType.SINGLE_CHOICE), "Z")

    def test_normalize_when_single_choice_given_list_then_raises(self, snapshot):
        with pytest.raises(InvalidAnswerError, match="must be a string"):
            normalize_answer(snapshot(QuestionType.SINGLE_CHOICE), ["A"])

    def test_normalize_when_multi_choice_list_then_sorted_unique_tuple(self, snapshot):
        assert normalize_answer(snapshot(QuestionType.MULTI_CHOICE), ["C", "A", "C"]) == ("A", "C")

    def test_normalize_when_multi_choice_comma_string_then_tuple(self, snapshot):
        assert normalize_answer(snapshot(QuestionType.MULTI_CHOICE), "C, A") == ("A", "C")

    def test_normalize_when_multi_choice_empty_then_cleared(self, snapshot):
        assert normalize_answer(snapshot(QuestionType.MULTI_CHOICE), []) is None

    def test_normalize_when_multi_choice_non_string_items_then_raises(self, snapshot):
        with pytest.raises(InvalidAnswerError):
            normalize_answer(snapshot(QuestionType.MULTI_CHOICE), [1, 2])

    def test_normalize_when_true_false_then_option_checked(self, snapshot):
        question = snapshot(QuestionType.TRUE_FALSE)

        assert normalize_answer(question, "T") == "T"
        with pytest.raises(InvalidAnswerError):
            normalize_answer(question, "A")

    def test_normalize_when_essay_then_text_kept(self, snapshot):
        assert normalize_answer(snapshot(QuestionType.ESSAY), "  My essay\n") == "  My essay\n"
        assert normalize_answer(snapshot(QuestionType.ESSAY), "   ") is None

    def test_invalid_answer_error_when_raised_then_is_value_error(self, snapshot):
        with pytest.raises(ValueError):
            normalize_answer(snapshot(QuestionType.SHORT_ANSWER), 42)
