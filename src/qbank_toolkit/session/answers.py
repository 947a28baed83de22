"""
Module: session.answers

Purpose:
    Normalize raw learner answers into the stored AnswerValue shape and
    reject values that cannot belong to the question.

Shapes:
    - SINGLE_CHOICE / TRUE_FALSE: one option id (str)
    - MULTI_CHOICE: sorted tuple of distinct option ids; a list/set/tuple
      or a comma-separated string is accepted
    - SHORT_ANSWER / ESSAY: free text
    - None (or an empty value) clears the answer
"""

from __future__ import annotations

from typing import Any, Iterable, Optional

from qbank_toolkit.core.errors import InvalidAnswerError
from qbank_toolkit.core.models import AnswerValue, PaperQuestion, QuestionType


def _split_ids(value: Any) -> list[str]:
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    if isinstance(value, (list, tuple, set, frozenset)):
        ids = []
        for item in value:
            if not isinstance(item, str):
                raise InvalidAnswerError(f"Option ids must be strings, got {type(item).__name__}")
            ids.append(item.strip())
        return ids
    raise InvalidAnswerError(f"Unsupported answer type: {type(value).__name__}")


def _check_known(question: PaperQuestion, ids: Iterable[str]) -> None:
    known = {opt.id for opt in question.options}
    unknown = sorted(set(ids) - known)
    if unknown:
        raise InvalidAnswerError(
            f"Unknown option(s) {unknown} for question {question.question_id}"
        )


def normalize_answer(question: PaperQuestion, value: Any) -> Optional[AnswerValue]:
    """
    Normalize a raw answer for storage.

    Args:
        question: Paper snapshot the answer is for
        value: Raw value supplied by the caller

    Returns:
        Normalized answer, or None when the answer should be cleared

    Raises:
        InvalidAnswerError: Wrong shape for the question type, or
            option ids not offered by the question
    """
    if value is None:
        return None

    if question.type is QuestionType.MULTI_CHOICE:
        ids = _split_ids(value)
        if not ids:
            return None
        _check_known(question, ids)
        return tuple(sorted(set(ids)))

    if not isinstance(value, str):
        raise InvalidAnswerError(
            f"{question.type.value} answer must be a string, got {type(value).__name__}"
        )

    if question.type.is_single_select:
        choice = value.strip()
        if not choice:
            return None
        _check_known(question, [choice])
        return choice

    # Manual types keep the text as written
    return value if value.strip() else None
