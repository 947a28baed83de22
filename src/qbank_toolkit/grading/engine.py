"""
Module: grading.engine

Purpose:
    Deterministic grading of a submitted session. Produces one
    AnswerRecord per paper question and the aggregate GradeResult.

Key Functions:
    - grade_session(): Grade a session with the default engine
    - grade_question(): Grade a single question/answer pair

Key Classes:
    - GradingEngine: Per-question-type grader registry

Rules:
    - SINGLE_CHOICE / TRUE_FALSE: correct iff the chosen id equals the key
    - MULTI_CHOICE: correct iff the chosen set equals the key set exactly
      (no partial credit)
    - Manual types: is_correct None, 0 points, counted as pending and left
      out of total and max score
    - Unanswered questions: empty answer, incorrect, 0 points

Used By:
    - session.engine: Called exactly once per session on submit
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Dict, List, Optional

from qbank_toolkit.core.models import (
    AnswerRecord,
    AnswerValue,
    ExamSession,
    GradeResult,
    PaperQuestion,
    QuestionType,
)

logger = logging.getLogger(__name__)

# Returns True/False for auto-graded answers, None to leave for a reviewer
Grader = Callable[[PaperQuestion, AnswerValue], Optional[bool]]


def _grade_single(question: PaperQuestion, answer: AnswerValue) -> Optional[bool]:
    if not isinstance(answer, str):
        return False
    return frozenset({answer}) == question.answer_key


def _grade_multi(question: PaperQuestion, answer: AnswerValue) -> Optional[bool]:
    chosen = frozenset({answer}) if isinstance(answer, str) else frozenset(answer)
    return chosen == question.answer_key


def _grade_manual(question: PaperQuestion, answer: AnswerValue) -> Optional[bool]:
    return None


DEFAULT_GRADERS: Dict[QuestionType, Grader] = {
    QuestionType.SINGLE_CHOICE: _grade_single,
    QuestionType.TRUE_FALSE: _grade_single,
    QuestionType.MULTI_CHOICE: _grade_multi,
    QuestionType.SHORT_ANSWER: _grade_manual,
    QuestionType.ESSAY: _grade_manual,
}


def empty_answer(question: PaperQuestion) -> AnswerValue:
    """Empty answer of the right shape for a question type."""
    return () if question.type is QuestionType.MULTI_CHOICE else ""


class GradingEngine:
    """
    Grades sessions using a grader per question type.

    Types without a registered grader are treated as manually graded.

    Example:
        >>> engine = GradingEngine()
        >>> result = engine.grade(session, graded_at=now)
        >>> result.total_score
        3.0
    """

    def __init__(self, graders: Optional[Dict[QuestionType, Grader]] = None) -> None:
        self._graders: Dict[QuestionType, Grader] = dict(DEFAULT_GRADERS)
        if graders:
            self._graders.update(graders)

    def grade_question(
        self,
        question: PaperQuestion,
        answer: Optional[AnswerValue],
        *,
        flagged: bool = False,
    ) -> AnswerRecord:
        """
        Grade one question.

        Args:
            question: Paper snapshot of the question
            answer: Normalized learner answer, None/empty when unanswered
            flagged: Whether the learner marked it for review

        Returns:
            AnswerRecord for the question
        """
        if not answer:
            return AnswerRecord(
                question_id=question.question_id,
                answer=empty_answer(question),
                is_correct=False,
                points_awarded=0.0,
                max_points=question.points,
                flagged=flagged,
            )

        grader = self._graders.get(question.type, _grade_manual)
        is_correct = grader(question, answer)
        return AnswerRecord(
            question_id=question.question_id,
            answer=answer,
            is_correct=is_correct,
            points_awarded=question.points if is_correct else 0.0,
            max_points=question.points,
            flagged=flagged,
        )

    def grade(self, session: ExamSession, graded_at: datetime) -> GradeResult:
        """
        Grade every question of a session's paper.

        Every paper question appears exactly once, in paper order, whether
        answered or not.

        Args:
            session: Session being submitted
            graded_at: Grading timestamp

        Returns:
            GradeResult with revision 0
        """
        records: List[AnswerRecord] = [
            self.grade_question(
                question,
                session.answers.get(question.question_id),
                flagged=question.question_id in session.flagged,
            )
            for question in session.paper.questions
        ]
        result = build_result(session.id, records, graded_at)
        logger.debug(
            f"Graded session {session.id}: {result.total_score}/{result.max_score} "
            f"({result.pending_count} pending)"
        )
        return result


def build_result(
    session_id: str,
    records: List[AnswerRecord],
    graded_at: datetime,
    revision: int = 0,
) -> GradeResult:
    """Aggregate records into a GradeResult; pending records are left out of the totals."""
    graded = [r for r in records if not r.is_pending]
    return GradeResult(
        session_id=session_id,
        records=tuple(records),
        total_score=float(sum(r.points_awarded for r in graded)),
        max_score=float(sum(r.max_points for r in graded)),
        pending_count=len(records) - len(graded),
        graded_at=graded_at,
        revision=revision,
    )


_DEFAULT_ENGINE = GradingEngine()


def grade_question(question: PaperQuestion, answer: Optional[AnswerValue]) -> AnswerRecord:
    """Grade one question with the default graders."""
    return _DEFAULT_ENGINE.grade_question(question, answer)


def grade_session(session: ExamSession, graded_at: datetime) -> GradeResult:
    """Grade a session with the default graders."""
    return _DEFAULT_ENGINE.grade(session, graded_at)
