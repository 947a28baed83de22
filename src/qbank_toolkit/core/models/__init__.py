"""
Core Models Package

Immutable, validated data models shared by every engine.

All models in this package are frozen dataclasses. Updates to a session
produce a new record with a bumped version, which keeps reads lock-free
against the last committed snapshot and makes persistence a single write.
"""

from .questions import Difficulty, Question, QuestionOption, QuestionStatus, QuestionType
from .papers import Paper, PaperQuestion
from .sessions import AnswerValue, ExamSession, SessionMode, SessionStatus
from .grading import AnswerRecord, GradeResult
from .access import AccessGrant

__all__ = [
    "Difficulty",
    "Question",
    "QuestionOption",
    "QuestionStatus",
    "QuestionType",
    "Paper",
    "PaperQuestion",
    "AnswerValue",
    "ExamSession",
    "SessionMode",
    "SessionStatus",
    "AnswerRecord",
    "GradeResult",
    "AccessGrant",
]
