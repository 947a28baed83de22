"""
Module: session

Purpose:
    Timed exam session lifecycle: start, incremental answers, lazy expiry
    and a single terminal submission.
"""

from .answers import normalize_answer
from .engine import ExamSessionEngine, QuestionView, SessionView
from .locks import SessionLocks
from .status import effective_status, is_expired, remaining_time

__all__ = [
    "ExamSessionEngine",
    "QuestionView",
    "SessionView",
    "SessionLocks",
    "normalize_answer",
    "effective_status",
    "is_expired",
    "remaining_time",
]
