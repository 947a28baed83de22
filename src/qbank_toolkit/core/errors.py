"""
Module: core.errors

Purpose:
    Exception taxonomy shared by the generation, session, grading and
    access layers. Every error here is recoverable by the caller (retry
    with adjusted input or surface to the end user).

Key Classes:
    - ExamError: Base class
    - InsufficientPoolError: Generation could not satisfy a PaperSpec
    - PaperNotFoundError, SessionNotFoundError: Unknown references
    - SessionExpiredError: Mutation after the deadline
    - InvalidStateError: Operation not valid in a terminal status
    - QuestionNotInPaperError: Question id not in the session's paper
    - InvalidAnswerError: Answer value has the wrong shape for its question
    - ConcurrentModificationError: Stale session version on save
"""

from __future__ import annotations

from datetime import datetime
from typing import Dict, Optional


class ExamError(Exception):
    """Base class for recoverable exam-core errors."""
    pass


class InsufficientPoolError(ExamError):
    """
    The candidate pool cannot satisfy a PaperSpec.

    Attributes:
        shortfalls: Constraint label -> number of questions missing,
            e.g. {"difficulty:EASY": 2, "knowledge_point:kp-7": 1, "total": 3}
    """

    def __init__(self, message: str, shortfalls: Optional[Dict[str, int]] = None):
        super().__init__(message)
        self.shortfalls = dict(shortfalls or {})


class PaperNotFoundError(ExamError):
    """A paper id or access code did not resolve to a paper."""

    def __init__(self, ref: str):
        super().__init__(f"Paper not found: {ref!r}")
        self.ref = ref


class SessionNotFoundError(ExamError):
    """No session is stored under the given id."""

    def __init__(self, session_id: str):
        super().__init__(f"Session not found: {session_id!r}")
        self.session_id = session_id


class SessionExpiredError(ExamError):
    """The session deadline has passed; only submission is still allowed."""

    def __init__(self, session_id: str, deadline: Optional[datetime]):
        super().__init__(f"Session {session_id!r} expired at {deadline}")
        self.session_id = session_id
        self.deadline = deadline


class InvalidStateError(ExamError):
    """The operation is not valid for the session's current status."""

    def __init__(self, session_id: str, status: object, operation: str):
        super().__init__(f"Cannot {operation} session {session_id!r} in status {status}")
        self.session_id = session_id
        self.status = status
        self.operation = operation


class QuestionNotInPaperError(ExamError):
    """The question id is not part of the session's paper snapshot."""

    def __init__(self, question_id: str, paper_id: str):
        super().__init__(f"Question {question_id!r} is not in paper {paper_id!r}")
        self.question_id = question_id
        self.paper_id = paper_id


class InvalidAnswerError(ExamError, ValueError):
    """The answer value does not fit the question type or its options."""
    pass


class ConcurrentModificationError(ExamError):
    """A session was saved against a version that is no longer current."""

    def __init__(self, session_id: str, expected: Optional[int], actual: Optional[int]):
        super().__init__(
            f"Session {session_id!r} changed concurrently "
            f"(expected version {expected}, found {actual})"
        )
        self.session_id = session_id
        self.expected = expected
        self.actual = actual
