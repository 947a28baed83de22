"""
Module: session.engine

Purpose:
    Owns the exam session state machine. The engine is the only writer of
    sessions and calls the grading engine exactly once per session.

        NOT_STARTED --start--> IN_PROGRESS --submit--> SUBMITTED
                                   |                      ^
                                   +--deadline--> EXPIRED-+ (submit grades it)

    Expiry is detected lazily: the first mutation at or after the deadline
    persists it (auto-submission when grade_on_expiry is set, otherwise
    the EXPIRED status) and is then rejected with SessionExpiredError, as
    is every later mutation past the deadline.

Key Classes:
    - ExamSessionEngine: start / answer / flag / submit / view
    - SessionView, QuestionView: Learner-facing read model (no answer keys)

Dependencies:
    - session.status: Pure expiry derivation
    - session.answers: Answer normalization
    - session.locks: Per-session mutual exclusion
    - grading.engine: GradingEngine

Used By:
    - controller.ExamController
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Optional

from qbank_toolkit.core.errors import (
    InvalidStateError,
    PaperNotFoundError,
    QuestionNotInPaperError,
    SessionExpiredError,
    SessionNotFoundError,
)
from qbank_toolkit.core.models import (
    AnswerValue,
    ExamSession,
    GradeResult,
    PaperQuestion,
    QuestionOption,
    QuestionType,
    SessionMode,
    SessionStatus,
)
from qbank_toolkit.grading import GradingEngine
from qbank_toolkit.storage.base import PersistenceStore

from .answers import normalize_answer
from .locks import SessionLocks
from .status import effective_status, is_expired, remaining_time

logger = logging.getLogger(__name__)


def _new_session_id() -> str:
    return uuid.uuid4().hex


# ─────────────────────────────────────────────────────────────────────────────
# Read model
# ─────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class QuestionView:
    """One question as shown to the learner, with their current answer."""

    question_id: str
    type: QuestionType
    stem: str
    options: tuple[QuestionOption, ...]
    points: float
    answer: Optional[AnswerValue] = None
    flagged: bool = False

    @classmethod
    def build(cls, question: PaperQuestion, session: ExamSession) -> QuestionView:
        return cls(
            question_id=question.question_id,
            type=question.type,
            stem=question.stem,
            options=question.options,
            points=question.points,
            answer=session.answers.get(question.question_id),
            flagged=question.question_id in session.flagged,
        )


@dataclass(frozen=True)
class SessionView:
    """
    Snapshot of a session at a point in time.

    Attributes:
        status: Effective status (an overdue IN_PROGRESS session reads EXPIRED)
        remaining: Time left, None for untimed sessions
    """

    session_id: str
    paper_id: str
    title: str
    status: SessionStatus
    mode: SessionMode
    started_at: datetime
    deadline: Optional[datetime]
    remaining: Optional[timedelta]
    questions: tuple[QuestionView, ...]
    learner_id: Optional[str] = None

    @property
    def answered_count(self) -> int:
        return sum(1 for q in self.questions if q.answer is not None)

    @property
    def flagged_ids(self) -> tuple[str, ...]:
        return tuple(q.question_id for q in self.questions if q.flagged)

    @classmethod
    def build(cls, session: ExamSession, now: datetime) -> SessionView:
        return cls(
            session_id=session.id,
            paper_id=session.paper.id,
            title=session.paper.title,
            status=effective_status(session, now),
            mode=session.mode,
            started_at=session.started_at,
            deadline=session.deadline,
            remaining=remaining_time(session, now),
            questions=tuple(QuestionView.build(q, session) for q in session.paper.questions),
            learner_id=session.learner_id,
        )


# ─────────────────────────────────────────────────────────────────────────────
# Engine
# ─────────────────────────────────────────────────────────────────────────────

class ExamSessionEngine:
    """
    Session lifecycle over a PersistenceStore.

    Mutations of one session run under that session's lock and save with
    a version check, so concurrent writers in other processes surface as
    ConcurrentModificationError instead of lost updates.

    Example:
        >>> engine = ExamSessionEngine(store)
        >>> session = engine.start(paper.id, timedelta(minutes=30), now)
        >>> engine.answer(session.id, "q1", "B", now)
        datetime.timedelta(seconds=1800)
        >>> engine.submit(session.id, now).total_score
        1.0
    """

    def __init__(
        self,
        store: PersistenceStore,
        grading_engine: Optional[GradingEngine] = None,
        *,
        grade_on_expiry: bool = True,
        id_factory: Callable[[], str] = _new_session_id,
        locks: Optional[SessionLocks] = None,
    ) -> None:
        self._store = store
        self._grading = grading_engine if grading_engine is not None else GradingEngine()
        self._grade_on_expiry = grade_on_expiry
        self._id_factory = id_factory
        self._locks = locks if locks is not None else SessionLocks()

    # ─────────────────────────────────────────────────────────────────────────
    # Operations
    # ─────────────────────────────────────────────────────────────────────────

    def start(
        self,
        paper_id: str,
        time_limit: Optional[timedelta],
        now: datetime,
        *,
        learner_id: Optional[str] = None,
        mode: SessionMode = SessionMode.EXAM,
        access_code: Optional[str] = None,
    ) -> ExamSession:
        """
        Start a session on a stored paper.

        The paper is embedded as-is, so later changes to the bank never
        reach a running session.

        Args:
            paper_id: Id of a stored paper
            time_limit: Allowed duration (ignored for PRACTICE sessions)
            now: Start time; the deadline is ``now + time_limit``
            learner_id: Opaque learner reference
            mode: EXAM or PRACTICE
            access_code: Code the learner used, kept for auditing

        Raises:
            PaperNotFoundError: No paper stored under paper_id
            ValueError: EXAM session without a time limit
        """
        paper = self._store.load_paper(paper_id)
        if paper is None:
            raise PaperNotFoundError(paper_id)

        if mode is SessionMode.PRACTICE:
            time_limit = None
        elif time_limit is None:
            raise ValueError("EXAM sessions require a time limit")

        session = ExamSession(
            id=self._id_factory(),
            paper=paper,
            started_at=now,
            time_limit=time_limit,
            learner_id=learner_id,
            mode=mode,
            access_code=access_code,
        )
        self._store.save_session(session, expected_version=None)
        logger.info(
            f"Started session {session.id} on paper {paper.id} "
            f"({mode.value}, deadline {session.deadline})"
        )
        return session

    def answer(
        self,
        session_id: str,
        question_id: str,
        value: Any,
        now: datetime,
    ) -> Optional[timedelta]:
        """
        Record (or clear, with None) the answer to one question.

        Last write wins.

        Returns:
            Remaining time, None for untimed sessions

        Raises:
            SessionNotFoundError: Unknown session
            InvalidStateError: Session submitted before its deadline
            SessionExpiredError: Deadline reached, whatever the stored status
                (a pending expiry is persisted first)
            QuestionNotInPaperError: Question not in the session's paper
            InvalidAnswerError: Value does not fit the question
        """
        with self._locks.for_session(session_id):
            session = self._load(session_id)
            self._ensure_writable(session, now, "answer")
            question = self._question(session, question_id)
            updated = session.with_answer(question_id, normalize_answer(question, value))
            self._store.save_session(updated, expected_version=session.version)
            logger.debug(f"Session {session_id}: answered {question_id}")
            return remaining_time(updated, now)

    def flag(
        self,
        session_id: str,
        question_id: str,
        flagged: bool,
        now: datetime,
    ) -> ExamSession:
        """Mark or unmark a question for review. Same state rules as answer()."""
        with self._locks.for_session(session_id):
            session = self._load(session_id)
            self._ensure_writable(session, now, "flag")
            self._question(session, question_id)
            updated = session.with_flag(question_id, flagged)
            self._store.save_session(updated, expected_version=session.version)
            return updated

    def submit(self, session_id: str, now: datetime) -> GradeResult:
        """
        Submit a session and return its grade.

        Allowed from IN_PROGRESS (before or after the deadline) and from
        EXPIRED. Repeated submissions return the stored result unchanged.

        Raises:
            SessionNotFoundError: Unknown session
        """
        with self._locks.for_session(session_id):
            session = self._load(session_id)
            if session.status is SessionStatus.SUBMITTED:
                result = self._store.load_grade_result(session_id)
                if result is not None:
                    return result
                logger.warning(f"Session {session_id} is SUBMITTED without a stored result")
                result = self._grading.grade(session, graded_at=now)
                self._store.save_grade_result(result)
                return result
            return self._finalize(session, now)

    def settle(self, session_id: str, now: datetime) -> ExamSession:
        """
        Persist a pending expiry, if any, and return the current record.

        Reads that must reflect an overdue session (e.g. fetching its
        result) call this instead of waiting for the next mutation.
        """
        with self._locks.for_session(session_id):
            session = self._load(session_id)
            if session.status is SessionStatus.IN_PROGRESS and is_expired(session, now):
                return self._expire(session, now)
            return session

    def get(self, session_id: str) -> ExamSession:
        return self._load(session_id)

    def view(self, session_id: str, now: datetime) -> SessionView:
        """Lock-free read of a session with its derived status."""
        return SessionView.build(self._load(session_id), now)

    # ─────────────────────────────────────────────────────────────────────────
    # Helpers
    # ─────────────────────────────────────────────────────────────────────────

    def _load(self, session_id: str) -> ExamSession:
        session = self._store.load_session(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    @staticmethod
    def _question(session: ExamSession, question_id: str) -> PaperQuestion:
        question = session.paper.get_question(question_id)
        if question is None:
            raise QuestionNotInPaperError(question_id, session.paper.id)
        return question

    def _ensure_writable(self, session: ExamSession, now: datetime, operation: str) -> None:
        # Past the deadline every mutation fails the same way, however the
        # expiry was persisted (auto-submitted or parked as EXPIRED).
        if is_expired(session, now):
            if session.status is SessionStatus.IN_PROGRESS:
                self._expire(session, now)
            raise SessionExpiredError(session.id, session.deadline)
        if session.status is SessionStatus.SUBMITTED:
            raise InvalidStateError(session.id, session.status, operation)
        if session.status is SessionStatus.EXPIRED:
            raise SessionExpiredError(session.id, session.deadline)

    def _expire(self, session: ExamSession, now: datetime) -> ExamSession:
        logger.info(f"Session {session.id} expired at {session.deadline}")
        if self._grade_on_expiry:
            self._finalize(session, now)
            return self._load(session.id)
        expired = session.with_status(SessionStatus.EXPIRED, session.deadline or now)
        self._store.save_session(expired, expected_version=session.version)
        return expired

    def _finalize(self, session: ExamSession, now: datetime) -> GradeResult:
        # The result is written before the status flips, so a crash in
        # between leaves a result that the next submit picks up as-is.
        result = self._store.load_grade_result(session.id)
        if result is None:
            result = self._grading.grade(session, graded_at=now)
            self._store.save_grade_result(result)
        else:
            logger.info(f"Reusing stored result for session {session.id}")

        submitted = session.with_status(SessionStatus.SUBMITTED, now)
        self._store.save_session(submitted, expected_version=session.version)
        logger.info(
            f"Submitted session {session.id}: {result.total_score}/{result.max_score} "
            f"({result.pending_count} pending)"
        )
        return result
