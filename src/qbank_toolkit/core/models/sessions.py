"""
Module: sessions

Purpose:
    Provides the ExamSession dataclass - one learner's timed attempt at a
    Paper. The session is an explicit persisted record; its effective
    status (e.g. logically expired) is derived from timestamps by pure
    functions in session.status, never by timers.

Key Classes:
    - SessionStatus: Stored lifecycle status
    - SessionMode: EXAM (timed) or PRACTICE (untimed)
    - ExamSession: Persisted session record

Dependencies:
    - dataclasses (std)
    - datetime (std)
    - .papers.Paper

Used By:
    - session.engine: Only writer of sessions
    - grading.engine: Reads answers at submission
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional, Union

from .papers import Paper
from .questions import QuestionType

# Normalized answer: option id / free text, or sorted option ids for MULTI_CHOICE
AnswerValue = Union[str, tuple[str, ...]]


class SessionStatus(Enum):
    """
    Session lifecycle status.

    NOT_STARTED is virtual (no record exists yet). SUBMITTED and EXPIRED
    are terminal; an EXPIRED session can still be converted to SUBMITTED
    by grading it.
    """

    NOT_STARTED = "NOT_STARTED"
    IN_PROGRESS = "IN_PROGRESS"
    SUBMITTED = "SUBMITTED"
    EXPIRED = "EXPIRED"

    @property
    def is_terminal(self) -> bool:
        return self in (SessionStatus.SUBMITTED, SessionStatus.EXPIRED)


class SessionMode(Enum):
    """EXAM sessions carry a deadline, PRACTICE sessions never expire."""

    EXAM = "EXAM"
    PRACTICE = "PRACTICE"


@dataclass(frozen=True)
class ExamSession:
    """
    Persisted exam session record (immutable; updates produce new versions).

    Attributes:
        id: Session identifier
        paper: Snapshot of the paper the session was started from
        started_at: Start timestamp
        time_limit: Allowed duration, None for untimed sessions
        status: Stored status (see session.status for the derived one)
        answers: question id -> normalized answer (last write wins)
        flagged: Question ids the learner marked for review
        learner_id: Opaque learner reference
        mode: EXAM or PRACTICE
        submitted_at: Timestamp of the terminal transition
        version: Incremented on every persisted change
        access_code: Code the session was started with, if any

    Invariants:
        - answers and flagged only reference questions in paper
        - time_limit is positive when given
    """

    id: str
    paper: Paper
    started_at: datetime
    time_limit: Optional[timedelta]
    status: SessionStatus = SessionStatus.IN_PROGRESS
    answers: Dict[str, AnswerValue] = field(default_factory=dict)
    flagged: FrozenSet[str] = field(default_factory=frozenset)
    learner_id: Optional[str] = None
    mode: SessionMode = SessionMode.EXAM
    submitted_at: Optional[datetime] = None
    version: int = 0
    access_code: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate session on construction."""
        if self.time_limit is not None and self.time_limit <= timedelta(0):
            raise ValueError(f"time_limit must be positive: {self.time_limit}")
        if self.status is SessionStatus.NOT_STARTED:
            raise ValueError("NOT_STARTED sessions are never persisted")
        unknown = (set(self.answers) | set(self.flagged)) - set(self.paper.question_ids)
        if unknown:
            raise ValueError(f"Session {self.id} references unknown questions: {sorted(unknown)}")

    @property
    def deadline(self) -> Optional[datetime]:
        if self.time_limit is None:
            return None
        return self.started_at + self.time_limit

    @property
    def answered_count(self) -> int:
        return len(self.answers)

    # ─────────────────────────────────────────────────────────────────────────
    # Transitions (return new records; callers persist them)
    # ─────────────────────────────────────────────────────────────────────────

    def with_answer(self, question_id: str, value: Optional[AnswerValue]) -> ExamSession:
        answers = dict(self.answers)
        if value is None:
            answers.pop(question_id, None)
        else:
            answers[question_id] = value
        return replace(self, answers=answers, version=self.version + 1)

    def with_flag(self, question_id: str, flagged: bool) -> ExamSession:
        marks = set(self.flagged)
        if flagged:
            marks.add(question_id)
        else:
            marks.discard(question_id)
        return replace(self, flagged=frozenset(marks), version=self.version + 1)

    def with_status(self, status: SessionStatus, at: datetime) -> ExamSession:
        return replace(self, status=status, submitted_at=at, version=self.version + 1)

    # ─────────────────────────────────────────────────────────────────────────
    # Serialization
    # ─────────────────────────────────────────────────────────────────────────

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "paper": self.paper.to_dict(),
            "started_at": self.started_at.isoformat(),
            "time_limit_seconds": (
                self.time_limit.total_seconds() if self.time_limit is not None else None
            ),
            "status": self.status.value,
            "answers": {
                qid: list(value) if isinstance(value, tuple) else value
                for qid, value in self.answers.items()
            },
            "flagged": sorted(self.flagged),
            "learner_id": self.learner_id,
            "mode": self.mode.value,
            "submitted_at": self.submitted_at.isoformat() if self.submitted_at else None,
            "version": self.version,
            "access_code": self.access_code,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ExamSession:
        paper = Paper.from_dict(data["paper"])
        answers: Dict[str, AnswerValue] = {}
        for qid, value in data.get("answers", {}).items():
            question = paper.get_question(qid)
            if question is not None and question.type is QuestionType.MULTI_CHOICE:
                answers[qid] = tuple(value)
            else:
                answers[qid] = value

        seconds = data.get("time_limit_seconds")
        submitted_at = data.get("submitted_at")
        return cls(
            id=str(data["id"]),
            paper=paper,
            started_at=datetime.fromisoformat(data["started_at"]),
            time_limit=timedelta(seconds=seconds) if seconds is not None else None,
            status=SessionStatus(data["status"]),
            answers=answers,
            flagged=frozenset(data.get("flagged", [])),
            learner_id=data.get("learner_id"),
            mode=SessionMode(data.get("mode", SessionMode.EXAM.value)),
            submitted_at=datetime.fromisoformat(submitted_at) if submitted_at else None,
            version=int(data.get("version", 0)),
            access_code=data.get("access_code"),
        )

    def __repr__(self) -> str:
        """Concise representation for debugging."""
        return (
            f"ExamSession({self.id}, paper={self.paper.id}, {self.status.value}, "
            f"answered={self.answered_count}/{self.paper.question_count}, v{self.version})"
        )
