"""
Module: grading

Purpose:
    Provides AnswerRecord and GradeResult - the terminal artifacts of a
    session. Both are produced once by the grading engine and never
    mutated; manual review produces a new GradeResult revision.

Key Classes:
    - AnswerRecord: Per-question outcome
    - GradeResult: Ordered records plus aggregate score

Dependencies:
    - dataclasses (std)
    - datetime (std)

Used By:
    - grading.engine: Produces results
    - grading.manual: Produces amended revisions
    - session.engine: Persists and returns results
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from .sessions import AnswerValue


@dataclass(frozen=True)
class AnswerRecord:
    """
    Outcome for one question of a graded session.

    Attributes:
        question_id: Question this record belongs to
        answer: Learner's answer ("" or () when unanswered)
        is_correct: None while the question awaits manual grading
        points_awarded: Points earned
        max_points: Weight of the question
        flagged: Whether the learner marked it for review
        notes: Reviewer notes from manual grading

    Invariants:
        - 0 <= points_awarded <= max_points
    """

    question_id: str
    answer: AnswerValue
    is_correct: Optional[bool]
    points_awarded: float
    max_points: float
    flagged: bool = False
    notes: Optional[str] = None

    def __post_init__(self) -> None:
        if not 0 <= self.points_awarded <= self.max_points:
            raise ValueError(
                f"points_awarded {self.points_awarded} outside 0..{self.max_points} "
                f"for question {self.question_id}"
            )

    @property
    def is_pending(self) -> bool:
        """True while the record awaits a reviewer."""
        return self.is_correct is None

    @property
    def is_answered(self) -> bool:
        return bool(self.answer)

    def to_dict(self) -> dict[str, Any]:
        return {
            "question_id": self.question_id,
            "answer": list(self.answer) if isinstance(self.answer, tuple) else self.answer,
            "is_correct": self.is_correct,
            "points_awarded": self.points_awarded,
            "max_points": self.max_points,
            "flagged": self.flagged,
            "notes": self.notes,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AnswerRecord:
        answer = data.get("answer", "")
        return cls(
            question_id=str(data["question_id"]),
            answer=tuple(answer) if isinstance(answer, list) else answer,
            is_correct=data.get("is_correct"),
            points_awarded=float(data.get("points_awarded", 0.0)),
            max_points=float(data.get("max_points", 0.0)),
            flagged=bool(data.get("flagged", False)),
            notes=data.get("notes"),
        )


@dataclass(frozen=True)
class GradeResult:
    """
    Graded outcome of a session (immutable).

    Attributes:
        session_id: Session that was graded
        records: One AnswerRecord per paper question, in paper order
        total_score: Points earned on graded questions
        max_score: Points available on graded records (pending ones
            excluded); equals Paper.max_score once nothing is pending
        pending_count: Questions awaiting manual grading
        graded_at: Timestamp of (re)grading
        revision: 0 for the automatic result, +1 per manual amendment

    Invariants:
        - question ids in records are pairwise distinct
        - pending_count == number of records with is_correct None

    Example:
        >>> result.total_score, result.max_score, result.percentage
        (3.0, 4.0, 75)
        >>> result.is_provisional
        False
    """

    session_id: str
    records: tuple[AnswerRecord, ...]
    total_score: float
    max_score: float
    pending_count: int
    graded_at: datetime
    revision: int = 0

    def __post_init__(self) -> None:
        """Validate result on construction."""
        ids = [r.question_id for r in self.records]
        if len(ids) != len(set(ids)):
            raise ValueError(f"Duplicate answer records in result for session {self.session_id}")
        pending = sum(1 for r in self.records if r.is_pending)
        if pending != self.pending_count:
            raise ValueError(
                f"pending_count {self.pending_count} does not match records ({pending})"
            )

    @property
    def is_provisional(self) -> bool:
        """True while some questions still await manual grading."""
        return self.pending_count > 0

    @property
    def percentage(self) -> int:
        """Whole-number percentage of graded points, 0 when nothing is graded."""
        if self.max_score <= 0:
            return 0
        return int(self.total_score * 100 / self.max_score)

    @property
    def correct_count(self) -> int:
        return sum(1 for r in self.records if r.is_correct)

    def get_record(self, question_id: str) -> Optional[AnswerRecord]:
        for record in self.records:
            if record.question_id == question_id:
                return record
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "session_id": self.session_id,
            "records": [r.to_dict() for r in self.records],
            "total_score": self.total_score,
            "max_score": self.max_score,
            "pending_count": self.pending_count,
            "graded_at": self.graded_at.isoformat(),
            "revision": self.revision,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GradeResult:
        return cls(
            session_id=str(data["session_id"]),
            records=tuple(AnswerRecord.from_dict(r) for r in data.get("records", [])),
            total_score=float(data["total_score"]),
            max_score=float(data.get("max_score", 0.0)),
            pending_count=int(data.get("pending_count", 0)),
            graded_at=datetime.fromisoformat(data["graded_at"]),
            revision=int(data.get("revision", 0)),
        )

    def __repr__(self) -> str:
        """Concise representation for debugging."""
        return (
            f"GradeResult({self.session_id}, score={self.total_score}/{self.max_score}, "
            f"pending={self.pending_count}, rev={self.revision})"
        )
