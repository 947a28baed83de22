"""
Module: papers

Purpose:
    Provides the Paper and PaperQuestion dataclasses. A Paper is the
    immutable result of generation: an ordered snapshot of questions
    copied at generation time, so later edits in the question bank never
    reach an already-generated paper.

Key Classes:
    - PaperQuestion: Snapshot of one question (display data + answer key)
    - Paper: Ordered, duplicate-free collection of snapshots

Dependencies:
    - dataclasses (std)
    - datetime (std)
    - .questions

Used By:
    - generation.generator: Produces Papers
    - core.models.sessions.ExamSession: Sessions embed their Paper
    - grading.engine: Reads answer keys and points
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from functools import cached_property
from typing import Any, Dict, FrozenSet, Optional

from .questions import Question, QuestionOption, QuestionType


@dataclass(frozen=True)
class PaperQuestion:
    """
    Snapshot of a question inside a Paper.

    Carries only what is needed to display, answer and grade the question.
    Subject, status, difficulty, knowledge points and analysis are dropped.

    Attributes:
        question_id: Id of the source question
        type: QuestionType
        stem: Question text
        options: Ordered options
        answer_key: Correct option ids (never shown to learners)
        points: Weight of this question within the paper
    """

    question_id: str
    type: QuestionType
    stem: str
    options: tuple[QuestionOption, ...]
    answer_key: FrozenSet[str]
    points: float = 1.0

    def __post_init__(self) -> None:
        if self.points < 0:
            raise ValueError(f"points cannot be negative: {self.points}")

    @classmethod
    def from_question(cls, question: Question, points: Optional[float] = None) -> PaperQuestion:
        """
        Snapshot a question.

        Args:
            question: Source question
            points: Weight override (defaults to question.points)
        """
        return cls(
            question_id=question.id,
            type=question.type,
            stem=question.stem,
            options=tuple(question.options),
            answer_key=frozenset(question.answer_key),
            points=question.points if points is None else points,
        )

    @property
    def option_ids(self) -> tuple[str, ...]:
        return tuple(o.id for o in self.options)

    def to_dict(self) -> dict[str, Any]:
        return {
            "question_id": self.question_id,
            "type": self.type.value,
            "stem": self.stem,
            "options": [o.to_dict() for o in self.options],
            "answer_key": sorted(self.answer_key),
            "points": self.points,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PaperQuestion:
        return cls(
            question_id=str(data["question_id"]),
            type=QuestionType(data["type"]),
            stem=data.get("stem", ""),
            options=tuple(QuestionOption.from_dict(o) for o in data.get("options", [])),
            answer_key=frozenset(data.get("answer_key", [])),
            points=float(data.get("points", 1.0)),
        )


@dataclass(frozen=True)
class Paper:
    """
    Generated exam paper (immutable).

    Attributes:
        id: Unique paper identifier
        title: Display title
        questions: Ordered question snapshots
        created_at: Generation timestamp (timezone-aware)
        subject_id: Subject the paper was drawn from, if any

    Invariants:
        - question ids are pairwise distinct
        - questions is non-empty

    Example:
        >>> paper.question_ids
        ('q3', 'q7', 'q1')
        >>> paper.get_question('q7').points
        1.0
    """

    id: str
    title: str
    questions: tuple[PaperQuestion, ...]
    created_at: datetime
    subject_id: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate paper on construction."""
        if not self.id:
            raise ValueError("paper id must be non-empty")
        if not self.questions:
            raise ValueError(f"Paper {self.id} has no questions")
        ids = [q.question_id for q in self.questions]
        if len(ids) != len(set(ids)):
            raise ValueError(f"Duplicate questions in paper {self.id}")

    # ─────────────────────────────────────────────────────────────────────────
    # Calculated Properties (NEVER stored)
    # ─────────────────────────────────────────────────────────────────────────

    @cached_property
    def _by_id(self) -> Dict[str, PaperQuestion]:
        return {q.question_id: q for q in self.questions}

    @property
    def question_ids(self) -> tuple[str, ...]:
        return tuple(q.question_id for q in self.questions)

    @property
    def question_count(self) -> int:
        return len(self.questions)

    @property
    def max_score(self) -> float:
        """
        Full mark of the paper, manual-type questions included.

        A GradeResult reaches this max_score once none of its records is
        pending review.
        """
        return sum(q.points for q in self.questions)

    def get_question(self, question_id: str) -> Optional[PaperQuestion]:
        return self._by_id.get(question_id)

    def __contains__(self, question_id: object) -> bool:
        return question_id in self._by_id

    # ─────────────────────────────────────────────────────────────────────────
    # Serialization
    # ─────────────────────────────────────────────────────────────────────────

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "subject_id": self.subject_id,
            "created_at": self.created_at.isoformat(),
            "questions": [q.to_dict() for q in self.questions],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Paper:
        return cls(
            id=str(data["id"]),
            title=data.get("title", ""),
            questions=tuple(PaperQuestion.from_dict(q) for q in data["questions"]),
            created_at=datetime.fromisoformat(data["created_at"]),
            subject_id=data.get("subject_id"),
        )

    def __repr__(self) -> str:
        """Concise representation for debugging."""
        return f"Paper({self.id}, {self.title!r}, questions={self.question_count})"
