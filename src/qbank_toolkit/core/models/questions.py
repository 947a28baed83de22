"""
Module: questions

Purpose:
    Provides the Question dataclass - the question-bank record that paper
    generation selects from - together with its enums and options.
    Questions are owned by the (external) authoring flow; this module only
    models them immutably so a Paper can snapshot them safely.

Key Classes:
    - QuestionType: Kind of question, knows whether it is auto-gradable
    - Difficulty: Ordered difficulty level
    - QuestionStatus: Authoring lifecycle status
    - QuestionOption: One selectable option
    - Question: Complete question record

Dependencies:
    - dataclasses (std)
    - enum (std)

Used By:
    - core.models.papers.PaperQuestion.from_question
    - generation.generator
    - storage.memory.InMemoryQuestionRepository
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, FrozenSet, Optional


class QuestionType(Enum):
    """
    Kind of question.

    Choice types are graded from the answer key alone. Free-text types
    are left pending for a reviewer.
    """

    SINGLE_CHOICE = "SINGLE_CHOICE"
    MULTI_CHOICE = "MULTI_CHOICE"
    TRUE_FALSE = "TRUE_FALSE"
    SHORT_ANSWER = "SHORT_ANSWER"
    ESSAY = "ESSAY"

    @property
    def is_auto_graded(self) -> bool:
        return self in _AUTO_GRADED

    @property
    def is_single_select(self) -> bool:
        return self in (QuestionType.SINGLE_CHOICE, QuestionType.TRUE_FALSE)


_AUTO_GRADED = frozenset({
    QuestionType.SINGLE_CHOICE,
    QuestionType.MULTI_CHOICE,
    QuestionType.TRUE_FALSE,
})


class Difficulty(Enum):
    """
    Ordered difficulty level: EASY < MEDIUM < HARD.

    Example:
        >>> Difficulty.EASY < Difficulty.HARD
        True
        >>> Difficulty.MEDIUM.distance(Difficulty.HARD)
        1
    """

    EASY = "EASY"
    MEDIUM = "MEDIUM"
    HARD = "HARD"

    @property
    def rank(self) -> int:
        return _DIFFICULTY_RANK[self]

    def distance(self, other: Difficulty) -> int:
        return abs(self.rank - other.rank)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Difficulty):
            return NotImplemented
        return self.rank < other.rank


_DIFFICULTY_RANK = {Difficulty.EASY: 0, Difficulty.MEDIUM: 1, Difficulty.HARD: 2}


class QuestionStatus(Enum):
    """Authoring status. Only APPROVED questions are eligible for papers."""

    DRAFT = "DRAFT"
    PENDING_REVIEW = "PENDING_REVIEW"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    ARCHIVED = "ARCHIVED"


@dataclass(frozen=True)
class QuestionOption:
    """One selectable option of a choice question."""

    id: str
    text: str

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("option id must be non-empty")

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "text": self.text}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> QuestionOption:
        return cls(id=str(data["id"]), text=data.get("text", ""))


@dataclass(frozen=True)
class Question:
    """
    Complete question-bank record (immutable).

    Attributes:
        id: Unique identifier like "math-0042"
        type: QuestionType
        stem: Question text shown to the learner
        options: Ordered options (empty for free-text types)
        answer_key: Correct option ids
        difficulty: Difficulty level
        subject_id: Owning subject
        knowledge_point_ids: Topics this question exercises
        status: Authoring status
        points: Weight awarded when answered correctly
        analysis: Optional worked explanation (never copied into papers)

    Invariants:
        - option ids are unique
        - SINGLE_CHOICE / TRUE_FALSE have exactly one key
        - MULTI_CHOICE has at least one key
        - choice keys reference existing options
        - points >= 0

    Example:
        >>> q = Question(
        ...     id="q1",
        ...     type=QuestionType.SINGLE_CHOICE,
        ...     stem="2 + 2 = ?",
        ...     options=(QuestionOption("A", "3"), QuestionOption("B", "4")),
        ...     answer_key=frozenset({"B"}),
        ...     difficulty=Difficulty.EASY,
        ...     subject_id="math",
        ... )
        >>> q.is_eligible
        True
    """

    id: str
    type: QuestionType
    stem: str
    options: tuple[QuestionOption, ...]
    answer_key: FrozenSet[str]
    difficulty: Difficulty
    subject_id: str
    knowledge_point_ids: FrozenSet[str] = field(default_factory=frozenset)
    status: QuestionStatus = QuestionStatus.APPROVED
    points: float = 1.0
    analysis: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate question on construction."""
        if not self.id:
            raise ValueError("question id must be non-empty")
        if self.points < 0:
            raise ValueError(f"points cannot be negative: {self.points}")

        option_ids = [o.id for o in self.options]
        if len(option_ids) != len(set(option_ids)):
            raise ValueError(f"Duplicate option ids in question {self.id}: {option_ids}")

        if self.type.is_single_select and len(self.answer_key) != 1:
            raise ValueError(
                f"{self.type.value} question {self.id} needs exactly one key, "
                f"got {sorted(self.answer_key)}"
            )
        if self.type is QuestionType.MULTI_CHOICE and not self.answer_key:
            raise ValueError(f"MULTI_CHOICE question {self.id} needs at least one key")

        if self.type.is_auto_graded:
            unknown = self.answer_key - set(option_ids)
            if unknown:
                raise ValueError(
                    f"Answer key references unknown options for question {self.id}: "
                    f"{sorted(unknown)}"
                )

    @property
    def option_ids(self) -> tuple[str, ...]:
        return tuple(o.id for o in self.options)

    @property
    def is_eligible(self) -> bool:
        """True if the question may be drawn into a paper."""
        return self.status is QuestionStatus.APPROVED

    def covers(self, knowledge_point_id: str) -> bool:
        return knowledge_point_id in self.knowledge_point_ids

    # ─────────────────────────────────────────────────────────────────────────
    # Serialization
    # ─────────────────────────────────────────────────────────────────────────

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "type": self.type.value,
            "stem": self.stem,
            "options": [o.to_dict() for o in self.options],
            "answer_key": sorted(self.answer_key),
            "difficulty": self.difficulty.value,
            "subject_id": self.subject_id,
            "knowledge_point_ids": sorted(self.knowledge_point_ids),
            "status": self.status.value,
            "points": self.points,
        }
        if self.analysis is not None:
            data["analysis"] = self.analysis
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Question:
        return cls(
            id=str(data["id"]),
            type=QuestionType(data["type"]),
            stem=data.get("stem", ""),
            options=tuple(QuestionOption.from_dict(o) for o in data.get("options", [])),
            answer_key=frozenset(data.get("answer_key", [])),
            difficulty=Difficulty(data["difficulty"]),
            subject_id=str(data["subject_id"]),
            knowledge_point_ids=frozenset(data.get("knowledge_point_ids", [])),
            status=QuestionStatus(data.get("status", QuestionStatus.APPROVED.value)),
            points=float(data.get("points", 1.0)),
            analysis=data.get("analysis"),
        )

    def __repr__(self) -> str:
        """Concise representation for debugging."""
        return (
            f"Question({self.id}, {self.type.value}, {self.difficulty.value}, "
            f"kps={len(self.knowledge_point_ids)})"
        )
