"""
Module: storage.memory

Purpose:
    In-process reference implementations of the repository and store
    interfaces. Thread-safe; used by tests and single-process deployments.

Key Classes:
    - InMemoryQuestionRepository: Question bank over a list (or JSONL file)
    - InMemoryStore: Dict-backed PersistenceStore with version checks
"""

from __future__ import annotations

import logging
from pathlib import Path
from threading import Lock
from typing import AbstractSet, Dict, Iterable, List, Optional, Sequence

from qbank_toolkit.core.errors import ConcurrentModificationError
from qbank_toolkit.core.models import (
    AccessGrant,
    Difficulty,
    ExamSession,
    GradeResult,
    Paper,
    Question,
)
from qbank_toolkit.core.utils.serialization import load_questions_jsonl

from .base import matches_session_filter

logger = logging.getLogger(__name__)


class InMemoryQuestionRepository:
    """
    Question bank held in memory, preserving insertion order.

    Example:
        >>> repo = InMemoryQuestionRepository(questions)
        >>> repo.query("math", difficulty=Difficulty.HARD)
        [Question(q9, SINGLE_CHOICE, HARD, kps=2)]
    """

    def __init__(self, questions: Iterable[Question] = ()) -> None:
        self._questions: Dict[str, Question] = {}
        self._lock = Lock()
        for question in questions:
            self.add(question)

    @classmethod
    def from_jsonl(cls, path: Path) -> InMemoryQuestionRepository:
        questions = load_questions_jsonl(path)
        logger.info(f"Loaded {len(questions)} questions from {path.name}")
        return cls(questions)

    def add(self, question: Question) -> None:
        """Add or replace a question (replacement keeps the original position)."""
        with self._lock:
            self._questions[question.id] = question

    def __len__(self) -> int:
        return len(self._questions)

    def get(self, question_id: str) -> Optional[Question]:
        return self._questions.get(question_id)

    def query(
        self,
        subject_id: str,
        difficulty: Optional[Difficulty] = None,
        knowledge_point_ids: Optional[Iterable[str]] = None,
        excluding: AbstractSet[str] = frozenset(),
    ) -> Sequence[Question]:
        """
        APPROVED questions of a subject.

        Args:
            subject_id: Subject to match
            difficulty: Only this level, if given
            knowledge_point_ids: Only questions covering at least one of these
            excluding: Question ids to leave out
        """
        kps = frozenset(knowledge_point_ids) if knowledge_point_ids is not None else None
        with self._lock:
            questions = list(self._questions.values())
        return [
            q for q in questions
            if q.subject_id == subject_id
            and q.is_eligible
            and q.id not in excluding
            and (difficulty is None or q.difficulty is difficulty)
            and (kps is None or q.knowledge_point_ids & kps)
        ]


class InMemoryStore:
    """
    Dict-backed PersistenceStore.

    Models are immutable, so stored instances are shared, never copied.
    """

    def __init__(self) -> None:
        self._papers: Dict[str, Paper] = {}
        self._sessions: Dict[str, ExamSession] = {}
        self._results: Dict[str, GradeResult] = {}
        self._grants: Dict[str, AccessGrant] = {}
        self._lock = Lock()

    # Papers

    def save_paper(self, paper: Paper) -> None:
        with self._lock:
            self._papers[paper.id] = paper

    def load_paper(self, paper_id: str) -> Optional[Paper]:
        return self._papers.get(paper_id)

    # Sessions

    def save_session(self, session: ExamSession, expected_version: Optional[int] = None) -> None:
        with self._lock:
            current = self._sessions.get(session.id)
            actual = current.version if current is not None else None
            if actual != expected_version:
                raise ConcurrentModificationError(session.id, expected_version, actual)
            self._sessions[session.id] = session

    def load_session(self, session_id: str) -> Optional[ExamSession]:
        return self._sessions.get(session_id)

    def list_sessions(
        self,
        paper_id: Optional[str] = None,
        learner_id: Optional[str] = None,
    ) -> List[ExamSession]:
        with self._lock:
            sessions = list(self._sessions.values())
        return [s for s in sessions if matches_session_filter(s, paper_id, learner_id)]

    # Results

    def save_grade_result(self, result: GradeResult) -> None:
        with self._lock:
            self._results[result.session_id] = result

    def load_grade_result(self, session_id: str) -> Optional[GradeResult]:
        return self._results.get(session_id)

    # Access grants

    def save_access_grant(self, grant: AccessGrant) -> None:
        if not grant.code:
            raise ValueError("Only grants with a code can be stored")
        with self._lock:
            self._grants[grant.code] = grant

    def load_access_grant(self, code: str) -> Optional[AccessGrant]:
        return self._grants.get(code)
