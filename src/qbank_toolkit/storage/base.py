"""
Module: storage.base

Purpose:
    Interfaces of the external collaborators the core consumes: a
    read-only question repository and an opaque persistence store.

Key Classes:
    - QuestionRepository: Query surface over the question bank
    - PersistenceStore: Save/load of papers, sessions, results, access grants

Contract notes:
    - Loads return exactly what was last saved; partial writes are never
      visible.
    - save_session performs a version check: ``expected_version`` must
      match the stored version (None means "must not exist yet"),
      otherwise ConcurrentModificationError is raised.
"""

from __future__ import annotations

from typing import AbstractSet, Iterable, List, Optional, Protocol, Sequence

from qbank_toolkit.core.models import (
    AccessGrant,
    Difficulty,
    ExamSession,
    GradeResult,
    Paper,
    Question,
)


class QuestionRepository(Protocol):
    """Read-only question bank."""

    def query(
        self,
        subject_id: str,
        difficulty: Optional[Difficulty] = None,
        knowledge_point_ids: Optional[Iterable[str]] = None,
        excluding: AbstractSet[str] = frozenset(),
    ) -> Sequence[Question]:
        """APPROVED questions of a subject, optionally narrowed down."""
        ...

    def get(self, question_id: str) -> Optional[Question]:
        ...


class PersistenceStore(Protocol):
    """Opaque store for the core's artifacts."""

    def save_paper(self, paper: Paper) -> None:
        ...

    def load_paper(self, paper_id: str) -> Optional[Paper]:
        ...

    def save_session(self, session: ExamSession, expected_version: Optional[int] = None) -> None:
        ...

    def load_session(self, session_id: str) -> Optional[ExamSession]:
        ...

    def list_sessions(
        self,
        paper_id: Optional[str] = None,
        learner_id: Optional[str] = None,
    ) -> List[ExamSession]:
        ...

    def save_grade_result(self, result: GradeResult) -> None:
        ...

    def load_grade_result(self, session_id: str) -> Optional[GradeResult]:
        ...

    def save_access_grant(self, grant: AccessGrant) -> None:
        ...

    def load_access_grant(self, code: str) -> Optional[AccessGrant]:
        ...


def matches_session_filter(
    session: ExamSession,
    paper_id: Optional[str],
    learner_id: Optional[str],
) -> bool:
    """Shared filter for list_sessions implementations."""
    if paper_id is not None and session.paper.id != paper_id:
        return False
    if learner_id is not None and session.learner_id != learner_id:
        return False
    return True
