"""
Module: grading

Purpose:
    Deterministic grading of submitted sessions plus reviewer amendments.

Key Functions:
    - grade_session(): Grade a session with default graders
    - apply_manual_grades(): Amend a result with reviewer grades

Key Classes:
    - GradingEngine: Per-question-type grader registry
    - ManualGrade: Reviewer decision for one question
"""

from .engine import (
    DEFAULT_GRADERS,
    GradingEngine,
    build_result,
    empty_answer,
    grade_question,
    grade_session,
)
from .manual import ManualGrade, apply_manual_grades

__all__ = [
    "DEFAULT_GRADERS",
    "GradingEngine",
    "build_result",
    "empty_answer",
    "grade_question",
    "grade_session",
    "ManualGrade",
    "apply_manual_grades",
]
