"""
Module: grading.manual

Purpose:
    Reviewer amendments. Applies manual grades to a GradeResult and
    returns a new revision; the original result is never modified.

Key Classes:
    - ManualGrade: Points (and notes) a reviewer awards one question

Key Functions:
    - apply_manual_grades(): Produce an amended GradeResult
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Dict, Optional, Sequence

from qbank_toolkit.core.errors import QuestionNotInPaperError
from qbank_toolkit.core.models import GradeResult

from .engine import build_result

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ManualGrade:
    """Reviewer decision for one question."""

    question_id: str
    points: float
    notes: Optional[str] = None


def apply_manual_grades(
    result: GradeResult,
    grades: Sequence[ManualGrade],
    graded_at: datetime,
    *,
    paper_id: str = "",
) -> GradeResult:
    """
    Apply reviewer grades to a result.

    Points are clamped to 0..max_points. A record counts as correct when
    it receives full points. Amended records stop being pending and join
    the total and max score.

    Args:
        result: Result to amend
        grades: Reviewer decisions
        graded_at: Amendment timestamp
        paper_id: Paper id, used in error messages

    Returns:
        New GradeResult with revision + 1

    Raises:
        QuestionNotInPaperError: If a grade references an unknown question
    """
    by_id: Dict[str, ManualGrade] = {}
    for grade in grades:
        if result.get_record(grade.question_id) is None:
            raise QuestionNotInPaperError(grade.question_id, paper_id)
        by_id[grade.question_id] = grade

    records = []
    for record in result.records:
        grade = by_id.get(record.question_id)
        if grade is None:
            records.append(record)
            continue

        points = min(max(grade.points, 0.0), record.max_points)
        if points != grade.points:
            logger.warning(
                f"Clamped manual grade for {record.question_id} from {grade.points} to {points}"
            )
        records.append(replace(
            record,
            is_correct=points >= record.max_points,
            points_awarded=points,
            notes=grade.notes if grade.notes is not None else record.notes,
        ))

    amended = build_result(result.session_id, records, graded_at, revision=result.revision + 1)
    logger.info(
        f"Amended result for session {result.session_id} to revision {amended.revision} "
        f"({amended.total_score}/{amended.max_score}, {amended.pending_count} pending)"
    )
    return amended
