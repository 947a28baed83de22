"""
Module: generation.config

Purpose:
    PaperSpec - the declarative selection constraints fed to the paper
    generator. Immutable, validated on construction, never persisted as
    mutable state.

Key Classes:
    - PaperSpec: Subject, count, difficulty and type mix, knowledge-point coverage

Dependencies:
    - dataclasses (std)
    - math (std)

Used By:
    - generation.generator: PaperGenerator
    - controller: ExamController.generate_paper
    - cli: generate command
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Dict, FrozenSet

from qbank_toolkit.core.models import Difficulty, QuestionType

_RATIO_EPSILON = 1e-9
DIFFICULTY_ORDER = (Difficulty.EASY, Difficulty.MEDIUM, Difficulty.HARD)


@dataclass(frozen=True)
class PaperSpec:
    """
    Constraints for generating a paper (immutable).

    The difficulty distribution is given either as target counts or as
    proportions of ``total``, never both. Slots not claimed by the
    distribution are filled uniformly at random.

    Type counts are minimums. They are drawn into the free slots first and
    topped up by same-difficulty swaps, so they never disturb the
    difficulty distribution.

    Attributes:
        subject_id: Subject to draw questions from
        total: Number of questions in the paper
        difficulty_counts: Target count per difficulty
        difficulty_ratios: Target proportion per difficulty
        type_counts: Minimum number of questions per question type
        knowledge_point_targets: Minimum number of questions per knowledge point
        excluded_ids: Question ids that must not be drawn
        title: Paper title
        points_by_type: Points per question type (default: each question's own points)
        allow_difficulty_backfill: Fill a short difficulty from neighbouring levels
        strict_coverage: Fail when knowledge-point targets cannot be met

    Invariants:
        - total > 0
        - at most one of difficulty_counts / difficulty_ratios is given
        - counts >= 0 and sum(counts) <= total
        - 0 <= ratio <= 1 and sum(ratios) <= 1
        - type counts >= 0 and sum(type counts) <= total
        - 0 < knowledge-point target <= total

    Example:
        >>> spec = PaperSpec(
        ...     subject_id="math",
        ...     total=10,
        ...     difficulty_ratios={Difficulty.EASY: 0.5, Difficulty.HARD: 0.25},
        ... )
        >>> spec.difficulty_targets()
        {<Difficulty.EASY: 'EASY'>: 5, <Difficulty.HARD: 'HARD'>: 2}
        >>> spec.unconstrained_count
        3
    """

    subject_id: str
    total: int

    # Distribution
    difficulty_counts: Dict[Difficulty, int] = field(default_factory=dict)
    difficulty_ratios: Dict[Difficulty, float] = field(default_factory=dict)
    type_counts: Dict[QuestionType, int] = field(default_factory=dict)

    # Coverage and exclusions
    knowledge_point_targets: Dict[str, int] = field(default_factory=dict)
    excluded_ids: FrozenSet[str] = field(default_factory=frozenset)

    # Output
    title: str = "Generated Paper"
    points_by_type: Dict[QuestionType, float] = field(default_factory=dict)

    # Algorithm behavior
    allow_difficulty_backfill: bool = False
    strict_coverage: bool = True

    def __post_init__(self) -> None:
        """Validate configuration on construction."""
        if self.total <= 0:
            raise ValueError(f"total must be positive: {self.total}")
        if self.difficulty_counts and self.difficulty_ratios:
            raise ValueError("Give difficulty_counts or difficulty_ratios, not both")

        for level, count in self.difficulty_counts.items():
            if count < 0:
                raise ValueError(f"difficulty count for {level.value} must be non-negative: {count}")
        if sum(self.difficulty_counts.values()) > self.total:
            raise ValueError(
                f"difficulty counts sum to {sum(self.difficulty_counts.values())}, "
                f"more than total {self.total}"
            )

        for level, ratio in self.difficulty_ratios.items():
            if not 0 <= ratio <= 1:
                raise ValueError(f"difficulty ratio for {level.value} must be within 0..1: {ratio}")
        if sum(self.difficulty_ratios.values()) > 1 + _RATIO_EPSILON:
            raise ValueError(
                f"difficulty ratios sum to {sum(self.difficulty_ratios.values())}, more than 1"
            )

        for qtype, count in self.type_counts.items():
            if count < 0:
                raise ValueError(f"type count for {qtype.value} must be non-negative: {count}")
        if sum(self.type_counts.values()) > self.total:
            raise ValueError(
                f"type counts sum to {sum(self.type_counts.values())}, "
                f"more than total {self.total}"
            )

        for kp, minimum in self.knowledge_point_targets.items():
            if not 0 < minimum <= self.total:
                raise ValueError(
                    f"knowledge point target for {kp!r} must be within 1..{self.total}: {minimum}"
                )

        for qtype, points in self.points_by_type.items():
            if points < 0:
                raise ValueError(f"points for {qtype.value} must be non-negative: {points}")

    # ─────────────────────────────────────────────────────────────────────────
    # Calculated Properties
    # ─────────────────────────────────────────────────────────────────────────

    def difficulty_targets(self) -> Dict[Difficulty, int]:
        """
        Target count per difficulty, in EASY..HARD order.

        Proportions are floored. When they add up to 1 the leftover slots
        go to the levels with the largest fractional parts (EASY first on
        ties) so the targets sum to exactly ``total``.

        Returns:
            Mapping with only the levels that have a positive target
        """
        if self.difficulty_counts:
            return {
                level: self.difficulty_counts[level]
                for level in DIFFICULTY_ORDER
                if self.difficulty_counts.get(level, 0) > 0
            }
        if not self.difficulty_ratios:
            return {}

        exact = {
            level: self.difficulty_ratios.get(level, 0.0) * self.total
            for level in DIFFICULTY_ORDER
        }
        counts = {level: math.floor(value + _RATIO_EPSILON) for level, value in exact.items()}

        if abs(sum(self.difficulty_ratios.values()) - 1) <= _RATIO_EPSILON:
            leftover = self.total - sum(counts.values())
            by_remainder = sorted(
                (level for level in DIFFICULTY_ORDER if level in self.difficulty_ratios),
                key=lambda level: -(exact[level] - counts[level]),
            )
            for level in by_remainder[:leftover]:
                counts[level] += 1

        return {level: count for level, count in counts.items() if count > 0}

    def type_targets(self) -> Dict[QuestionType, int]:
        """Minimum count per question type, in QuestionType order, positive only."""
        return {
            qtype: self.type_counts[qtype]
            for qtype in QuestionType
            if self.type_counts.get(qtype, 0) > 0
        }

    @property
    def constrained_count(self) -> int:
        return sum(self.difficulty_targets().values())

    @property
    def unconstrained_count(self) -> int:
        """Slots left for uniform random fill."""
        return self.total - self.constrained_count

    def points_for(self, qtype: QuestionType) -> float | None:
        """Points override for a question type, None to keep the question's own."""
        return self.points_by_type.get(qtype)
