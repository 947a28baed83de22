"""
Module: generation.generator

Purpose:
    Stratified paper generation. Selects a duplicate-free question set
    satisfying a PaperSpec and snapshots it into an immutable Paper.

Key Functions:
    - generate_paper(): Main entry point over a candidate pool
    - generate_paper_from_repository(): Queries a QuestionRepository first
    - assemble_paper(): Build a Paper from an explicit question list

Key Classes:
    - PaperGenerator: Orchestrates the selection steps

Algorithm:
    1. Filter the pool (subject, APPROVED, not excluded, de-duplicated)
       and partition it by difficulty
    2. Draw each difficulty target at random from its partition
       (optionally backfilling shortfalls from neighbouring levels)
    3. Draw question-type minimums at random into free slots
    4. Repair type and knowledge-point coverage greedily
    5. Fill remaining slots uniformly at random
    6. Fail atomically with InsufficientPoolError if anything is short

Dependencies:
    - random (std): Injected random.Random drives every random choice
    - generation.config: PaperSpec
    - generation.coverage: repair_coverage

Used By:
    - controller: ExamController.generate_paper
    - cli: generate command
"""

from __future__ import annotations

import logging
import random
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Dict, FrozenSet, List, Mapping, Optional, Sequence, Set

from qbank_toolkit.core.errors import InsufficientPoolError
from qbank_toolkit.core.models import Difficulty, Paper, PaperQuestion, Question

from .config import DIFFICULTY_ORDER, PaperSpec
from .coverage import repair_coverage

if TYPE_CHECKING:
    from qbank_toolkit.storage.base import QuestionRepository

logger = logging.getLogger(__name__)

TYPE_TAG = "type:"
KNOWLEDGE_POINT_TAG = "knowledge_point:"


def question_tags(question: Question) -> FrozenSet[str]:
    """Coverage tags of a question: its type plus each knowledge point."""
    return frozenset(
        [f"{TYPE_TAG}{question.type.value}"]
        + [f"{KNOWLEDGE_POINT_TAG}{kp}" for kp in question.knowledge_point_ids]
    )


def _describe(shortfalls: Mapping[str, int], prefix: str) -> str:
    return ", ".join(f"{tag[len(prefix):]} short by {n}" for tag, n in sorted(shortfalls.items()))


def generate_paper(
    spec: PaperSpec,
    candidate_pool: Sequence[Question],
    rng: Optional[random.Random] = None,
    *,
    paper_id: Optional[str] = None,
    created_at: Optional[datetime] = None,
) -> Paper:
    """
    Generate a paper from a candidate pool.

    Args:
        spec: Selection constraints
        candidate_pool: Candidate questions; iteration order is used for
            deterministic tie-breaks
        rng: Random source (seed it for reproducible papers)
        paper_id: Id for the new paper (random uuid hex if omitted)
        created_at: Creation timestamp (UTC now if omitted)

    Returns:
        Paper with exactly spec.total distinct questions

    Raises:
        InsufficientPoolError: If the pool cannot satisfy the spec; no
            partial paper is produced

    Invariants:
        - Same spec + same pool order + same seed => same question sequence

    Example:
        >>> paper = generate_paper(spec, questions, random.Random(7))
        >>> len(paper.questions) == spec.total
        True
    """
    generator = PaperGenerator(spec, list(candidate_pool), rng or random.Random())
    questions = generator.run()

    points: Dict[str, float] = {}
    for q in questions:
        override = spec.points_for(q.type)
        if override is not None:
            points[q.id] = override

    return assemble_paper(
        spec.title,
        questions,
        points=points,
        paper_id=paper_id,
        created_at=created_at,
        subject_id=spec.subject_id,
    )


def generate_paper_from_repository(
    spec: PaperSpec,
    repository: QuestionRepository,
    rng: Optional[random.Random] = None,
    *,
    paper_id: Optional[str] = None,
    created_at: Optional[datetime] = None,
) -> Paper:
    """
    Query the repository for the spec's subject and generate a paper.

    The repository result order is treated as opaque; it only feeds the
    deterministic tie-break step.
    """
    pool = repository.query(spec.subject_id, excluding=spec.excluded_ids)
    logger.debug(f"Repository returned {len(pool)} candidates for subject {spec.subject_id}")
    return generate_paper(spec, pool, rng, paper_id=paper_id, created_at=created_at)


def assemble_paper(
    title: str,
    questions: Sequence[Question],
    *,
    points: Optional[Mapping[str, float]] = None,
    paper_id: Optional[str] = None,
    created_at: Optional[datetime] = None,
    subject_id: Optional[str] = None,
) -> Paper:
    """
    Snapshot questions into a Paper, keeping their order.

    Args:
        title: Paper title
        questions: Questions in paper order
        points: Optional question id -> points override
        paper_id: Id for the new paper (random uuid hex if omitted)
        created_at: Creation timestamp (UTC now if omitted)
        subject_id: Subject recorded on the paper

    Raises:
        ValueError: If questions is empty or contains duplicates
    """
    points = points or {}
    snapshots = tuple(
        PaperQuestion.from_question(q, points.get(q.id)) for q in questions
    )
    return Paper(
        id=paper_id or uuid.uuid4().hex,
        title=title,
        questions=snapshots,
        created_at=created_at or datetime.now(timezone.utc),
        subject_id=subject_id,
    )


@dataclass
class PaperGenerator:
    """
    Paper generation orchestrator.

    Attributes:
        spec: Selection constraints
        candidate_pool: Candidate questions in stable order
        rng: Random source
    """

    spec: PaperSpec
    candidate_pool: List[Question]
    rng: random.Random

    # Internal state
    _eligible: List[Question] = field(init=False, default_factory=list)
    _partitions: Dict[Difficulty, List[Question]] = field(init=False, default_factory=dict)
    _selected: List[Question] = field(init=False, default_factory=list)
    _selected_ids: Set[str] = field(init=False, default_factory=set)

    def run(self) -> tuple[Question, ...]:
        """
        Execute the generation steps.

        Returns:
            Selected questions, ordered by difficulty then selection order

        Raises:
            InsufficientPoolError: If any step cannot be satisfied
        """
        self._selected = []
        self._selected_ids = set()

        # Step 1: Filter and partition
        self._filter_pool()

        # Step 2: Difficulty distribution
        self._draw_difficulty_targets()

        # Step 3: Question-type minimums
        self._draw_type_targets()

        # Step 4: Type and knowledge-point coverage
        if self.spec.type_counts or self.spec.knowledge_point_targets:
            self._ensure_coverage()

        # Step 5: Uniform fill
        self._fill_remaining()

        ordered = sorted(
            enumerate(self._selected),
            key=lambda item: (item[1].difficulty.rank, item[0]),
        )
        logger.info(
            f"Selected {len(ordered)} questions for subject {self.spec.subject_id} "
            f"from {len(self._eligible)} eligible"
        )
        return tuple(q for _, q in ordered)

    # ─────────────────────────────────────────────────────────────────────────
    # Step 1: Filtering
    # ─────────────────────────────────────────────────────────────────────────

    def _filter_pool(self) -> None:
        """Keep approved, non-excluded questions of the subject, first occurrence wins."""
        seen: Set[str] = set()
        eligible: List[Question] = []
        for q in self.candidate_pool:
            if q.id in seen:
                continue
            seen.add(q.id)
            if q.subject_id != self.spec.subject_id:
                continue
            if not q.is_eligible or q.id in self.spec.excluded_ids:
                continue
            eligible.append(q)

        self._eligible = eligible
        self._partitions = {level: [] for level in DIFFICULTY_ORDER}
        for q in eligible:
            self._partitions[q.difficulty].append(q)

        logger.debug(
            f"Filtered to {len(eligible)}/{len(self.candidate_pool)} candidates "
            f"({', '.join(f'{lvl.value}={len(qs)}' for lvl, qs in self._partitions.items())})"
        )

    # ─────────────────────────────────────────────────────────────────────────
    # Step 2: Difficulty Distribution
    # ─────────────────────────────────────────────────────────────────────────

    def _draw_difficulty_targets(self) -> None:
        """
        Draw each difficulty target from its partition.

        All primary draws happen before any backfill so a backfill never
        takes questions another level's own target needs.
        """
        targets = self.spec.difficulty_targets()
        shortfalls: Dict[Difficulty, int] = {}

        for level, need in targets.items():
            drawn = self._draw_from(level, need)
            if drawn < need:
                shortfalls[level] = need - drawn
                logger.debug(f"Difficulty {level.value}: drew {drawn}/{need}")

        if shortfalls and self.spec.allow_difficulty_backfill:
            for level in list(shortfalls):
                for neighbour in self._neighbours(level):
                    if shortfalls[level] == 0:
                        break
                    drawn = self._draw_from(neighbour, shortfalls[level])
                    if drawn:
                        logger.debug(
                            f"Backfilled {drawn} {level.value} slot(s) from {neighbour.value}"
                        )
                    shortfalls[level] -= drawn
            shortfalls = {level: short for level, short in shortfalls.items() if short > 0}

        if shortfalls:
            raise InsufficientPoolError(
                "Not enough questions for difficulty distribution: "
                + ", ".join(f"{lvl.value} short by {n}" for lvl, n in shortfalls.items()),
                shortfalls={f"difficulty:{lvl.value}": n for lvl, n in shortfalls.items()},
            )

    def _draw_from(self, level: Difficulty, count: int) -> int:
        """Draw up to count unselected questions of a level. Returns how many."""
        available = [q for q in self._partitions[level] if q.id not in self._selected_ids]
        take = min(count, len(available))
        for q in self.rng.sample(available, take):
            self._add(q)
        return take

    @staticmethod
    def _neighbours(level: Difficulty) -> List[Difficulty]:
        """Other levels, nearest first, easier first on ties."""
        others = [lvl for lvl in DIFFICULTY_ORDER if lvl is not level]
        return sorted(others, key=lambda lvl: (level.distance(lvl), lvl.rank))

    # ─────────────────────────────────────────────────────────────────────────
    # Step 3: Question-Type Minimums
    # ─────────────────────────────────────────────────────────────────────────

    def _draw_type_targets(self) -> None:
        """
        Draw each type's missing minimum at random into the free slots.

        Questions already drawn for the difficulty distribution count
        towards their type. What the free slots cannot hold is left to the
        coverage repair, which swaps within a difficulty level.
        """
        for qtype, minimum in self.spec.type_targets().items():
            have = sum(1 for q in self._selected if q.type is qtype)
            need = min(minimum - have, self.spec.total - len(self._selected))
            if need <= 0:
                continue

            available = [
                q for q in self._eligible
                if q.type is qtype and q.id not in self._selected_ids
            ]
            take = min(need, len(available))
            for q in self.rng.sample(available, take):
                self._add(q)
            logger.debug(f"Type {qtype.value}: drew {take}, {have} already selected of {minimum}")

    # ─────────────────────────────────────────────────────────────────────────
    # Step 4: Type and Knowledge-Point Coverage
    # ─────────────────────────────────────────────────────────────────────────

    def _coverage_targets(self) -> Dict[str, int]:
        targets = {
            f"{TYPE_TAG}{qtype.value}": minimum
            for qtype, minimum in self.spec.type_targets().items()
        }
        for kp, minimum in self.spec.knowledge_point_targets.items():
            targets[f"{KNOWLEDGE_POINT_TAG}{kp}"] = minimum
        return targets

    def _ensure_coverage(self) -> None:
        tag_index = {q.id: question_tags(q) for q in self._eligible}
        outcome = repair_coverage(
            self._selected,
            self._eligible,
            self._coverage_targets(),
            self.spec.total - len(self._selected),
            tags=lambda q: tag_index[q.id],
        )
        self._selected = list(outcome.selected)
        self._selected_ids = {q.id for q in self._selected}

        if outcome.operations:
            logger.debug(f"Coverage repair applied {outcome.operations} operation(s)")

        if outcome.satisfied:
            return

        type_short = {t: n for t, n in outcome.deficits.items() if t.startswith(TYPE_TAG)}
        if type_short:
            raise InsufficientPoolError(
                "Not enough questions for type distribution: " + _describe(type_short, TYPE_TAG),
                shortfalls=type_short,
            )

        kp_short = {t: n for t, n in outcome.deficits.items() if t.startswith(KNOWLEDGE_POINT_TAG)}
        missing = _describe(kp_short, KNOWLEDGE_POINT_TAG)
        if self.spec.strict_coverage:
            raise InsufficientPoolError(
                f"Knowledge-point coverage not satisfiable: {missing}",
                shortfalls=kp_short,
            )
        logger.warning(f"Could not meet knowledge-point coverage ({missing}). Using best effort selection.")

    # ─────────────────────────────────────────────────────────────────────────
    # Step 5: Uniform Fill
    # ─────────────────────────────────────────────────────────────────────────

    def _fill_remaining(self) -> None:
        remaining = self.spec.total - len(self._selected)
        if remaining <= 0:
            return

        available = [q for q in self._eligible if q.id not in self._selected_ids]
        if len(available) < remaining:
            short = remaining - len(available)
            raise InsufficientPoolError(
                f"Pool has {len(self._eligible)} eligible questions, "
                f"{self.spec.total} requested (short by {short})",
                shortfalls={"total": short},
            )

        for q in self.rng.sample(available, remaining):
            self._add(q)
        logger.debug(f"Filled {remaining} unconstrained slot(s)")

    # ─────────────────────────────────────────────────────────────────────────
    # Helpers
    # ─────────────────────────────────────────────────────────────────────────

    def _add(self, question: Question) -> None:
        self._selected.append(question)
        self._selected_ids.add(question.id)
