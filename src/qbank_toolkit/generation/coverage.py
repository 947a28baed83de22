"""
Module: generation.coverage

Purpose:
    Coverage repair for a drawn question set. Targets are minimum counts
    per tag: knowledge points by default, or any tags the caller derives
    (the generator also tags question types). Applies one
    greedy operation at a time (add into a free slot, or swap within a
    difficulty level) until every coverage target is met or no operation
    helps. This is a heuristic: it never backtracks and is not guaranteed
    to find a covering set when one exists.

Key Functions:
    - coverage_deficits(): Missing count per target tag
    - repair_coverage(): Greedy add/swap loop

Dependencies:
    - qbank_toolkit.core.models: Question
    - collections (std): Counter

Used By:
    - generation.generator: Step 3 of PaperGenerator
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from typing import AbstractSet, Callable, Dict, List, Mapping, Optional, Sequence

from qbank_toolkit.core.models import Question

logger = logging.getLogger(__name__)

# Targeted tags of a question; knowledge points unless the caller says otherwise
TagFn = Callable[[Question], AbstractSet[str]]


def knowledge_point_tags(question: Question) -> AbstractSet[str]:
    return question.knowledge_point_ids


@dataclass(frozen=True)
class CoverageOutcome:
    """
    Result of a coverage repair pass.

    Attributes:
        selected: Selection after repair (swaps keep their slot position)
        free_slots: Free slots still unused
        deficits: Tag -> still missing count (empty when satisfied)
        operations: Number of adds + swaps applied
    """

    selected: tuple[Question, ...]
    free_slots: int
    deficits: Dict[str, int]
    operations: int

    @property
    def satisfied(self) -> bool:
        return not self.deficits


@dataclass(frozen=True)
class _Move:
    gain: int
    incoming: Question
    outgoing_index: Optional[int] = None  # None = add into a free slot


def _counts(selected: Sequence[Question], targets: Mapping[str, int], tags: TagFn) -> Counter:
    return Counter(
        tag for q in selected for tag in tags(q) if tag in targets
    )


def coverage_deficits(
    selected: Sequence[Question],
    targets: Mapping[str, int],
    tags: TagFn = knowledge_point_tags,
) -> Dict[str, int]:
    """
    Missing question count per target tag.

    Args:
        selected: Current selection
        targets: Tag -> minimum count
        tags: Tags of a question (knowledge points by default)

    Returns:
        Only the tags below target, with how many are missing
    """
    counts = _counts(selected, targets, tags)
    return {
        tag: minimum - counts[tag]
        for tag, minimum in targets.items()
        if counts[tag] < minimum
    }


def _swap_gain(
    incoming: Question,
    outgoing: Question,
    counts: Counter,
    targets: Mapping[str, int],
    tags: TagFn,
) -> int:
    """Reduction of total deficit if outgoing is replaced by incoming."""
    incoming_tags = tags(incoming)
    outgoing_tags = tags(outgoing)
    gain = 0
    for tag in (incoming_tags | outgoing_tags) & targets.keys():
        before = counts[tag]
        after = before - (tag in outgoing_tags) + (tag in incoming_tags)
        gain += max(0, targets[tag] - before) - max(0, targets[tag] - after)
    return gain


def repair_coverage(
    selected: Sequence[Question],
    pool: Sequence[Question],
    targets: Mapping[str, int],
    free_slots: int,
    *,
    tags: TagFn = knowledge_point_tags,
) -> CoverageOutcome:
    """
    Greedily repair coverage of the target tags.

    Each iteration applies the single move that removes the most missing
    coverage:
    - while free slots remain, add the unselected question that covers the
      most deficient tags;
    - otherwise swap a selected question for an unselected question of the
      same difficulty, scored by net deficit reduction.

    Ties go to the earliest candidate in pool order, then the earliest
    selected question, so the outcome is deterministic. Every applied move
    strictly lowers the total deficit, which bounds the loop.

    Args:
        selected: Questions drawn so far
        pool: Eligible candidates in stable iteration order
        targets: Tag -> minimum count
        free_slots: Slots not yet claimed by the difficulty distribution
        tags: Tags of a question (knowledge points by default)

    Returns:
        CoverageOutcome with the repaired selection and any remaining deficits
    """
    current: List[Question] = list(selected)
    operations = 0

    if not targets:
        return CoverageOutcome(tuple(current), free_slots, {}, 0)

    while True:
        deficits = coverage_deficits(current, targets, tags)
        if not deficits:
            break

        selected_ids = {q.id for q in current}
        candidates = [
            q for q in pool
            if q.id not in selected_ids and tags(q) & deficits.keys()
        ]
        if not candidates:
            logger.debug(f"No candidates cover missing tags: {sorted(deficits)}")
            break

        move = _best_add(candidates, deficits, tags) if free_slots > 0 else None
        if move is None:
            move = _best_swap(candidates, current, targets, tags)
        if move is None:
            logger.debug(f"No improving swap for missing tags: {sorted(deficits)}")
            break

        if move.outgoing_index is None:
            current.append(move.incoming)
            free_slots -= 1
            logger.debug(f"Coverage add {move.incoming.id} (gain {move.gain})")
        else:
            outgoing = current[move.outgoing_index]
            current[move.outgoing_index] = move.incoming
            logger.debug(f"Coverage swap {outgoing.id} -> {move.incoming.id} (gain {move.gain})")
        operations += 1

    return CoverageOutcome(
        selected=tuple(current),
        free_slots=free_slots,
        deficits=coverage_deficits(current, targets, tags),
        operations=operations,
    )


def _best_add(
    candidates: Sequence[Question],
    deficits: Mapping[str, int],
    tags: TagFn,
) -> Optional[_Move]:
    best: Optional[_Move] = None
    for candidate in candidates:
        gain = len(tags(candidate) & deficits.keys())
        if gain > 0 and (best is None or gain > best.gain):
            best = _Move(gain=gain, incoming=candidate)
    return best


def _best_swap(
    candidates: Sequence[Question],
    current: Sequence[Question],
    targets: Mapping[str, int],
    tags: TagFn,
) -> Optional[_Move]:
    counts = _counts(current, targets, tags)
    best: Optional[_Move] = None
    for candidate in candidates:
        for index, outgoing in enumerate(current):
            if outgoing.difficulty is not candidate.difficulty:
                continue
            gain = _swap_gain(candidate, outgoing, counts, targets, tags)
            if gain > 0 and (best is None or gain > best.gain):
                best = _Move(gain=gain, incoming=candidate, outgoing_index=index)
    return best
