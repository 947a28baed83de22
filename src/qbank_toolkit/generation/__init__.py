"""
Module: generation

Purpose:
    Paper generation. Selects a constrained, duplicate-free question set
    from a candidate pool under difficulty, question-type and
    knowledge-point targets.

Key Functions:
    - generate_paper(): Main entry point over a candidate pool
    - generate_paper_from_repository(): Same, querying a QuestionRepository
    - assemble_paper(): Build a Paper from explicit questions
    - repair_coverage(): Greedy coverage repair (knowledge points, types)

Key Classes:
    - PaperSpec: Selection constraints
    - PaperGenerator: Selection orchestrator

Used By:
    - controller: ExamController
    - cli: generate command
"""

from .config import PaperSpec
from .generator import (
    PaperGenerator,
    assemble_paper,
    generate_paper,
    generate_paper_from_repository,
)
from .coverage import CoverageOutcome, coverage_deficits, repair_coverage

__all__ = [
    "PaperSpec",
    "PaperGenerator",
    "assemble_paper",
    "generate_paper",
    "generate_paper_from_repository",
    "CoverageOutcome",
    "coverage_deficits",
    "repair_coverage",
]
