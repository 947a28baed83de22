"""
Module: cli

Purpose:
    Command line entry point.

    generate  Generate a paper from a questions JSONL file
    issue     Issue an access code for a paper held in a JSON file store

Exit codes:
    0  success
    1  invalid input (bad arguments, unreadable bank, unknown paper)
    2  the question pool cannot satisfy the request

Example:
    python -m qbank_toolkit generate --questions bank.jsonl --subject math \\
        --total 20 --easy 10 --hard 5 --type MULTI_CHOICE=3 --kp algebra=3 --seed 7 --out paper.json
"""

from __future__ import annotations

import argparse
import json
import logging
import random
import sys
from datetime import timedelta
from pathlib import Path
from typing import Dict, List, Optional

from qbank_toolkit import __version__
from qbank_toolkit.access import AccessIssuer
from qbank_toolkit.config import ExamConfig, load_config
from qbank_toolkit.core.errors import InsufficientPoolError, PaperNotFoundError
from qbank_toolkit.core.models import Difficulty, QuestionType, SessionMode
from qbank_toolkit.core.schemas import ValidationError
from qbank_toolkit.core.utils import to_envelope
from qbank_toolkit.generation import PaperSpec, generate_paper_from_repository
from qbank_toolkit.storage import InMemoryQuestionRepository, JsonFileStore

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_INVALID = 1
EXIT_INSUFFICIENT_POOL = 2


def _parse_counts(items: List[str], option: str) -> Dict[str, int]:
    targets: Dict[str, int] = {}
    for item in items:
        key, sep, count = item.partition("=")
        if not sep or not key.strip():
            raise ValueError(f"{option} expects KEY=N, got {item!r}")
        targets[key.strip()] = int(count)
    return targets


def _parse_type_counts(items: List[str]) -> Dict[QuestionType, int]:
    return {
        QuestionType(name.upper()): count
        for name, count in _parse_counts(items, "--type").items()
    }


def _store_root(args: argparse.Namespace, config: ExamConfig) -> Optional[Path]:
    return args.store or config.store_path


def _cmd_generate(args: argparse.Namespace, config: ExamConfig) -> int:
    counts = {
        level: n
        for level, n in (
            (Difficulty.EASY, args.easy),
            (Difficulty.MEDIUM, args.medium),
            (Difficulty.HARD, args.hard),
        )
        if n is not None
    }
    spec = PaperSpec(
        subject_id=args.subject,
        total=args.total,
        difficulty_counts=counts,
        type_counts=_parse_type_counts(args.type),
        knowledge_point_targets=_parse_counts(args.kp, "--kp"),
        title=args.title,
        allow_difficulty_backfill=args.backfill,
        strict_coverage=not args.lenient_coverage,
    )
    repository = InMemoryQuestionRepository.from_jsonl(args.questions)

    try:
        paper = generate_paper_from_repository(spec, repository, random.Random(args.seed))
    except InsufficientPoolError as e:
        logger.error(f"{e} (shortfalls: {e.shortfalls})")
        return EXIT_INSUFFICIENT_POOL

    root = _store_root(args, config)
    if root is not None:
        JsonFileStore(root).save_paper(paper)
        logger.info(f"Stored paper {paper.id} under {root}")

    text = json.dumps(to_envelope("paper", paper), indent=2, ensure_ascii=False)
    if args.out:
        args.out.parent.mkdir(parents=True, exist_ok=True)
        args.out.write_text(text + "\n", encoding="utf-8")
        logger.info(f"Wrote paper {paper.id} to {args.out}")
    else:
        print(text)
    return EXIT_OK


def _cmd_issue(args: argparse.Namespace, config: ExamConfig) -> int:
    root = _store_root(args, config)
    if root is None:
        logger.error("issue needs --store or store_path in the config file")
        return EXIT_INVALID

    issuer = AccessIssuer(
        JsonFileStore(root),
        default_time_limit=config.default_time_limit,
        code_bytes=config.access_code_bytes,
    )
    mode = SessionMode.PRACTICE if args.practice else SessionMode.EXAM
    limit = timedelta(minutes=args.minutes) if args.minutes is not None else None
    grant = issuer.issue(args.paper, time_limit=limit, mode=mode)
    print(grant.code)
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="qbank_toolkit",
        description="Question bank paper generation and exam access tools",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--config", type=Path, help="JSON config file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    gen = sub.add_parser("generate", help="Generate a paper from a question bank")
    gen.add_argument("--questions", type=Path, required=True, help="Questions JSONL file")
    gen.add_argument("--subject", required=True, help="Subject id")
    gen.add_argument("--total", type=int, required=True, help="Number of questions")
    gen.add_argument("--easy", type=int, help="Target number of EASY questions")
    gen.add_argument("--medium", type=int, help="Target number of MEDIUM questions")
    gen.add_argument("--hard", type=int, help="Target number of HARD questions")
    gen.add_argument(
        "--type", action="append", default=[], metavar="TYPE=N",
        help="Minimum questions of a type, e.g. SINGLE_CHOICE=5 (repeatable)",
    )
    gen.add_argument(
        "--kp", action="append", default=[], metavar="ID=N",
        help="Minimum questions covering a knowledge point (repeatable)",
    )
    gen.add_argument("--title", default="Generated Paper", help="Paper title")
    gen.add_argument("--seed", type=int, help="Random seed for reproducible papers")
    gen.add_argument("--backfill", action="store_true", help="Fill short difficulties from neighbours")
    gen.add_argument(
        "--lenient-coverage", action="store_true",
        help="Warn instead of failing when knowledge-point targets cannot be met",
    )
    gen.add_argument("--out", type=Path, help="Write the paper here instead of stdout")
    gen.add_argument("--store", type=Path, help="Also save the paper into this JSON store")
    gen.set_defaults(handler=_cmd_generate)

    issue = sub.add_parser("issue", help="Issue an access code for a stored paper")
    issue.add_argument("--paper", required=True, help="Paper id")
    issue.add_argument("--minutes", type=float, help="Time limit in minutes")
    issue.add_argument("--practice", action="store_true", help="Untimed practice access")
    issue.add_argument("--store", type=Path, help="JSON store directory")
    issue.set_defaults(handler=_cmd_issue)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    config = load_config(args.config)
    try:
        return args.handler(args, config)
    except (ValidationError, PaperNotFoundError, ValueError, OSError) as e:
        logger.error(str(e))
        return EXIT_INVALID


if __name__ == "__main__":
    sys.exit(main())
