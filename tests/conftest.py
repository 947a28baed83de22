import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Iterable, Optional

import pytest

# Add src to sys.path so we can import qbank_toolkit
SRC_PATH = Path(__file__).resolve().parent.parent / "src"
if SRC_PATH.as_posix() not in sys.path:
    sys.path.insert(0, SRC_PATH.as_posix())

from qbank_toolkit.core.models import (  # noqa: E402
    Difficulty,
    Paper,
    Question,
    QuestionOption,
    QuestionStatus,
    QuestionType,
)
from qbank_toolkit.generation import assemble_paper  # noqa: E402
from qbank_toolkit.storage import InMemoryStore  # noqa: E402

START = datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc)


class FixedClock:
    """Clock that only moves when told to."""

    def __init__(self, now: datetime = START) -> None:
        self._now = now

    def now(self) -> datetime:
        return self._now

    def advance(self, **kwargs) -> datetime:
        self._now += timedelta(**kwargs)
        return self._now

    def set(self, value: datetime) -> None:
        self._now = value


def build_question(
    qid: str,
    *,
    qtype: QuestionType = QuestionType.SINGLE_CHOICE,
    difficulty: Difficulty = Difficulty.EASY,
    subject: str = "math",
    kps: Iterable[str] = (),
    key: Optional[Iterable[str]] = None,
    status: QuestionStatus = QuestionStatus.APPROVED,
    points: float = 1.0,
) -> Question:
    """Helper to create test questions with sensible defaults per type."""
    if qtype in (QuestionType.SHORT_ANSWER, QuestionType.ESSAY):
        options: tuple = ()
        default_key: tuple = ()
    elif qtype is QuestionType.TRUE_FALSE:
        options = (QuestionOption("T", "True"), QuestionOption("F", "False"))
        default_key = ("T",)
    else:
        options = tuple(QuestionOption(o, f"Option {o}") for o in "ABCD")
        default_key = ("A", "C") if qtype is QuestionType.MULTI_CHOICE else ("A",)

    return Question(
        id=qid,
        type=qtype,
        stem=f"Stem of {qid}",
        options=options,
        answer_key=frozenset(key if key is not None else default_key),
        difficulty=difficulty,
        subject_id=subject,
        knowledge_point_ids=frozenset(kps),
        status=status,
        points=points,
    )


def build_paper(questions, paper_id: str = "paper-1", title: str = "Test Paper") -> Paper:
    return assemble_paper(title, questions, paper_id=paper_id, created_at=START, subject_id="math")


# Common test fixtures
@pytest.fixture
def start_time() -> datetime:
    return START


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def make_question():
    return build_question


@pytest.fixture
def make_paper():
    return build_paper


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def mixed_paper(make_question, make_paper) -> Paper:
    """Paper with one question of every type."""
    return make_paper([
        make_question("single", key=["B"]),
        make_question("multi", qtype=QuestionType.MULTI_CHOICE, key=["A", "C"]),
        make_question("tf", qtype=QuestionType.TRUE_FALSE, key=["F"]),
        make_question("short", qtype=QuestionType.SHORT_ANSWER),
        make_question("essay", qtype=QuestionType.ESSAY, points=5.0),
    ])
