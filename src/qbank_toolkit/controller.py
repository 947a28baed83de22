"""
Module: controller

Purpose:
    Protocol-agnostic facade exposing the exam core operations. Wires the
    paper generator, access issuer, session engine and grading engine to
    the injected repository, store, clock and random source.

    generate_paper → start_session → submit_answer* → submit_session

Key Classes:
    - ExamController

Dependencies:
    - generation: Paper generation
    - access: Access code resolution
    - session: Session state machine
    - grading: Grading and manual amendments

Used By:
    - Host applications (HTTP handlers, workers, CLI)
"""

from __future__ import annotations

import logging
import random
from datetime import datetime, timedelta
from typing import Any, List, Mapping, Optional, Sequence

from qbank_toolkit.access import AccessIssuer
from qbank_toolkit.config import ExamConfig
from qbank_toolkit.core.clock import Clock, SystemClock
from qbank_toolkit.core.errors import InvalidStateError
from qbank_toolkit.core.models import AccessGrant, GradeResult, Paper, SessionMode
from qbank_toolkit.generation import PaperSpec, assemble_paper, generate_paper_from_repository
from qbank_toolkit.grading import GradingEngine, ManualGrade
from qbank_toolkit.grading import apply_manual_grades as amend_result
from qbank_toolkit.session import ExamSessionEngine, SessionView
from qbank_toolkit.storage.base import PersistenceStore, QuestionRepository

logger = logging.getLogger(__name__)


class ExamController:
    """
    Entry point for host applications.

    Every operation reads the time from the injected clock once, so a
    request observes a single consistent ``now``.

    Example:
        >>> controller = ExamController(repository, InMemoryStore())
        >>> paper = controller.generate_paper(PaperSpec(subject_id="math", total=10))
        >>> session = controller.start_session(paper.id, learner_id="u-1")
        >>> controller.submit_answer(session.session_id, paper.question_ids[0], "A")
        >>> controller.submit_session(session.session_id).percentage
        10
    """

    def __init__(
        self,
        repository: QuestionRepository,
        store: PersistenceStore,
        *,
        clock: Optional[Clock] = None,
        rng: Optional[random.Random] = None,
        config: Optional[ExamConfig] = None,
        grading_engine: Optional[GradingEngine] = None,
    ) -> None:
        self.config = config or ExamConfig()
        self._repository = repository
        self._store = store
        self._clock = clock or SystemClock()
        self._rng = rng or random.Random()
        self._issuer = AccessIssuer(
            store,
            default_time_limit=self.config.default_time_limit,
            code_bytes=self.config.access_code_bytes,
        )
        self._sessions = ExamSessionEngine(
            store,
            grading_engine,
            grade_on_expiry=self.config.grade_on_expiry,
        )

    # ─────────────────────────────────────────────────────────────────────────
    # Papers
    # ─────────────────────────────────────────────────────────────────────────

    def generate_paper(self, spec: PaperSpec, *, seed: Optional[int] = None) -> Paper:
        """
        Generate and store a paper.

        Args:
            spec: Selection constraints
            seed: Seed for this generation only (the controller's random
                source is used otherwise)

        Raises:
            InsufficientPoolError: Nothing is stored in that case
        """
        rng = random.Random(seed) if seed is not None else self._rng
        paper = generate_paper_from_repository(
            spec,
            self._repository,
            rng,
            created_at=self._clock.now(),
        )
        self._store.save_paper(paper)
        logger.info(f"Generated paper {paper.id} ({paper.question_count} questions)")
        return paper

    def create_manual_paper(
        self,
        title: str,
        question_ids: Sequence[str],
        *,
        points: Optional[Mapping[str, float]] = None,
        subject_id: Optional[str] = None,
    ) -> Paper:
        """
        Build and store a paper from explicitly chosen questions.

        Args:
            title: Paper title
            question_ids: Question ids in paper order
            points: Optional question id -> weight override
            subject_id: Subject recorded on the paper

        Raises:
            ValueError: Unknown or duplicate question ids, or no questions
        """
        questions = []
        missing = []
        for qid in question_ids:
            question = self._repository.get(qid)
            if question is None:
                missing.append(qid)
            else:
                questions.append(question)
        if missing:
            raise ValueError(f"Unknown question ids: {missing}")

        paper = assemble_paper(
            title,
            questions,
            points=points,
            created_at=self._clock.now(),
            subject_id=subject_id,
        )
        self._store.save_paper(paper)
        logger.info(f"Created manual paper {paper.id} ({paper.question_count} questions)")
        return paper

    def issue_access_code(
        self,
        paper_id: str,
        time_limit: Optional[timedelta] = None,
        mode: SessionMode = SessionMode.EXAM,
        expires_at: Optional[datetime] = None,
    ) -> AccessGrant:
        return self._issuer.issue(paper_id, time_limit, mode, expires_at)

    # ─────────────────────────────────────────────────────────────────────────
    # Sessions
    # ─────────────────────────────────────────────────────────────────────────

    def start_session(
        self,
        access_ref: str,
        time_limit: Optional[timedelta] = None,
        learner_id: Optional[str] = None,
    ) -> SessionView:
        """
        Start a session from an access code or a paper id.

        An access code fixes the time limit and mode; ``time_limit`` only
        overrides the default for a bare paper id.

        Raises:
            PaperNotFoundError: access_ref resolves to nothing
        """
        now = self._clock.now()
        grant = self._issuer.resolve(access_ref, now)
        limit = grant.time_limit
        if grant.code is None and time_limit is not None:
            limit = time_limit

        session = self._sessions.start(
            grant.paper_id,
            limit,
            now,
            learner_id=learner_id,
            mode=grant.mode,
            access_code=grant.code,
        )
        return SessionView.build(session, now)

    def submit_answer(self, session_id: str, question_id: str, value: Any) -> Optional[timedelta]:
        """Record an answer; returns the remaining time (None when untimed)."""
        return self._sessions.answer(session_id, question_id, value, self._clock.now())

    def flag_question(self, session_id: str, question_id: str, flagged: bool = True) -> SessionView:
        now = self._clock.now()
        session = self._sessions.flag(session_id, question_id, flagged, now)
        return SessionView.build(session, now)

    def submit_session(self, session_id: str) -> GradeResult:
        return self._sessions.submit(session_id, self._clock.now())

    def get_session(self, session_id: str) -> SessionView:
        return self._sessions.view(session_id, self._clock.now())

    def list_sessions(
        self,
        paper_id: Optional[str] = None,
        learner_id: Optional[str] = None,
    ) -> List[SessionView]:
        """Sessions matching the filters, newest first."""
        now = self._clock.now()
        sessions = self._store.list_sessions(paper_id=paper_id, learner_id=learner_id)
        sessions.sort(key=lambda s: (s.started_at, s.id), reverse=True)
        return [SessionView.build(s, now) for s in sessions]

    # ─────────────────────────────────────────────────────────────────────────
    # Results
    # ─────────────────────────────────────────────────────────────────────────

    def get_result(self, session_id: str) -> Optional[GradeResult]:
        """
        Stored result of a session, None while it has not been graded.

        An overdue session has its expiry applied first, so with
        grade_on_expiry its result is available without an explicit submit.
        """
        self._sessions.settle(session_id, self._clock.now())
        return self._store.load_grade_result(session_id)

    def apply_manual_grades(self, session_id: str, grades: Sequence[ManualGrade]) -> GradeResult:
        """
        Apply reviewer grades and store the new result revision.

        Raises:
            SessionNotFoundError: Unknown session
            InvalidStateError: Session not graded yet
            QuestionNotInPaperError: Grade for a question outside the paper
        """
        session = self._sessions.get(session_id)
        result = self._store.load_grade_result(session_id)
        if result is None:
            raise InvalidStateError(session_id, session.status, "grade")

        amended = amend_result(result, grades, self._clock.now(), paper_id=session.paper.id)
        self._store.save_grade_result(amended)
        return amended
