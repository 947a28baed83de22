"""
Unit tests for derived session status and remaining time.
"""

from datetime import timedelta

import pytest

from qbank_toolkit.core.models import ExamSession, SessionMode, SessionStatus
from qbank_toolkit.session import effective_status, is_expired, remaining_time


@pytest.fixture
def timed_session(mixed_paper, start_time):
    return ExamSession("s1", mixed_paper, start_time, timedelta(minutes=30))


class TestEffectiveStatus:
    """Tests for effective_status / is_expired."""

    def test_status_when_before_deadline_then_in_progress(self, timed_session, start_time):
        now = start_time + timedelta(minutes=29, seconds=59)

        assert effective_status(timed_session, now) is SessionStatus.IN_PROGRESS
        assert not is_expired(timed_session, now)

    def test_status_when_exactly_at_deadline_then_expired(self, timed_session):
        assert effective_status(timed_session, timed_session.deadline) is SessionStatus.EXPIRED
        assert is_expired(timed_session, timed_session.deadline)

    def test_status_when_submitted_then_stays_submitted(self, timed_session, start_time):
        submitted = timed_session.with_status(SessionStatus.SUBMITTED, start_time)

        assert effective_status(submitted, start_time + timedelta(days=1)) is SessionStatus.SUBMITTED

    def test_status_when_untimed_then_never_expires(self, mixed_paper, start_time):
        session = ExamSession("s1", mixed_paper, start_time, None, mode=SessionMode.PRACTICE)

        assert effective_status(session, start_time + timedelta(days=365)) is SessionStatus.IN_PROGRESS


class TestRemainingTime:
    """Tests for remaining_time."""

    def test_remaining_when_in_progress_then_deadline_minus_now(self, timed_session, start_time):
        assert remaining_time(timed_session, start_time + timedelta(minutes=10)) == timedelta(minutes=20)

    def test_remaining_when_past_deadline_then_zero(self, timed_session, start_time):
        assert remaining_time(timed_session, start_time + timedelta(hours=1)) == timedelta(0)

    def test_remaining_when_untimed_then_none(self, mixed_paper, start_time):
        session = ExamSession("s1", mixed_paper, start_time, None, mode=SessionMode.PRACTICE)

        assert remaining_time(session, start_time) is None
