"""
Module: session.status

Purpose:
    Pure functions deriving a session's effective status and remaining
    time from its timestamps. Expiry is never driven by timers: a session
    is logically expired as soon as ``now >= deadline``, whether or not
    the EXPIRED status has been persisted yet.

Key Functions:
    - is_expired(): Deadline reached at ``now``
    - effective_status(): Stored status adjusted for lazy expiry
    - remaining_time(): Time left before the deadline (never negative)

Used By:
    - session.engine: Guards on every mutation
    - controller: Views returned to callers
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional

from qbank_toolkit.core.models import ExamSession, SessionStatus


def is_expired(session: ExamSession, now: datetime) -> bool:
    """True once ``now`` has reached the deadline (the boundary counts as expired)."""
    deadline = session.deadline
    return deadline is not None and now >= deadline


def effective_status(session: ExamSession, now: datetime) -> SessionStatus:
    """
    Status a caller should observe at ``now``.

    An IN_PROGRESS session past its deadline reads as EXPIRED. Terminal
    statuses are returned as stored.

    Example:
        >>> effective_status(session, session.deadline)
        <SessionStatus.EXPIRED: 'EXPIRED'>
    """
    if session.status is SessionStatus.IN_PROGRESS and is_expired(session, now):
        return SessionStatus.EXPIRED
    return session.status


def remaining_time(session: ExamSession, now: datetime) -> Optional[timedelta]:
    """
    Time left to answer.

    Returns:
        None for untimed sessions, timedelta(0) for expired or terminal
        sessions, otherwise ``deadline - now``.
    """
    deadline = session.deadline
    if deadline is None:
        return None
    if session.status.is_terminal:
        return timedelta(0)
    return max(deadline - now, timedelta(0))
