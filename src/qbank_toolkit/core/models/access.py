"""
Module: access

Purpose:
    Provides AccessGrant - the resolved parameters a session needs to
    start: which paper, how long, and in which mode.

Used By:
    - access.issuer: Creates and resolves grants
    - storage: Persists grants keyed by code
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Optional

from .sessions import SessionMode


@dataclass(frozen=True)
class AccessGrant:
    """
    Start parameters behind an access code.

    Attributes:
        code: Opaque access code (None when resolved from a bare paper id)
        paper_id: Paper the session is started from
        time_limit: Session duration, None for untimed practice
        mode: Session mode
        expires_at: After this instant the code no longer resolves
    """

    code: Optional[str]
    paper_id: str
    time_limit: Optional[timedelta]
    mode: SessionMode = SessionMode.EXAM
    expires_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if self.time_limit is not None and self.time_limit <= timedelta(0):
            raise ValueError(f"time_limit must be positive: {self.time_limit}")
        if self.mode is SessionMode.EXAM and self.time_limit is None:
            raise ValueError("EXAM access requires a time limit")

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and now >= self.expires_at

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "paper_id": self.paper_id,
            "time_limit_seconds": (
                self.time_limit.total_seconds() if self.time_limit is not None else None
            ),
            "mode": self.mode.value,
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AccessGrant:
        seconds = data.get("time_limit_seconds")
        expires_at = data.get("expires_at")
        return cls(
            code=data.get("code"),
            paper_id=str(data["paper_id"]),
            time_limit=timedelta(seconds=seconds) if seconds is not None else None,
            mode=SessionMode(data.get("mode", SessionMode.EXAM.value)),
            expires_at=datetime.fromisoformat(expires_at) if expires_at else None,
        )
