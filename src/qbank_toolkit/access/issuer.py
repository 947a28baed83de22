"""
Module: access.issuer

Purpose:
    Resolves what a learner presents to start a session (an access code
    or a bare paper id) into an AccessGrant, and issues new codes.

Key Classes:
    - AccessIssuer

Resolution order:
    1. A stored, unexpired access code
    2. A stored paper id, with the default time limit
    3. PaperNotFoundError

Dependencies:
    - secrets (std): Opaque code generation
"""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta
from typing import Optional

from qbank_toolkit.core.errors import PaperNotFoundError
from qbank_toolkit.core.models import AccessGrant, SessionMode
from qbank_toolkit.storage.base import PersistenceStore

logger = logging.getLogger(__name__)

DEFAULT_CODE_BYTES = 9


class AccessIssuer:
    """
    Issues and resolves access codes against a PersistenceStore.

    Example:
        >>> issuer = AccessIssuer(store, default_time_limit=timedelta(minutes=45))
        >>> grant = issuer.issue(paper.id)
        >>> issuer.resolve(grant.code, now).paper_id == paper.id
        True
    """

    def __init__(
        self,
        store: PersistenceStore,
        default_time_limit: timedelta,
        code_bytes: int = DEFAULT_CODE_BYTES,
    ) -> None:
        if default_time_limit <= timedelta(0):
            raise ValueError(f"default_time_limit must be positive: {default_time_limit}")
        if code_bytes < 4:
            raise ValueError(f"code_bytes too small to be unguessable: {code_bytes}")
        self._store = store
        self.default_time_limit = default_time_limit
        self._code_bytes = code_bytes

    def resolve(self, access_ref: str, now: datetime) -> AccessGrant:
        """
        Resolve an access code or paper id.

        A code whose ``expires_at`` has passed is treated as unknown.

        Raises:
            PaperNotFoundError: Neither a valid code nor a stored paper id
        """
        grant = self._store.load_access_grant(access_ref)
        if grant is not None:
            if not grant.is_expired(now):
                return grant
            logger.info(f"Access code expired at {grant.expires_at}")

        if self._store.load_paper(access_ref) is not None:
            return AccessGrant(
                code=None,
                paper_id=access_ref,
                time_limit=self.default_time_limit,
            )

        raise PaperNotFoundError(access_ref)

    def issue(
        self,
        paper_id: str,
        time_limit: Optional[timedelta] = None,
        mode: SessionMode = SessionMode.EXAM,
        expires_at: Optional[datetime] = None,
    ) -> AccessGrant:
        """
        Create and store a new access code for a paper.

        Args:
            paper_id: Stored paper the code opens
            time_limit: Session duration (defaults to the issuer's default;
                ignored for PRACTICE)
            mode: Session mode the code starts
            expires_at: Optional instant after which the code stops working

        Raises:
            PaperNotFoundError: paper_id is not stored
        """
        if self._store.load_paper(paper_id) is None:
            raise PaperNotFoundError(paper_id)

        if mode is SessionMode.PRACTICE:
            time_limit = None
        elif time_limit is None:
            time_limit = self.default_time_limit

        code = secrets.token_urlsafe(self._code_bytes)
        while self._store.load_access_grant(code) is not None:
            code = secrets.token_urlsafe(self._code_bytes)

        grant = AccessGrant(
            code=code,
            paper_id=paper_id,
            time_limit=time_limit,
            mode=mode,
            expires_at=expires_at,
        )
        self._store.save_access_grant(grant)
        logger.info(f"Issued {mode.value} access code for paper {paper_id}")
        return grant
