"""
Module: storage.json_store

Purpose:
    PersistenceStore backed by one JSON file per artifact. Safe for
    several processes sharing a directory: writes hold a portalocker
    lock and are published atomically with os.replace, and session saves
    check the stored version while holding the same lock.

Layout:
    <root>/papers/<paper_id>.json
    <root>/sessions/<session_id>.json
    <root>/results/<session_id>.json
    <root>/access/<code>.json

Each file holds a versioned envelope (see core.utils.serialization).
Keys must be file-safe: saves reject other keys, loads report them as
missing.

Key Classes:
    - JsonFileStore
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Optional

from qbank_toolkit.core.errors import ConcurrentModificationError
from qbank_toolkit.core.models import AccessGrant, ExamSession, GradeResult, Paper
from qbank_toolkit.core.utils.serialization import from_envelope, to_envelope

from .base import matches_session_filter
from .file_locking import locked_read_modify_write_json, locked_write_json, read_json

logger = logging.getLogger(__name__)

_SAFE_KEY = re.compile(r"^[A-Za-z0-9_.-]+$")

_DIRS = {
    "paper": "papers",
    "session": "sessions",
    "result": "results",
    "access": "access",
}


class JsonFileStore:
    """
    Directory-backed PersistenceStore.

    Example:
        >>> store = JsonFileStore(Path("var/exams"))
        >>> store.save_paper(paper)
        >>> store.load_paper(paper.id) == paper
        True
    """

    def __init__(self, root: Path) -> None:
        self.root = Path(root)
        for name in _DIRS.values():
            (self.root / name).mkdir(parents=True, exist_ok=True)

    def _path(self, kind: str, key: str) -> Path:
        if not key or not _SAFE_KEY.match(key) or key.startswith("."):
            raise ValueError(f"Unsafe {kind} key for file store: {key!r}")
        return self.root / _DIRS[kind] / f"{key}.json"

    def _load(self, kind: str, key: str) -> Optional[Any]:
        try:
            path = self._path(kind, key)
        except ValueError:
            logger.debug(f"Unsafe {kind} key treated as missing: {key!r}")
            return None
        data = read_json(path)
        if data is None:
            return None
        return from_envelope(kind, data)

    def _save(self, kind: str, key: str, model: Any) -> None:
        locked_write_json(self._path(kind, key), to_envelope(kind, model))

    # Papers

    def save_paper(self, paper: Paper) -> None:
        self._save("paper", paper.id, paper)

    def load_paper(self, paper_id: str) -> Optional[Paper]:
        return self._load("paper", paper_id)

    # Sessions

    def save_session(self, session: ExamSession, expected_version: Optional[int] = None) -> None:
        path = self._path("session", session.id)

        def check_and_replace(existing: Optional[Dict[str, Any]]) -> Dict[str, Any]:
            actual = None
            if existing is not None:
                actual = from_envelope("session", existing).version
            if actual != expected_version:
                raise ConcurrentModificationError(session.id, expected_version, actual)
            return to_envelope("session", session)

        locked_read_modify_write_json(path, check_and_replace)

    def load_session(self, session_id: str) -> Optional[ExamSession]:
        return self._load("session", session_id)

    def list_sessions(
        self,
        paper_id: Optional[str] = None,
        learner_id: Optional[str] = None,
    ) -> List[ExamSession]:
        sessions = []
        for path in sorted((self.root / _DIRS["session"]).glob("*.json")):
            session = self._load("session", path.stem)
            if session is not None and matches_session_filter(session, paper_id, learner_id):
                sessions.append(session)
        return sessions

    # Results

    def save_grade_result(self, result: GradeResult) -> None:
        self._save("result", result.session_id, result)

    def load_grade_result(self, session_id: str) -> Optional[GradeResult]:
        return self._load("result", session_id)

    # Access grants

    def save_access_grant(self, grant: AccessGrant) -> None:
        if not grant.code:
            raise ValueError("Only grants with a code can be stored")
        self._save("access", grant.code, grant)

    def load_access_grant(self, code: str) -> Optional[AccessGrant]:
        return self._load("access", code)
