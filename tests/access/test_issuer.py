"""
Unit tests for access code issuing and resolution.
"""

from datetime import timedelta

import pytest

from qbank_toolkit.access import AccessIssuer
from qbank_toolkit.core.errors import PaperNotFoundError
from qbank_toolkit.core.models import SessionMode

DEFAULT_LIMIT = timedelta(minutes=45)


@pytest.fixture
def issuer(store, mixed_paper):
    store.save_paper(mixed_paper)
    return AccessIssuer(store, default_time_limit=DEFAULT_LIMIT)


class TestResolve:
    """Tests for AccessIssuer.resolve."""

    def test_resolve_when_paper_id_then_default_limit(self, issuer, mixed_paper, start_time):
        grant = issuer.resolve(mixed_paper.id, start_time)

        assert grant.paper_id == mixed_paper.id
        assert grant.code is None
        assert grant.time_limit == DEFAULT_LIMIT
        assert grant.mode is SessionMode.EXAM

    def test_resolve_when_issued_code_then_grant_returned(self, issuer, mixed_paper, start_time):
        issued = issuer.issue(mixed_paper.id, timedelta(minutes=20))

        grant = issuer.resolve(issued.code, start_time)

        assert grant == issued
        assert grant.time_limit == timedelta(minutes=20)

    def test_resolve_when_code_expired_then_not_found(self, issuer, mixed_paper, start_time):
        issued = issuer.issue(mixed_paper.id, expires_at=start_time)

        with pytest.raises(PaperNotFoundError):
            issuer.resolve(issued.code, start_time)

    def test_resolve_when_unknown_then_not_found(self, issuer, start_time):
        with pytest.raises(PaperNotFoundError) as exc_info:
            issuer.resolve("no-such-thing", start_time)

        assert exc_info.value.ref == "no-such-thing"


class TestIssue:
    """Tests for AccessIssuer.issue."""

    def test_issue_when_no_limit_then_default_used(self, issuer, mixed_paper):
        grant = issuer.issue(mixed_paper.id)

        assert grant.time_limit == DEFAULT_LIMIT
        assert grant.code

    def test_issue_when_practice_then_untimed(self, issuer, mixed_paper):
        grant = issuer.issue(mixed_paper.id, timedelta(minutes=5), mode=SessionMode.PRACTICE)

        assert grant.time_limit is None
        assert grant.mode is SessionMode.PRACTICE

    def test_issue_when_called_twice_then_distinct_codes(self, issuer, mixed_paper):
        assert issuer.issue(mixed_paper.id).code != issuer.issue(mixed_paper.id).code

    def test_issue_when_paper_unknown_then_raises(self, issuer):
        with pytest.raises(PaperNotFoundError):
            issuer.issue("missing")

    def test_issuer_when_code_bytes_too_small_then_raises(self, store):
        with pytest.raises(ValueError, match="code_bytes"):
            AccessIssuer(store, DEFAULT_LIMIT, code_bytes=2)
