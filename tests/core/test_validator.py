"""
Unit Tests for Schema Validation

Tests for the validator module.
"""

import pytest

from qbank_toolkit.core.schemas.validator import (
    STORE_SCHEMA_VERSION,
    ValidationError,
    validate_envelope,
    validate_paper,
    validate_question,
    validate_session,
)


class TestValidateQuestion:
    """Tests for validate_question function."""

    @pytest.fixture
    def valid_question_data(self) -> dict:
        """Create valid question data for testing."""
        return {
            "id": "math-0001",
            "type": "MULTI_CHOICE",
            "stem": "Which are prime?",
            "options": [{"id": "A", "text": "2"}, {"id": "B", "text": "4"}, {"id": "C", "text": "5"}],
            "answer_key": ["A", "C"],
            "difficulty": "MEDIUM",
            "subject_id": "math",
            "knowledge_point_ids": ["primes"],
            "status": "APPROVED",
        }

    def test_validate_question_when_valid_then_passes(self, valid_question_data):
        validate_question(valid_question_data)

    def test_validate_question_when_missing_id_then_raises(self, valid_question_data):
        del valid_question_data["id"]

        with pytest.raises(ValidationError) as exc_info:
            validate_question(valid_question_data)

        assert "Missing field: id" in exc_info.value.errors

    def test_validate_question_when_unknown_type_then_raises(self, valid_question_data):
        valid_question_data["type"] = "MATCHING"

        with pytest.raises(ValidationError) as exc_info:
            validate_question(valid_question_data)

        assert exc_info.value.path == "type"

    def test_validate_question_when_wrong_schema_version_then_raises(self, valid_question_data):
        valid_question_data["schema_version"] = 99

        with pytest.raises(ValidationError, match="schema version"):
            validate_question(valid_question_data)

    def test_validate_question_when_option_without_id_then_raises(self, valid_question_data):
        valid_question_data["options"].append({"text": "orphan"})

        with pytest.raises(ValidationError) as exc_info:
            validate_question(valid_question_data)

        assert exc_info.value.path == "options[3]"


class TestValidateStoredArtifacts:
    """Tests for paper/session/envelope validation."""

    def test_validate_paper_when_no_questions_then_raises(self):
        with pytest.raises(ValidationError, match="non-empty"):
            validate_paper({"id": "p", "questions": [], "created_at": "2026-01-01T00:00:00+00:00"})

    def test_validate_session_when_unknown_status_then_raises(self, mixed_paper):
        data = {
            "id": "s1",
            "paper": mixed_paper.to_dict(),
            "started_at": "2026-01-05T09:00:00+00:00",
            "status": "PAUSED",
        }

        with pytest.raises(ValidationError) as exc_info:
            validate_session(data)

        assert exc_info.value.path == "status"

    def test_validate_envelope_when_kind_mismatch_then_raises(self):
        envelope = {"schema_version": STORE_SCHEMA_VERSION, "kind": "paper", "payload": {}}

        with pytest.raises(ValidationError, match="Expected 'session'"):
            validate_envelope(envelope, "session")

    def test_validate_envelope_when_valid_then_returns_payload(self):
        envelope = {"schema_version": STORE_SCHEMA_VERSION, "kind": "result", "payload": {"x": 1}}

        assert validate_envelope(envelope, "result") == {"x": 1}
