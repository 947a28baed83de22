"""
Schema Validation Utilities

Validates JSON payloads before they are turned into models.

Model constructors enforce invariants (raising ValueError). This module
catches structural problems first (missing fields, unknown enum values,
wrong schema version) and reports them as ValidationError with the field
path, so a corrupt file points at the broken field instead of failing
deep inside a constructor.
"""

from __future__ import annotations

from typing import Any, Iterable


# Schema version constants
QUESTION_SCHEMA_VERSION = 1
STORE_SCHEMA_VERSION = 1  # Envelope version for papers/sessions/results on disk

_QUESTION_TYPES = {"SINGLE_CHOICE", "MULTI_CHOICE", "TRUE_FALSE", "SHORT_ANSWER", "ESSAY"}
_DIFFICULTIES = {"EASY", "MEDIUM", "HARD"}
_QUESTION_STATUSES = {"DRAFT", "PENDING_REVIEW", "APPROVED", "REJECTED", "ARCHIVED"}
_SESSION_STATUSES = {"IN_PROGRESS", "SUBMITTED", "EXPIRED"}


class ValidationError(Exception):
    """Raised when data fails schema validation."""

    def __init__(self, message: str, path: str = "", errors: list[str] | None = None):
        super().__init__(message)
        self.path = path
        self.errors = errors or []


def _require(data: dict[str, Any], fields: Iterable[str], path: str = "") -> None:
    if not isinstance(data, dict):
        raise ValidationError(f"Expected an object at {path or 'root'}", path=path)
    missing = [f for f in fields if f not in data]
    if missing:
        raise ValidationError(
            f"Missing required fields: {missing}",
            path=path,
            errors=[f"Missing field: {f}" for f in missing],
        )


def _check_enum(value: Any, allowed: set[str], path: str) -> None:
    if value not in allowed:
        raise ValidationError(
            f"Invalid value {value!r} at {path} (expected one of {sorted(allowed)})",
            path=path,
        )


def validate_question(data: dict[str, Any]) -> None:
    """
    Validate a question-bank record.

    Args:
        data: Question dictionary (one line of questions.jsonl)

    Raises:
        ValidationError: If data is invalid
    """
    _require(data, ["id", "type", "difficulty", "subject_id"])

    version = data.get("schema_version", QUESTION_SCHEMA_VERSION)
    if version != QUESTION_SCHEMA_VERSION:
        raise ValidationError(
            f"Unsupported question schema version: {version} (expected {QUESTION_SCHEMA_VERSION})",
            path="schema_version",
        )

    _check_enum(data["type"], _QUESTION_TYPES, "type")
    _check_enum(data["difficulty"], _DIFFICULTIES, "difficulty")
    if "status" in data:
        _check_enum(data["status"], _QUESTION_STATUSES, "status")

    options = data.get("options", [])
    if not isinstance(options, list):
        raise ValidationError("options must be a list", path="options")
    for i, option in enumerate(options):
        _require(option, ["id"], path=f"options[{i}]")

    if not isinstance(data.get("answer_key", []), list):
        raise ValidationError("answer_key must be a list", path="answer_key")


def validate_paper(data: dict[str, Any]) -> None:
    """Validate a serialized Paper."""
    _require(data, ["id", "questions", "created_at"])
    questions = data["questions"]
    if not isinstance(questions, list) or not questions:
        raise ValidationError("questions must be a non-empty list", path="questions")
    for i, question in enumerate(questions):
        _require(question, ["question_id", "type"], path=f"questions[{i}]")
        _check_enum(question["type"], _QUESTION_TYPES, f"questions[{i}].type")


def validate_session(data: dict[str, Any]) -> None:
    """Validate a serialized ExamSession."""
    _require(data, ["id", "paper", "started_at", "status"])
    _check_enum(data["status"], _SESSION_STATUSES, "status")
    validate_paper(data["paper"])
    if not isinstance(data.get("answers", {}), dict):
        raise ValidationError("answers must be an object", path="answers")


def validate_grade_result(data: dict[str, Any]) -> None:
    """Validate a serialized GradeResult."""
    _require(data, ["session_id", "records", "total_score", "graded_at"])
    for i, record in enumerate(data["records"]):
        _require(record, ["question_id"], path=f"records[{i}]")


def validate_envelope(data: dict[str, Any], kind: str) -> dict[str, Any]:
    """
    Validate an on-disk store envelope and return its payload.

    Args:
        data: {"schema_version": .., "kind": .., "payload": {..}}
        kind: Expected artifact kind ("paper", "session", "result", "access")

    Returns:
        The payload dictionary

    Raises:
        ValidationError: On version/kind mismatch or missing payload
    """
    _require(data, ["schema_version", "kind", "payload"])
    if data["schema_version"] != STORE_SCHEMA_VERSION:
        raise ValidationError(
            f"Unsupported store schema version: {data['schema_version']} "
            f"(expected {STORE_SCHEMA_VERSION})",
            path="schema_version",
        )
    if data["kind"] != kind:
        raise ValidationError(f"Expected {kind!r} record, found {data['kind']!r}", path="kind")
    return data["payload"]
