"""
Serialization Utilities

Provides to/from JSON utilities for the core models.

- All models have `to_dict()` and `from_dict()` methods
- `serialize_*` / `deserialize_*` add schema validation on the way in
- Stored artifacts are wrapped in a versioned envelope
- Calculated values (deadline, percentage, max_score of a paper) are never
  stored, they are always derived on load
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from ..models.access import AccessGrant
from ..models.grading import GradeResult
from ..models.papers import Paper
from ..models.questions import Question
from ..models.sessions import ExamSession
from ..schemas.validator import (
    STORE_SCHEMA_VERSION,
    ValidationError,
    validate_envelope,
    validate_grade_result,
    validate_paper,
    validate_question,
    validate_session,
)


# ─────────────────────────────────────────────────────────────────────────────
# Question Serialization
# ─────────────────────────────────────────────────────────────────────────────

def serialize_question(question: Question) -> dict[str, Any]:
    """Serialize a Question to a dictionary."""
    return question.to_dict()


def deserialize_question(data: dict[str, Any], *, validate: bool = True) -> Question:
    """
    Deserialize a Question from a dictionary.

    Args:
        data: Dictionary from JSON
        validate: Whether to validate against schema first

    Returns:
        Question instance

    Raises:
        ValidationError: If validate=True and data is invalid
        ValueError: If data violates a model invariant
    """
    if validate:
        validate_question(data)
    return Question.from_dict(data)


# ─────────────────────────────────────────────────────────────────────────────
# Stored Artifacts
# ─────────────────────────────────────────────────────────────────────────────

_VALIDATORS = {
    "paper": validate_paper,
    "session": validate_session,
    "result": validate_grade_result,
    "access": None,
}

_MODELS = {
    "paper": Paper,
    "session": ExamSession,
    "result": GradeResult,
    "access": AccessGrant,
}


def to_envelope(kind: str, model: Any) -> dict[str, Any]:
    """
    Wrap a model in a versioned store envelope.

    Args:
        kind: "paper", "session", "result" or "access"
        model: Instance with a to_dict() method
    """
    if kind not in _MODELS:
        raise ValueError(f"Unknown artifact kind: {kind!r}")
    return {
        "schema_version": STORE_SCHEMA_VERSION,
        "kind": kind,
        "payload": model.to_dict(),
    }


def from_envelope(kind: str, data: dict[str, Any]) -> Any:
    """
    Unwrap and deserialize a stored artifact.

    Raises:
        ValidationError: If the envelope or payload is invalid
    """
    payload = validate_envelope(data, kind)
    validator = _VALIDATORS[kind]
    if validator is not None:
        validator(payload)
    try:
        return _MODELS[kind].from_dict(payload)
    except (KeyError, TypeError, ValueError) as e:
        raise ValidationError(f"Invalid {kind} payload: {e}", path=kind, errors=[str(e)]) from e


# ─────────────────────────────────────────────────────────────────────────────
# JSONL Utilities
# ─────────────────────────────────────────────────────────────────────────────

def load_questions_jsonl(path: Path, *, validate: bool = True) -> list[Question]:
    """
    Load questions from a JSONL file.

    Args:
        path: Path to questions.jsonl file
        validate: Whether to validate each question

    Returns:
        List of Question instances, in file order

    Raises:
        FileNotFoundError: If file doesn't exist
        ValidationError: If any question is invalid
    """
    if not path.exists():
        raise FileNotFoundError(f"Questions file not found: {path}")

    questions = []
    with open(path, "r", encoding="utf-8") as f:
        for line_no, line in enumerate(f, 1):
            line = line.strip()
            if not line:
                continue

            try:
                data = json.loads(line)
                questions.append(deserialize_question(data, validate=validate))
            except (json.JSONDecodeError, ValidationError, ValueError, KeyError) as e:
                raise ValidationError(
                    f"Error parsing line {line_no}: {e}",
                    path=str(path),
                    errors=[str(e)]
                ) from e

    return questions


def save_questions_jsonl(questions: list[Question], path: Path) -> None:
    """
    Save questions to a JSONL file.

    Args:
        questions: List of Question instances to save
        path: Output path for questions.jsonl
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "w", encoding="utf-8") as f:
        for question in questions:
            data = serialize_question(question)
            f.write(json.dumps(data, ensure_ascii=False))
            f.write("\n")
