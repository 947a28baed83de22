"""
Schemas Package

Structural validation for serialized questions and stored artifacts.
"""

from .validator import (
    ValidationError,
    validate_question,
    validate_paper,
    validate_session,
    validate_grade_result,
    validate_envelope,
    QUESTION_SCHEMA_VERSION,
    STORE_SCHEMA_VERSION,
)

__all__ = [
    "ValidationError",
    "validate_question",
    "validate_paper",
    "validate_session",
    "validate_grade_result",
    "validate_envelope",
    "QUESTION_SCHEMA_VERSION",
    "STORE_SCHEMA_VERSION",
]
