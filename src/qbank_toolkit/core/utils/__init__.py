"""
Utils Package

Serialization and utility functions.
"""

from .serialization import (
    serialize_question,
    deserialize_question,
    to_envelope,
    from_envelope,
    load_questions_jsonl,
    save_questions_jsonl,
)

__all__ = [
    "serialize_question",
    "deserialize_question",
    "to_envelope",
    "from_envelope",
    "load_questions_jsonl",
    "save_questions_jsonl",
]
