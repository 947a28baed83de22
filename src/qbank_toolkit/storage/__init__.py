"""
Module: storage

Purpose:
    Collaborator interfaces (QuestionRepository, PersistenceStore) and
    reference implementations: in-memory and JSON-file backed.
"""

from .base import PersistenceStore, QuestionRepository
from .memory import InMemoryQuestionRepository, InMemoryStore
from .json_store import JsonFileStore

__all__ = [
    "PersistenceStore",
    "QuestionRepository",
    "InMemoryQuestionRepository",
    "InMemoryStore",
    "JsonFileStore",
]
