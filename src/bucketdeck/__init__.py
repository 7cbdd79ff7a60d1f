"""Bucket-based spaced repetition scheduler with durable JSON state."""

from .errors import (
    BucketDeckError,
    ConflictError,
    CorruptionError,
    NotFoundError,
    PersistenceError,
    PersistenceIOError,
    ValidationError,
)
from .models import RETIRED_BUCKET, AnswerDifficulty, BucketMap, Flashcard, PracticeRecord, ProgressStats
from .persistence import ABSENT
from .store import BucketStore

__all__ = [
    "ABSENT",
    "RETIRED_BUCKET",
    "AnswerDifficulty",
    "BucketDeckError",
    "BucketMap",
    "BucketStore",
    "ConflictError",
    "CorruptionError",
    "Flashcard",
    "NotFoundError",
    "PersistenceError",
    "PersistenceIOError",
    "PracticeRecord",
    "ProgressStats",
    "ValidationError",
]
