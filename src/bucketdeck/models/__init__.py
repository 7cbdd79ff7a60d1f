from .card import RETIRED_BUCKET, AnswerDifficulty, BucketMap, Flashcard
from .history import PracticeRecord
from .progress import ProgressStats

__all__ = [
    "RETIRED_BUCKET",
    "AnswerDifficulty",
    "BucketMap",
    "Flashcard",
    "PracticeRecord",
    "ProgressStats",
]
