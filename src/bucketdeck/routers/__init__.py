"""Router package exports."""

from . import flashcards, health

__all__ = [
    "flashcards",
    "health",
]
