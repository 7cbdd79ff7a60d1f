from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from .card import AnswerDifficulty, Flashcard


class CardPayload(BaseModel):
    """A flashcard as exchanged with the frontend."""

    front: str
    back: str
    hint: str = ""
    tags: list[str] = []

    @classmethod
    def from_card(cls, card: Flashcard) -> "CardPayload":
        return cls(front=card.front, back=card.back, hint=card.hint, tags=list(card.tags))


class PracticeSessionResponse(BaseModel):
    """今日出題するカードの一覧。全カードが Retired の場合は retired=True。"""

    cards: list[CardPayload]
    day: int
    retired: bool = False


class UpdateRequest(BaseModel):
    """レビュー結果の送信。difficulty は 0=Wrong, 1=Hard, 2=Easy。"""

    model_config = ConfigDict(populate_by_name=True)

    card_front: str = Field(alias="cardFront", min_length=1)
    card_back: str = Field(alias="cardBack", min_length=1)
    difficulty: AnswerDifficulty


class UpdateResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str
    previous_bucket: int = Field(alias="previousBucket")
    new_bucket: int = Field(alias="newBucket")


class HintResponse(BaseModel):
    hint: str


class DayAdvanceResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str
    new_day: int = Field(alias="newDay")


class CreateCardRequest(BaseModel):
    front: str = Field(min_length=1)
    back: str = Field(min_length=1)
    hint: str = ""
    tags: list[str] = []


class CreateCardResponse(BaseModel):
    message: str
    card: CardPayload
