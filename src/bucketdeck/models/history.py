from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .card import AnswerDifficulty


class PracticeRecord(BaseModel):
    """One review outcome, appended to the history in chronological order.

    保存形式（JSON）は camelCase キー。Python 側では snake_case で扱う。
    保存ファイルから読み込む値は型変換しない（"123" や true は拒否する）。
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    card_front: str = Field(alias="cardFront", strict=True)
    card_back: str = Field(alias="cardBack", strict=True)
    timestamp: int = Field(description="epoch milliseconds", strict=True)
    difficulty: AnswerDifficulty
    previous_bucket: int = Field(alias="previousBucket", ge=0, strict=True)
    new_bucket: int = Field(alias="newBucket", ge=0, strict=True)

    @field_validator("difficulty", mode="before")
    @classmethod
    def _reject_non_integer_difficulty(cls, value: object) -> object:
        # int のみ受け付ける（bool・文字列は不可）
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"difficulty must be an integer 0, 1 or 2, got {value!r}")
        return value

    def to_document(self) -> dict[str, object]:
        return self.model_dump(mode="json", by_alias=True)
