from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum


# バケット 0..3 が学習中、4 が卒業（Retired）。Retired は以降出題されない。
RETIRED_BUCKET = 4


class AnswerDifficulty(IntEnum):
    """Outcome of a single review. Values are the persisted wire format."""

    Wrong = 0
    Hard = 1
    Easy = 2


@dataclass(frozen=True)
class Flashcard:
    """A flashcard identified by its (front, back) pair.

    hint/tags は比較・ハッシュ対象外。同じ表裏のカードはインスタンスが
    異なっても同一カードとして扱われ、set/dict のキーとしてそのまま使える。
    """

    front: str
    back: str
    hint: str = field(default="", compare=False)
    tags: tuple[str, ...] = field(default=(), compare=False)

    def __post_init__(self) -> None:
        if not isinstance(self.front, str) or not self.front.strip():
            raise ValueError("front must be a non-empty string")
        if not isinstance(self.back, str) or not self.back.strip():
            raise ValueError("back must be a non-empty string")
        if self.hint is None:
            object.__setattr__(self, "hint", "")
        # list で渡されてもハッシュ可能な tuple に揃える
        object.__setattr__(self, "tags", tuple(self.tags or ()))

    @property
    def key(self) -> tuple[str, str]:
        return (self.front, self.back)


BucketMap = dict[int, set[Flashcard]]
