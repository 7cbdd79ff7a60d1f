from __future__ import annotations

from typing import Iterable, Iterator, Optional

from .errors import ConflictError, ValidationError
from .logging import logger
from .models.card import BucketMap, Flashcard
from .models.history import PracticeRecord


class BucketStore:
    """In-memory learning state: buckets, review history and day counter.

    Responsibilities:
    - bucket index -> set of cards（同一バケット内で重複なし）
    - (front, back) -> bucket index の値ベース索引をバケット内容と常に一致させる
    - 追記専用の履歴と単調増加の日付カウンタ

    ホストプロセスが 1 つ所有し、スケジューラ関数へ明示的に渡す。
    """

    def __init__(
        self,
        buckets: Optional[BucketMap] = None,
        history: Optional[Iterable[PracticeRecord]] = None,
        day: int = 0,
    ) -> None:
        if day < 0:
            raise ValueError("day must be non-negative")
        self._buckets: BucketMap = {}
        self._index: dict[tuple[str, str], int] = {}
        self._history: list[PracticeRecord] = list(history or [])
        self._day = int(day)
        self.set_buckets(buckets or {})

    # --- buckets ---
    @property
    def buckets(self) -> BucketMap:
        return self._buckets

    def set_buckets(self, buckets: BucketMap) -> None:
        """Install a new bucket map and rebuild the value index.

        同じ (front, back) が複数バケットに存在する場合は ValidationError。
        """
        index: dict[tuple[str, str], int] = {}
        installed: BucketMap = {}
        for bucket, cards in buckets.items():
            if bucket < 0:
                raise ValidationError(f"bucket index must be non-negative: {bucket}")
            for card in cards:
                if card.key in index:
                    raise ValidationError(
                        f"card {card.front!r}/{card.back!r} appears in buckets {index[card.key]} and {bucket}"
                    )
                index[card.key] = bucket
            installed[bucket] = set(cards)
        self._buckets = installed
        self._index = index

    def find_card(self, front: str, back: str) -> Optional[Flashcard]:
        bucket = self._index.get((front, back))
        if bucket is None:
            return None
        for card in self._buckets[bucket]:
            if card.key == (front, back):
                return card
        return None

    def bucket_of(self, card: Flashcard) -> Optional[int]:
        return self._index.get(card.key)

    def contains(self, front: str, back: str) -> bool:
        return (front, back) in self._index

    def add_card(self, card: Flashcard) -> None:
        """Add a new card to bucket 0, creating the bucket if needed."""
        if card.key in self._index:
            raise ConflictError(f"a flashcard with front {card.front!r} and this back already exists")
        self._buckets.setdefault(0, set()).add(card)
        self._index[card.key] = 0
        logger.info("card_added", front=card.front, bucket=0)

    def cards(self) -> Iterator[Flashcard]:
        for bucket in sorted(self._buckets):
            yield from self._buckets[bucket]

    def __len__(self) -> int:
        return len(self._index)

    # --- history ---
    @property
    def history(self) -> list[PracticeRecord]:
        # 呼び出し側が履歴を書き換えないようコピーを返す
        return list(self._history)

    def append_history(self, record: PracticeRecord) -> None:
        self._history.append(record)

    # --- day counter ---
    @property
    def day(self) -> int:
        return self._day

    def advance_day(self) -> int:
        self._day += 1
        logger.info("day_advanced", day=self._day)
        return self._day
