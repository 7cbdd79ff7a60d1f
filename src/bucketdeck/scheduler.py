"""
Bucket scheduler (Leitner style, power-of-two spacing).

- バケット b のカードは ``day % 2**b == 0`` の日に出題される（バケット 0 は毎日）。
- Wrong は 0 へ戻し、Hard は据え置き、Easy は 1 つ上げる（上限は Retired）。
- Retired は終端状態で、以降の出題・移動の対象外。

due/update/hint/progress は入力を変更しない純粋関数。副作用を持つのは
レビューイベントの入口である ``practice`` のみで、ストアを書き換えて履歴を追記する。
"""
from __future__ import annotations

import time
from typing import Optional, Sequence

from .errors import NotFoundError
from .logging import logger
from .models.card import RETIRED_BUCKET, AnswerDifficulty, BucketMap, Flashcard
from .models.history import PracticeRecord
from .models.progress import ProgressStats
from .store import BucketStore

RECENT_WINDOW = 10


def is_due(bucket: int, day: int) -> bool:
    if bucket >= RETIRED_BUCKET:
        return False
    return day % (2 ** bucket) == 0


def due(buckets: BucketMap, day: int) -> set[Flashcard]:
    """Return every card whose bucket is scheduled on ``day``.

    day=0 では全ての学習中バケットが対象になり、初回は全カードを復習する。
    """
    if day < 0:
        raise ValueError("day must be non-negative")
    selected: set[Flashcard] = set()
    for bucket, cards in buckets.items():
        if is_due(bucket, day):
            selected.update(cards)
    return selected


def find_bucket(buckets: BucketMap, card: Flashcard) -> Optional[int]:
    for bucket, cards in buckets.items():
        if card in cards:
            return bucket
    return None


def next_bucket(current: int, difficulty: AnswerDifficulty) -> int:
    if current >= RETIRED_BUCKET:
        return current
    if difficulty == AnswerDifficulty.Wrong:
        return 0
    if difficulty == AnswerDifficulty.Hard:
        return current
    return min(current + 1, RETIRED_BUCKET)


def update(buckets: BucketMap, card: Flashcard, difficulty: AnswerDifficulty) -> BucketMap:
    """Move ``card`` according to ``difficulty`` and return a new bucket map.

    入力の dict/set は変更しない。カードがどのバケットにも無い場合は
    呼び出し側のバグなので NotFoundError を送出する。
    """
    current = find_bucket(buckets, card)
    if current is None:
        raise NotFoundError(f"card {card.front!r} is not in any bucket")
    target = next_bucket(current, AnswerDifficulty(difficulty))

    # 保存済みインスタンス（hint/tags を保持している方）をそのまま移す
    stored = next(c for c in buckets[current] if c == card)
    updated: BucketMap = {bucket: set(cards) for bucket, cards in buckets.items()}
    updated[current].discard(stored)
    updated.setdefault(target, set()).add(stored)
    return updated


def hint(card: Flashcard) -> str:
    """Return the card's hint, or a masked version of its back text.

    例: "Cristiano Ronaldo" -> "C________ R______"。
    各単語の先頭 1 文字だけを残し、英数字を ``_`` に置き換える。
    """
    if card.hint and card.hint.strip():
        return card.hint

    masked_words: list[str] = []
    for word in card.back.split(" "):
        chars = []
        for pos, ch in enumerate(word):
            if pos == 0 and len(word) > 1:
                chars.append(ch)
            elif ch.isalnum():
                chars.append("_")
            else:
                chars.append(ch)
        masked_words.append("".join(chars))
    masked = " ".join(masked_words)
    if masked == card.back:
        # 英数字を含まない短い裏面などはそのまま漏れるため全体を伏せる
        masked = "".join(" " if ch == " " else "_" for ch in card.back)
    return masked


def _easy_ratio(records: Sequence[PracticeRecord]) -> float:
    if not records:
        return 0.0
    easy = sum(1 for r in records if r.difficulty == AnswerDifficulty.Easy)
    return easy / len(records)


def progress(buckets: BucketMap, history: Sequence[PracticeRecord], window: int = RECENT_WINDOW) -> ProgressStats:
    """Summarise bucket occupancy and answer accuracy."""
    bucket_counts = {bucket: len(cards) for bucket, cards in sorted(buckets.items())}
    retired = sum(n for bucket, n in bucket_counts.items() if bucket >= RETIRED_BUCKET)
    live = sum(n for bucket, n in bucket_counts.items() if bucket < RETIRED_BUCKET)
    difficulty_counts = {d.name: 0 for d in AnswerDifficulty}
    for record in history:
        difficulty_counts[AnswerDifficulty(record.difficulty).name] += 1
    recent = list(history)[-window:] if window > 0 else []
    return ProgressStats(
        bucket_counts=bucket_counts,
        total_cards=live,
        retired_cards=retired,
        total_reviews=len(history),
        difficulty_counts=difficulty_counts,
        accuracy=_easy_ratio(history),
        recent_accuracy=_easy_ratio(recent),
    )


def is_all_retired(buckets: BucketMap) -> bool:
    """True when no card is left in a live bucket (including an empty deck)."""
    return all(not cards for bucket, cards in buckets.items() if bucket < RETIRED_BUCKET)


def practice(
    store: BucketStore,
    front: str,
    back: str,
    difficulty: AnswerDifficulty,
    *,
    now_ms: Optional[int] = None,
) -> PracticeRecord:
    """Apply one review outcome to the store and append it to the history."""
    card = store.find_card(front, back)
    if card is None:
        raise NotFoundError(f"card {front!r} is not in any bucket")
    previous = store.bucket_of(card)
    store.set_buckets(update(store.buckets, card, difficulty))
    new = store.bucket_of(card)
    record = PracticeRecord(
        card_front=card.front,
        card_back=card.back,
        timestamp=now_ms if now_ms is not None else int(time.time() * 1000),
        difficulty=AnswerDifficulty(difficulty),
        previous_bucket=previous,
        new_bucket=new,
    )
    store.append_history(record)
    logger.info(
        "card_practiced",
        front=card.front,
        difficulty=record.difficulty.name,
        previous_bucket=previous,
        new_bucket=new,
        day=store.day,
    )
    return record
