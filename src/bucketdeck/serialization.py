"""
Conversion between the live bucket state and a JSON-safe document.

保存形式::

    {
      "buckets": {"0": [{"front": ..., "back": ..., "hint"?: ..., "tags": [...]}], ...},
      "history": [{"cardFront": ..., "cardBack": ..., "timestamp": ..., "difficulty": 0|1|2,
                   "previousBucket": ..., "newBucket": ...}],
      "day": 0
    }

deserialize は不正な形を見つけた時点で ValidationError を送出し、
値を黙って補正することはしない（hint/tags の欠落のみ既定値で補う）。
"""
from __future__ import annotations

import math
import re
from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from .errors import ValidationError
from .models.card import BucketMap, Flashcard
from .models.history import PracticeRecord

# 先頭ゼロや符号を許さない 10 進表記（"0", "1", "12" ...）
_CANONICAL_BUCKET_KEY = re.compile(r"0|[1-9][0-9]*")


def _card_to_document(card: Flashcard) -> dict[str, Any]:
    doc: dict[str, Any] = {"front": card.front, "back": card.back}
    if card.hint:
        doc["hint"] = card.hint
    doc["tags"] = list(card.tags)
    return doc


def serialize(buckets: BucketMap, history: Sequence[PracticeRecord], day: int) -> dict[str, Any]:
    """Convert live state into a plain dict ready for ``json.dumps``.

    バケットは番号順、カードは (front, back) 順に並べるため、同じ状態からは
    常に同じ文書が得られる。
    """
    serialized_buckets: dict[str, list[dict[str, Any]]] = {}
    for bucket in sorted(buckets):
        cards = sorted(buckets[bucket], key=lambda c: (c.front, c.back))
        serialized_buckets[str(bucket)] = [_card_to_document(card) for card in cards]
    return {
        "buckets": serialized_buckets,
        "history": [record.to_document() for record in history],
        "day": day,
    }


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _parse_tags(raw: Any) -> tuple[str, ...]:
    if not isinstance(raw, list):
        return ()
    return tuple(tag for tag in raw if isinstance(tag, str))


def _parse_card(bucket_key: str, raw: Any) -> Flashcard:
    if not isinstance(raw, Mapping):
        raise ValidationError(f"Invalid card data in bucket {bucket_key}: expected an object, got {raw!r}")
    front = raw.get("front")
    back = raw.get("back")
    if not isinstance(front, str) or not isinstance(back, str):
        raise ValidationError(
            f"Invalid card data in bucket {bucket_key}: 'front' and 'back' must be strings ({dict(raw)!r})"
        )
    hint = raw.get("hint")
    try:
        return Flashcard(
            front=front,
            back=back,
            hint=hint if isinstance(hint, str) else "",
            tags=_parse_tags(raw.get("tags")),
        )
    except ValueError as exc:
        raise ValidationError(f"Invalid card data in bucket {bucket_key}: {exc}") from exc


def _parse_history(raw_history: list[Any]) -> list[PracticeRecord]:
    records: list[PracticeRecord] = []
    for position, raw in enumerate(raw_history):
        if not isinstance(raw, Mapping):
            raise ValidationError(f"Invalid history record at index {position}: expected an object")
        try:
            records.append(PracticeRecord.model_validate(raw))
        except PydanticValidationError as exc:
            raise ValidationError(f"Invalid history record at index {position}: {exc.errors()!r}") from exc
    return records


def deserialize(data: Any) -> tuple[BucketMap, list[PracticeRecord], int]:
    """Rebuild (buckets, history, day) from a document produced by ``serialize``."""
    if not isinstance(data, Mapping):
        raise ValidationError("Invalid serialized state format: top-level data must be an object")

    raw_buckets = data.get("buckets")
    if not isinstance(raw_buckets, Mapping):
        raise ValidationError("Invalid serialized state format: buckets must be an object")

    raw_history = data.get("history")
    if not isinstance(raw_history, list):
        raise ValidationError("Invalid serialized state format: history must be an array")

    raw_day = data.get("day")
    if not _is_number(raw_day):
        raise ValidationError("Invalid serialized state format: day must be a number")
    # int は任意精度なので有限性の確認は float のみに行う
    if isinstance(raw_day, float) and not math.isfinite(raw_day):
        raise ValidationError(f"Invalid serialized state format: day must be a non-negative integer, got {raw_day!r}")
    if raw_day < 0 or raw_day != int(raw_day):
        raise ValidationError(f"Invalid serialized state format: day must be a non-negative integer, got {raw_day!r}")

    buckets: BucketMap = {}
    owner: dict[tuple[str, str], int] = {}
    for bucket_key, raw_cards in raw_buckets.items():
        if not isinstance(bucket_key, str) or not _CANONICAL_BUCKET_KEY.fullmatch(bucket_key):
            raise ValidationError(
                f"Invalid format for bucket key: {bucket_key!r} is not a canonical non-negative integer string"
            )
        if not isinstance(raw_cards, list):
            raise ValidationError(f"Invalid format for bucket key: {bucket_key} value must be an array")

        bucket = int(bucket_key)
        cards: set[Flashcard] = set()
        for raw in raw_cards:
            card = _parse_card(bucket_key, raw)
            previous = owner.get(card.key)
            if previous is not None and previous != bucket:
                raise ValidationError(
                    f"Invalid card data in bucket {bucket_key}: card {card.front!r} already stored in bucket {previous}"
                )
            owner[card.key] = bucket
            cards.add(card)
        buckets[bucket] = cards

    return buckets, _parse_history(raw_history), int(raw_day)
