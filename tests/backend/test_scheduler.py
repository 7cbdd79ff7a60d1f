import itertools

import pytest

from bucketdeck.errors import NotFoundError
from bucketdeck.models.card import RETIRED_BUCKET, AnswerDifficulty, Flashcard
from bucketdeck.models.history import PracticeRecord
from bucketdeck.scheduler import (
    due,
    find_bucket,
    hint,
    is_all_retired,
    next_bucket,
    progress,
    update,
)

A = Flashcard("QA", "AA", "", ("t",))
B = Flashcard("QB", "AB")
C = Flashcard("QC", "AC", "hint C")


def _buckets():
    return {0: {A, B}, 1: {C}}


def _record(difficulty: AnswerDifficulty, ts: int = 0) -> PracticeRecord:
    return PracticeRecord(
        card_front="Q",
        card_back="A",
        timestamp=ts,
        difficulty=difficulty,
        previous_bucket=0,
        new_bucket=0,
    )


# --- due ---
def test_due_day_two_includes_bucket_one():
    assert due(_buckets(), 2) == {A, B, C}


def test_due_day_three_excludes_bucket_one():
    assert due(_buckets(), 3) == {A, B}


def test_due_day_zero_reviews_every_live_bucket():
    buckets = {0: {A}, 1: {B}, 3: {C}}
    assert due(buckets, 0) == {A, B, C}


def test_due_never_includes_retired_cards():
    buckets = {0: {A}, RETIRED_BUCKET: {B, C}}
    for day in range(0, 40):
        assert due(buckets, day) == {A}


@pytest.mark.parametrize("day", range(0, 33))
def test_due_membership_follows_power_of_two(day):
    cards = {b: {Flashcard(f"Q{b}", f"A{b}")} for b in range(RETIRED_BUCKET)}
    result = due(cards, day)
    union = set().union(*cards.values())
    assert result <= union
    for bucket, members in cards.items():
        expected = day % (2 ** bucket) == 0
        assert (members <= result) is expected


def test_due_empty_map_is_empty():
    assert due({}, 5) == set()


def test_due_rejects_negative_day():
    with pytest.raises(ValueError):
        due(_buckets(), -1)


# --- update ---
def test_update_wrong_moves_card_to_bucket_zero():
    updated = update(_buckets(), C, AnswerDifficulty.Wrong)
    assert find_bucket(updated, C) == 0
    assert updated[1] == set()
    assert updated[0] == {A, B, C}


@pytest.mark.parametrize("start", range(RETIRED_BUCKET))
def test_update_wrong_always_resets(start):
    card = Flashcard("Q", "A")
    updated = update({start: {card}}, card, AnswerDifficulty.Wrong)
    assert find_bucket(updated, card) == 0


@pytest.mark.parametrize("start", range(RETIRED_BUCKET))
def test_update_hard_keeps_bucket(start):
    card = Flashcard("Q", "A")
    updated = update({start: {card}}, card, AnswerDifficulty.Hard)
    assert find_bucket(updated, card) == start


def test_update_easy_climbs_until_retired_then_stays():
    card = Flashcard("Q", "A")
    buckets = {0: {card}}
    seen = [0]
    for _ in range(RETIRED_BUCKET + 3):
        buckets = update(buckets, card, AnswerDifficulty.Easy)
        seen.append(find_bucket(buckets, card))
    climbing = seen[: RETIRED_BUCKET + 1]
    assert climbing == list(range(RETIRED_BUCKET + 1))
    assert all(b == RETIRED_BUCKET for b in seen[RETIRED_BUCKET:])


@pytest.mark.parametrize("difficulty", list(AnswerDifficulty))
def test_update_retired_is_terminal(difficulty):
    card = Flashcard("Q", "A")
    updated = update({RETIRED_BUCKET: {card}}, card, difficulty)
    assert find_bucket(updated, card) == RETIRED_BUCKET


@pytest.mark.parametrize("bucket", [RETIRED_BUCKET + 1, 7, 12])
@pytest.mark.parametrize("difficulty", list(AnswerDifficulty))
def test_update_keeps_cards_beyond_retired_in_place(bucket, difficulty):
    card = Flashcard("Q", "A")
    updated = update({bucket: {card}}, card, difficulty)
    assert find_bucket(updated, card) == bucket
    assert next_bucket(bucket, difficulty) == bucket


def test_update_does_not_mutate_input():
    original = _buckets()
    snapshot = {b: set(cards) for b, cards in original.items()}
    updated = update(original, A, AnswerDifficulty.Easy)
    assert original == snapshot
    assert updated is not original
    for bucket in original:
        assert updated[bucket] is not original[bucket]


def test_update_creates_missing_target_bucket():
    updated = update(_buckets(), C, AnswerDifficulty.Easy)
    assert updated[2] == {C}


def test_update_matches_card_by_value_and_keeps_stored_fields():
    lookalike = Flashcard("QC", "AC")
    updated = update(_buckets(), lookalike, AnswerDifficulty.Easy)
    (moved,) = updated[2]
    assert moved.hint == "hint C"


def test_update_unknown_card_raises_not_found():
    with pytest.raises(NotFoundError):
        update(_buckets(), Flashcard("nope", "nope"), AnswerDifficulty.Easy)


def test_update_keeps_every_card_in_exactly_one_bucket():
    buckets = _buckets()
    for card, difficulty in itertools.product([A, B, C], list(AnswerDifficulty)):
        buckets = update(buckets, card, difficulty)
        all_cards = [c for cards in buckets.values() for c in cards]
        assert len(all_cards) == len(set(all_cards)) == 3


def test_next_bucket_table():
    assert next_bucket(2, AnswerDifficulty.Wrong) == 0
    assert next_bucket(2, AnswerDifficulty.Hard) == 2
    assert next_bucket(2, AnswerDifficulty.Easy) == 3
    assert next_bucket(RETIRED_BUCKET - 1, AnswerDifficulty.Easy) == RETIRED_BUCKET
    assert next_bucket(RETIRED_BUCKET, AnswerDifficulty.Wrong) == RETIRED_BUCKET


# --- hint ---
def test_hint_returns_card_hint_when_present():
    assert hint(C) == "hint C"


def test_hint_masks_back_when_hint_missing():
    card = Flashcard("Who?", "Cristiano Ronaldo")
    assert hint(card) == "C________ R______"


def test_hint_fallback_is_deterministic_and_never_full_back():
    for back in ["A", "ab", "FC Barcelona", "a!", "?", "x y z", "3-pointers"]:
        card = Flashcard("Q", back)
        first = hint(card)
        assert first == hint(card)
        assert first != back
        assert len(first) == len(back)


def test_hint_blank_hint_uses_fallback():
    card = Flashcard("Q", "Stephen Curry", "   ")
    assert hint(card) == "S______ C____"


# --- progress ---
def test_progress_empty_has_zero_accuracy():
    stats = progress({}, [])
    assert stats.accuracy == 0
    assert stats.total_cards == 0
    assert stats.retired_cards == 0
    assert stats.recent_accuracy == 0


def test_progress_counts_buckets_and_accuracy():
    buckets = {0: {A}, 1: {B}, RETIRED_BUCKET: {C}, 2: set()}
    history = [
        _record(AnswerDifficulty.Easy, 1),
        _record(AnswerDifficulty.Wrong, 2),
        _record(AnswerDifficulty.Easy, 3),
        _record(AnswerDifficulty.Hard, 4),
    ]
    stats = progress(buckets, history)
    assert stats.bucket_counts == {0: 1, 1: 1, 2: 0, RETIRED_BUCKET: 1}
    assert stats.total_cards == 2
    assert stats.retired_cards == 1
    assert stats.total_reviews == 4
    assert stats.accuracy == pytest.approx(0.5)
    assert stats.difficulty_counts == {"Wrong": 1, "Hard": 1, "Easy": 2}


def test_progress_recent_accuracy_uses_latest_records():
    history = [_record(AnswerDifficulty.Wrong, i) for i in range(5)]
    history += [_record(AnswerDifficulty.Easy, 10 + i) for i in range(2)]
    stats = progress({}, history, window=2)
    assert stats.recent_accuracy == pytest.approx(1.0)
    assert stats.accuracy == pytest.approx(2 / 7)


# --- helpers ---
def test_is_all_retired():
    assert is_all_retired({})
    assert is_all_retired({0: set(), RETIRED_BUCKET: {A}})
    assert not is_all_retired({0: {A}})
