import pytest

from bucketdeck.errors import ConflictError, NotFoundError, ValidationError
from bucketdeck.models.card import RETIRED_BUCKET, AnswerDifficulty, Flashcard
from bucketdeck.scheduler import practice
from bucketdeck.store import BucketStore


def _store() -> BucketStore:
    return BucketStore(
        buckets={0: {Flashcard("QA", "AA"), Flashcard("QB", "AB")}, 1: {Flashcard("QC", "AC", "hc")}},
        day=2,
    )


def test_flashcard_identity_is_front_and_back():
    a = Flashcard("Q", "A", "one", ("x",))
    b = Flashcard("Q", "A", "two", ["y"])
    assert a == b
    assert hash(a) == hash(b)
    assert len({a, b}) == 1
    assert b.tags == ("y",)


@pytest.mark.parametrize("front, back", [("", "A"), ("Q", ""), ("  ", "A")])
def test_flashcard_rejects_empty_sides(front, back):
    with pytest.raises(ValueError):
        Flashcard(front, back)


def test_find_card_uses_value_index():
    store = _store()
    card = store.find_card("QC", "AC")
    assert card is not None
    assert card.hint == "hc"
    assert store.bucket_of(Flashcard("QC", "AC")) == 1
    assert store.find_card("QC", "other") is None


def test_add_card_goes_to_bucket_zero_and_rejects_duplicates():
    store = BucketStore()
    store.add_card(Flashcard("Q", "A"))
    assert store.buckets == {0: {Flashcard("Q", "A")}}
    with pytest.raises(ConflictError):
        store.add_card(Flashcard("Q", "A", "different hint"))
    assert len(store) == 1


def test_set_buckets_rejects_card_in_two_buckets():
    store = BucketStore()
    with pytest.raises(ValidationError):
        store.set_buckets({0: {Flashcard("Q", "A")}, 2: {Flashcard("Q", "A")}})


def test_advance_day_is_monotonic():
    store = BucketStore()
    assert store.day == 0
    assert store.advance_day() == 1
    assert store.advance_day() == 2
    assert store.day == 2


def test_negative_day_rejected():
    with pytest.raises(ValueError):
        BucketStore(day=-1)


def test_history_is_returned_as_copy():
    store = _store()
    practice(store, "QA", "AA", AnswerDifficulty.Easy, now_ms=1)
    history = store.history
    history.clear()
    assert len(store.history) == 1


def test_practice_moves_card_and_records_history():
    store = _store()
    record = practice(store, "QC", "AC", AnswerDifficulty.Wrong, now_ms=1_700_000_000_000)
    assert store.bucket_of(Flashcard("QC", "AC")) == 0
    assert record.previous_bucket == 1
    assert record.new_bucket == 0
    assert record.timestamp == 1_700_000_000_000
    assert record.difficulty is AnswerDifficulty.Wrong
    assert store.history == [record]


def test_practice_history_keeps_chronological_order():
    store = _store()
    first = practice(store, "QA", "AA", AnswerDifficulty.Easy, now_ms=1)
    second = practice(store, "QA", "AA", AnswerDifficulty.Easy, now_ms=2)
    third = practice(store, "QB", "AB", AnswerDifficulty.Hard, now_ms=3)
    assert store.history == [first, second, third]
    assert [r.new_bucket for r in store.history] == [1, 2, 0]


def test_practice_retired_card_records_retired_bucket():
    card = Flashcard("Q", "A")
    store = BucketStore(buckets={RETIRED_BUCKET - 1: {card}})
    record = practice(store, "Q", "A", AnswerDifficulty.Easy, now_ms=5)
    assert record.new_bucket == RETIRED_BUCKET
    again = practice(store, "Q", "A", AnswerDifficulty.Easy, now_ms=6)
    assert again.previous_bucket == again.new_bucket == RETIRED_BUCKET


def test_practice_card_above_retired_bucket_records_no_transition():
    card = Flashcard("Q", "A")
    store = BucketStore(buckets={7: {card}})
    record = practice(store, "Q", "A", AnswerDifficulty.Wrong, now_ms=5)
    assert record.previous_bucket == record.new_bucket == 7
    assert store.bucket_of(card) == 7


def test_practice_unknown_card_raises_and_leaves_store_untouched():
    store = _store()
    before = {b: set(cards) for b, cards in store.buckets.items()}
    with pytest.raises(NotFoundError):
        practice(store, "missing", "card", AnswerDifficulty.Easy)
    assert store.buckets == before
    assert store.history == []
