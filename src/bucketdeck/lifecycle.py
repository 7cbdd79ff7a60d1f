from __future__ import annotations

from typing import Optional

import anyio

from .config import Settings, settings as default_settings
from .errors import PersistenceError
from .logging import logger
from .models.card import Flashcard
from .persistence import ABSENT, StateFileGateway
from .serialization import deserialize, serialize
from .store import BucketStore


DEFAULT_DECK: tuple[Flashcard, ...] = (
    Flashcard(
        "Who has scored the most goals in football history?",
        "Cristiano Ronaldo",
        "Messi is better, by the way",
        ("sport", "football"),
    ),
    Flashcard(
        "Who holds the record for most 3-pointers in NBA history?",
        "Stephen Curry",
        "Golden Boy 👑",
        ("sport", "basketball"),
    ),
    Flashcard(
        "Who won the historic sextuple in 2009?",
        "FC Barcelona",
        "Only club to win 6 trophies in a year 🏆🏆🏆🏆🏆🏆",
        ("sport", "football", "history"),
    ),
    Flashcard(
        "Which footballer is known for the 'Siiuu' celebration?",
        "Cristiano Ronaldo",
        "You can hear it in your head",
        ("sport", "football"),
    ),
)


def seed_store(cards: tuple[Flashcard, ...] = DEFAULT_DECK) -> BucketStore:
    """Build a fresh store with ``cards`` in bucket 0 at day 0."""
    return BucketStore(buckets={0: set(cards)}, history=[], day=0)


class StateManager:
    """Own the live BucketStore and move it to and from the state file.

    - initialize: 起動時に 1 回だけ読み込む。ファイルが無ければ既定デッキを投入して即保存。
    - save: 現在の状態を直列化してゲートウェイ経由で保存。
    - shutdown: 重複呼び出しを無視し、進行中の保存を待ってから最終保存を行う。
    """

    def __init__(self, gateway: StateFileGateway, settings: Optional[Settings] = None) -> None:
        self.gateway = gateway
        self.settings = settings or default_settings
        self._store: Optional[BucketStore] = None
        self._shutting_down = False
        self.shutdown_failed = False

    @property
    def store(self) -> BucketStore:
        if self._store is None:
            raise RuntimeError("state is not initialized; call initialize() first")
        return self._store

    @property
    def initialized(self) -> bool:
        return self._store is not None

    @property
    def shutting_down(self) -> bool:
        return self._shutting_down

    async def initialize(self) -> BucketStore:
        document = await self.gateway.load()
        if document is ABSENT:
            cards = DEFAULT_DECK if self.settings.seed_default_deck else ()
            self._store = seed_store(cards)
            logger.info("state_seeded", cards=len(cards), path=str(self.gateway.path))
            # 初期状態をすぐに書き出し、次回起動時に同じデッキから再開できるようにする
            await self.save()
            return self._store

        buckets, history, day = deserialize(document)
        self._store = BucketStore(buckets=buckets, history=history, day=day)
        logger.info(
            "state_loaded",
            path=str(self.gateway.path),
            cards=len(self._store),
            history=len(history),
            day=day,
        )
        return self._store

    def snapshot(self) -> dict:
        store = self.store
        return serialize(store.buckets, store.history, store.day)

    async def save(self) -> None:
        await self.gateway.save(self.snapshot())

    async def shutdown(self) -> bool:
        """Run the shutdown save once. Returns False when already in progress.

        保存に失敗した場合はログを残して例外を再送出する（呼び出し側で非ゼロ終了）。
        """
        if self._shutting_down:
            logger.info("shutdown_already_in_progress")
            return False
        self._shutting_down = True
        if self._store is None:
            logger.warning("shutdown_without_state")
            return True

        logger.info("shutdown_saving_state", day=self._store.day, buckets=len(self._store.buckets))
        grace = self.settings.shutdown_grace_ms / 1000
        if self.gateway.saving:
            # 進行中の保存は完了まで待つ（猶予を過ぎても打ち切らない）
            with anyio.move_on_after(grace):
                await self.gateway.wait_idle()
            if self.gateway.saving:
                logger.warning("shutdown_waiting_for_inflight_save", grace_ms=self.settings.shutdown_grace_ms)
        try:
            await self.save()
        except PersistenceError as exc:
            self.shutdown_failed = True
            logger.error("shutdown_save_failed", error=str(exc), path=str(self.gateway.path))
            raise
        logger.info("shutdown_state_saved", path=str(self.gateway.path))
        return True
