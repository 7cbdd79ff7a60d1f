from fastapi import APIRouter, HTTPException, Query, Request

from .. import scheduler
from ..errors import ConflictError, NotFoundError
from ..lifecycle import StateManager
from ..logging import logger
from ..models.api import (
    CardPayload,
    CreateCardRequest,
    CreateCardResponse,
    DayAdvanceResponse,
    HintResponse,
    PracticeSessionResponse,
    UpdateRequest,
    UpdateResponse,
)
from ..models.card import Flashcard
from ..models.progress import ProgressStats
from ..store import BucketStore

router = APIRouter(tags=["flashcards"])

# ハンドラはすべて async def。スレッドプールで並行実行させず、イベントループ上で
# 1 件ずつ完走させることでストアへのロックを不要にしている。


def _store(request: Request) -> BucketStore:
    manager: StateManager = request.app.state.manager
    return manager.store


@router.get("/practice", response_model=PracticeSessionResponse, summary="今日の出題カードを取得")
async def get_practice(request: Request) -> PracticeSessionResponse:
    """Return the cards due on the current day."""
    store = _store(request)
    if scheduler.is_all_retired(store.buckets):
        return PracticeSessionResponse(cards=[], day=store.day, retired=True)
    cards = sorted(scheduler.due(store.buckets, store.day), key=lambda c: (c.front, c.back))
    logger.info("practice_session", day=store.day, cards=len(cards))
    return PracticeSessionResponse(cards=[CardPayload.from_card(c) for c in cards], day=store.day)


@router.post("/update", response_model=UpdateResponse, summary="レビュー結果でバケットを更新")
async def post_update(req: UpdateRequest, request: Request) -> UpdateResponse:
    store = _store(request)
    try:
        record = scheduler.practice(store, req.card_front, req.card_back, req.difficulty)
    except NotFoundError:
        logger.warning("card_not_found", front=req.card_front, back=req.card_back)
        raise HTTPException(status_code=404, detail="Flashcard not found")
    return UpdateResponse(
        message="Card updated successfully.",
        previous_bucket=record.previous_bucket,
        new_bucket=record.new_bucket,
    )


@router.get("/hint", response_model=HintResponse, summary="カードのヒントを取得")
async def get_hint(
    request: Request,
    card_front: str = Query(alias="cardFront", min_length=1),
    card_back: str = Query(alias="cardBack", min_length=1),
) -> HintResponse:
    card = _store(request).find_card(card_front, card_back)
    if card is None:
        raise HTTPException(status_code=404, detail="Flashcard not found")
    return HintResponse(hint=scheduler.hint(card))


@router.get("/progress", response_model=ProgressStats, summary="学習進捗の統計")
async def get_progress(request: Request) -> ProgressStats:
    store = _store(request)
    return scheduler.progress(store.buckets, store.history)


@router.post("/day/next", response_model=DayAdvanceResponse, summary="学習日を 1 日進める")
async def post_next_day(request: Request) -> DayAdvanceResponse:
    new_day = _store(request).advance_day()
    return DayAdvanceResponse(message="Day advanced successfully.", new_day=new_day)


@router.post("/cards", status_code=201, response_model=CreateCardResponse, summary="カードを作成してバケット 0 へ追加")
async def post_card(req: CreateCardRequest, request: Request) -> CreateCardResponse:
    try:
        card = Flashcard(front=req.front, back=req.back, hint=req.hint, tags=tuple(req.tags))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    try:
        _store(request).add_card(card)
    except ConflictError:
        logger.warning("duplicate_card", front=card.front)
        raise HTTPException(status_code=409, detail="A flashcard with this front and back already exists.")
    return CreateCardResponse(message="Flashcard created successfully.", card=CardPayload.from_card(card))
