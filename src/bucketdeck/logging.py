"""Structured logging setup.

構造化ログの初期化をまとめて提供する。状態ファイルの読込/保存や
レビュー結果などのイベントは JSON 1 行として出力され、集約ツールで
そのまま検索できる。
"""

from typing import Any

import logging
import structlog
from structlog import contextvars as structlog_contextvars
from .config import settings


_CARD_TEXT_KEYS = ("front", "back", "card_front", "card_back")
_MAX_CARD_TEXT = 80


def _truncate_card_text(
    _logger: structlog.types.WrappedLogger,
    _method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Shorten card texts before rendering a log event.

    カード本文は任意長のため、ログ行が膨張しないよう先頭だけを残す。
    """

    for key in _CARD_TEXT_KEYS:
        value = event_dict.get(key)
        if isinstance(value, str) and len(value) > _MAX_CARD_TEXT:
            event_dict[key] = f"{value[: _MAX_CARD_TEXT - 1]}…"
    return event_dict


def configure_logging(level: str | None = None) -> None:
    """Configure structlog for application-wide logging.

    アプリ全体のロギング設定を行う。標準 logging を初期化し、
    structlog で ISO タイムスタンプと JSON 形式の出力を有効化する。
    """
    # stdlib 側の出力に余計なプレフィックスを付けないため、フォーマットは
    # メッセージのみ(%(message)s)に固定する。force=True で uvicorn 等の既存ハンドラを上書き。
    logging.basicConfig(
        level=getattr(logging, level or settings.log_level, logging.INFO),
        format="%(message)s",
        handlers=[logging.StreamHandler()],
        force=True,
    )
    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog_contextvars.merge_contextvars,
            _truncate_card_text,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(ensure_ascii=False),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
    )


logger = structlog.get_logger()
