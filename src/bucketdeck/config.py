import logging
from typing import Annotated

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic_settings.sources.types import NoDecode


DEFAULT_STATE_FILE_PATH = ".data/flashcard_state.json"


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    環境変数から読み込まれるアプリ設定クラス。
    - state_file_path: バケット/履歴/日付を保存する JSON ファイル
    - autosave_interval_seconds: 定期保存の間隔（0 で無効）
    - shutdown_grace_ms: 終了時に進行中の保存を待つ猶予
    """

    environment: str = Field(
        default="development",
        description="Runtime environment / 実行環境",
    )

    # --- 状態ファイルの永続化設定 ---
    state_file_path: str = Field(
        default=DEFAULT_STATE_FILE_PATH,
        description="Path to the persisted flashcard state (JSON) / 学習状態の JSON ファイルパス",
        validation_alias=AliasChoices("state_file_path", "flashcard_state_path"),
    )
    seed_default_deck: bool = Field(
        default=True,
        description=(
            "Seed the built-in deck when no state file exists / "
            "状態ファイルが無い場合に既定デッキを投入するか"
        ),
    )
    autosave_interval_seconds: float = Field(
        default=0,
        ge=0,
        description="Periodic save interval in seconds, 0 disables / 定期保存の間隔（秒、0 で無効）",
    )
    shutdown_grace_ms: int = Field(
        default=200,
        ge=0,
        description=(
            "Grace period for an in-flight save on shutdown (ms) / "
            "終了時に進行中の保存を待つ猶予(ms)"
        ),
    )

    # --- HTTP 境界 ---
    host: str = Field(default="127.0.0.1", description="Bind host / 待受ホスト")
    port: int = Field(default=3001, description="Bind port / 待受ポート")
    allowed_cors_origins: Annotated[tuple[str, ...], NoDecode] = Field(
        default=(),
        description=(
            "Comma separated CORS origins / CORS で許可するオリジンのカンマ区切り一覧"
        ),
        validation_alias=AliasChoices("allowed_cors_origins", "cors_allowed_origins"),
    )

    # --- Logging ---
    log_level: str = Field(
        default="INFO",
        description="Root log level / ルートロガーのレベル",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        case_sensitive=False,
    )

    @field_validator("allowed_cors_origins", mode="before")
    @classmethod
    def _normalise_allowed_cors_origins(
        cls, raw_origins: object
    ) -> tuple[str, ...] | object:  # pragma: no cover - pydantic handles typing
        """Convert environment input into a deduplicated tuple of origins.

        `.env` で管理するときに空白や重複が混ざりやすいため、
        FastAPI へ渡す前にトリムと重複排除を行う。
        """

        if raw_origins is None:
            candidates: list[str] = []
        elif isinstance(raw_origins, str):
            candidates = raw_origins.split(",")
        else:
            try:
                candidates = list(raw_origins)
            except TypeError:
                return raw_origins

        normalised: list[str] = []
        seen: set[str] = set()
        for candidate in candidates:
            if not isinstance(candidate, str):
                continue
            trimmed = candidate.strip()
            if not trimmed or trimmed in seen:
                continue
            seen.add(trimmed)
            normalised.append(trimmed)

        return tuple(normalised)

    @field_validator("state_file_path", mode="after")
    @classmethod
    def _validate_state_file_path(cls, value: str) -> str:
        trimmed = value.strip()
        if not trimmed:
            raise ValueError("STATE_FILE_PATH must not be empty")
        return trimmed

    @field_validator("log_level", mode="after")
    @classmethod
    def _validate_log_level(cls, value: str) -> str:
        """Accept only level names known to the stdlib logging module."""

        level = value.strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"LOG_LEVEL must be a logging level name, got {value!r}")
        return level


settings = Settings()
