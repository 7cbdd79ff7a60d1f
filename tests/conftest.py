"""Pytest configuration shared by the scheduler and API tests."""

import os
from pathlib import Path

import pytest

# テスト中に開発者の .env や既定パス(.data/)へ書き込まないよう、import 前に上書きする。
os.environ.setdefault("STATE_FILE_PATH", str(Path(__file__).resolve().parent / ".state" / "unused.json"))
os.environ.setdefault("AUTOSAVE_INTERVAL_SECONDS", "0")


@pytest.fixture()
def state_path(tmp_path: Path) -> Path:
    return tmp_path / "data" / "flashcard_state.json"


@pytest.fixture()
def settings(state_path: Path):
    from bucketdeck.config import Settings

    return Settings(state_file_path=str(state_path), shutdown_grace_ms=50)
