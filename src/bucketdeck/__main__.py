"""Run the flashcard API with uvicorn.

uvicorn が SIGINT/SIGTERM を受けると lifespan の終了処理で状態を保存する。
終了時の保存に失敗した場合は終了コード 1 で抜ける。
"""

from __future__ import annotations

import argparse
import sys

import uvicorn

from .config import Settings


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="bucketdeck", description=__doc__)
    parser.add_argument("--host", default=None, help="待受ホスト（既定: HOST 環境変数 / 127.0.0.1）")
    parser.add_argument("--port", type=int, default=None, help="待受ポート（既定: PORT 環境変数 / 3001）")
    parser.add_argument(
        "--state-file",
        default=None,
        help="学習状態の JSON ファイル（既定: STATE_FILE_PATH 環境変数 / .data/flashcard_state.json）",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)

    overrides: dict[str, object] = {}
    if args.host is not None:
        overrides["host"] = args.host
    if args.port is not None:
        overrides["port"] = args.port
    if args.state_file is not None:
        overrides["state_file_path"] = args.state_file
    settings = Settings(**overrides)

    from .main import create_app

    app = create_app(settings)
    server = uvicorn.Server(
        uvicorn.Config(app, host=settings.host, port=settings.port, log_config=None)
    )
    server.run()

    manager = app.state.manager
    if manager.shutdown_failed:
        return 1
    if not manager.initialized:
        # 起動時の読込に失敗した（壊れたファイルなど）
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
