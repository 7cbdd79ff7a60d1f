"""
Durable JSON storage for the serialized learning state.

- save: 同一ディレクトリの一時ファイルへ書き込み、fsync 後に os.replace で差し替える。
  途中で失敗しても既存ファイルは壊れない。
- load: ファイルが無ければ ABSENT（エラーではない）、JSON として読めなければ
  CorruptionError、それ以外の OS エラーは PersistenceIOError。
"""
from __future__ import annotations

import enum
import json
import os
import stat
import tempfile
from pathlib import Path
from typing import Any, Union

import anyio

from .errors import CorruptionError, PersistenceIOError
from .logging import logger


class Absent(enum.Enum):
    """Marker returned by ``load`` when no state file exists yet."""

    ABSENT = "absent"

    def __bool__(self) -> bool:
        return False


ABSENT = Absent.ABSENT

LoadResult = Union[dict[str, Any], Absent]


def save(path: str | os.PathLike[str], document: dict[str, Any]) -> None:
    """Write ``document`` as pretty-printed JSON, atomically replacing ``path``.

    既存ファイルのパーミッションは引き継ぐ。新規作成時は mkstemp の既定
    (0600, 所有者のみ読み書き可) のままになる。
    """
    target = Path(path)
    try:
        payload = json.dumps(document, indent=2, ensure_ascii=False)
    except (TypeError, ValueError) as exc:
        raise PersistenceIOError(f"state is not JSON serializable: {exc}", path=str(target)) from exc

    try:
        target.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise PersistenceIOError(f"cannot create directory {target.parent}: {exc}", path=str(target)) from exc

    tmp_name: str | None = None
    try:
        fd, tmp_name = tempfile.mkstemp(prefix=f".{target.name}.", suffix=".tmp", dir=str(target.parent))
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(payload)
            fh.flush()
            os.fsync(fh.fileno())
        try:
            previous_mode = stat.S_IMODE(target.stat().st_mode)
        except FileNotFoundError:
            previous_mode = None
        if previous_mode is not None:
            os.chmod(tmp_name, previous_mode)
        os.replace(tmp_name, target)
        tmp_name = None
    except OSError as exc:
        raise PersistenceIOError(f"failed to write state file {target}: {exc}", path=str(target)) from exc
    finally:
        if tmp_name is not None:
            try:
                os.unlink(tmp_name)
            except OSError:
                logger.warning("state_tmp_cleanup_failed", tmp_path=tmp_name)


def load(path: str | os.PathLike[str]) -> LoadResult:
    """Read the state file; ABSENT when it does not exist."""
    target = Path(path)
    try:
        raw = target.read_bytes()
    except FileNotFoundError:
        return ABSENT
    except OSError as exc:
        raise PersistenceIOError(f"failed to read state file {target}: {exc}", path=str(target)) from exc

    try:
        return json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise CorruptionError(
            f"Failed to parse state file {target}: Corrupted JSON ({exc})", path=str(target)
        ) from exc


class StateFileGateway:
    """Async access to one state file with mutually exclusive saves.

    ファイル I/O はワーカースレッドへオフロードし、イベントループを塞がない。
    同じパスへの書き込みが重なると一時ファイルが衝突するため、保存は
    anyio.Lock で直列化する。
    """

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self.path = Path(path)
        self._save_lock = anyio.Lock()
        self._saving = False

    @property
    def saving(self) -> bool:
        return self._saving

    async def load(self) -> LoadResult:
        result = await anyio.to_thread.run_sync(load, self.path)
        if result is ABSENT:
            logger.info("state_file_absent", path=str(self.path))
        else:
            logger.info("state_file_loaded", path=str(self.path))
        return result

    async def save(self, document: dict[str, Any]) -> None:
        async with self._save_lock:
            self._saving = True
            try:
                await anyio.to_thread.run_sync(save, self.path, document)
            finally:
                self._saving = False
        logger.info("state_saved", path=str(self.path), day=document.get("day"))

    async def wait_idle(self) -> None:
        """Block until no save is in flight."""
        async with self._save_lock:
            pass
