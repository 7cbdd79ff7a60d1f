"""
Exception taxonomy for the scheduler and the state file.

呼び出し側のバグ（NotFoundError）、不正な保存データ（ValidationError）、
壊れたファイル（CorruptionError）、OS 由来の失敗（PersistenceIOError）を
区別できるようにしている。ファイルが存在しないことは例外ではなく
``persistence.ABSENT`` で表す。
"""


class BucketDeckError(Exception):
    """Base exception for all bucketdeck errors."""
    pass


class ValidationError(BucketDeckError):
    """Raised when a persisted document does not have the expected shape."""
    pass


class NotFoundError(BucketDeckError):
    """Raised when a card is not present in any bucket."""
    pass


class ConflictError(BucketDeckError):
    """Raised when a card with the same front and back already exists."""
    pass


class PersistenceError(BucketDeckError):
    """Base class for failures reading or writing the state file."""

    def __init__(self, message: str, path: str | None = None) -> None:
        super().__init__(message)
        self.path = path


class CorruptionError(PersistenceError):
    """Raised when the state file exists but cannot be parsed."""
    pass


class PersistenceIOError(PersistenceError):
    """Raised for OS level failures (permissions, disk, directories)."""
    pass
