"""
Bill file storage.

Bills live under ``expenses/<expense id>/bill<ext>``; the record only keeps the
key. ``StorageError`` is raised for missing objects and keys that would
escape the storage root.
"""

from __future__ import annotations

import mimetypes
import os
import re
import tempfile
import time
import uuid
from pathlib import Path, PurePath

from club_finance.core.config import settings
from club_finance.core.logging import get_logger, log_event, log_exception, monotonic_ms

logger = get_logger(__name__)

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9.-]")


class StorageError(RuntimeError):
    pass


class ObjectStorage:
    def put(self, *, key: str, body: bytes) -> None:  # pragma: no cover
        raise NotImplementedError

    def get(self, *, key: str) -> bytes:  # pragma: no cover
        raise NotImplementedError

    def delete(self, *, key: str) -> None:  # pragma: no cover
        raise NotImplementedError


class LocalObjectStorage(ObjectStorage):
    def __init__(self, root: Path):
        self.root = root.resolve()
        self.root.mkdir(parents=True, exist_ok=True)

    def _resolve(self, key: str) -> Path:
        path = (self.root / key).resolve()
        if not path.is_relative_to(self.root) or path == self.root:
            raise StorageError(f"Invalid storage key: {key}")
        return path

    def put(self, *, key: str, body: bytes) -> None:
        start = time.monotonic()
        path = self._resolve(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        # Write beside the target then swap, so readers never see half a bill.
        fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=".upload-")
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(body)
            os.replace(tmp, path)
        except OSError:
            Path(tmp).unlink(missing_ok=True)
            log_exception(logger, "storage.put.failure", storage_key=key, byte_size=len(body))
            raise
        log_event(
            logger,
            "storage.put.success",
            storage_key=key,
            byte_size=len(body),
            duration_ms=monotonic_ms(start),
        )

    def get(self, *, key: str) -> bytes:
        path = self._resolve(key)
        try:
            return path.read_bytes()
        except FileNotFoundError as e:
            log_event(logger, "storage.get.missing", storage_key=key)
            raise StorageError(f"Object not found: {key}") from e

    def delete(self, *, key: str) -> None:
        path = self._resolve(key)
        path.unlink(missing_ok=True)
        log_event(logger, "storage.delete", storage_key=key)


_storage: ObjectStorage | None = None


def get_storage() -> ObjectStorage:
    global _storage  # noqa: PLW0603
    if _storage is None:
        _storage = LocalObjectStorage(Path(settings.local_storage_path))
    return _storage


def sanitize_filename(filename: str) -> str:
    cleaned = _UNSAFE_CHARS.sub("_", filename or "")
    return re.sub(r"_{2,}", "_", cleaned).lower()


def bill_key(expense_id: uuid.UUID, *, filename: str, content_type: str | None) -> str:
    suffix = PurePath(sanitize_filename(filename)).suffix
    if not suffix and content_type:
        suffix = mimetypes.guess_extension(content_type) or ""
    return f"expenses/{expense_id}/bill{suffix}"
