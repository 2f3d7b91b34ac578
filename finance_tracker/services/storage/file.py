"""
Local JSON File Storage

Each key is one file in the data directory ('finance-tracker-data' is
stored as '<data_dir>/finance-tracker-data.json'). The value is written
as-is; the store already hands us serialized JSON.
"""

import os
from pathlib import Path
from typing import Optional, Union

import structlog

from finance_tracker.services.storage.interface import (
    BlobStoreInterface,
    StorageError,
)


logger = structlog.get_logger(__name__)


class JsonFileBlobStore(BlobStoreInterface):
    """Blob store backed by one JSON file per key."""

    def __init__(self, data_dir: Union[str, Path]):
        self.data_dir = Path(data_dir).expanduser().resolve()

    def _path_for(self, key: str) -> Path:
        """
        Resolve a key to a file inside data_dir.

        Keys are plain names; separators and traversal are rejected so that
        a key can never point outside the data directory.
        """
        raw_key = key.strip()
        if not raw_key or "/" in raw_key or "\\" in raw_key or raw_key.startswith("."):
            raise StorageError(f"Unsafe storage key: {key!r}")
        return self.data_dir / f"{raw_key}.json"

    def get(self, key: str) -> Optional[str]:
        path = self._path_for(key)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except OSError as e:
            raise StorageError(f"Failed to read {path}: {e}")

    def set(self, key: str, value: str) -> None:
        path = self._path_for(key)
        tmp_path = path.with_suffix(".json.tmp")
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            with tmp_path.open("w", encoding="utf-8") as handle:
                handle.write(value)
            # Atomic on POSIX and Windows: readers never see a half-written blob
            os.replace(tmp_path, path)
        except OSError as e:
            raise StorageError(f"Failed to write {path}: {e}")
        logger.debug("blob_written", key=key, path=str(path), size=len(value))

    def remove(self, key: str) -> None:
        path = self._path_for(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to remove {path}: {e}")
