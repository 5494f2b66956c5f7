import asyncio
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional, Protocol

from statbadge.domain.exceptions import StorageException
from statbadge.infrastructure.database import SqlStorage

logger = logging.getLogger(__name__)


class KeyValueStorage(Protocol):
    """
    Capability interface for persisting last-known metric values.
    `read` returns None only when the key does not exist; any other failure
    raises StorageException.
    """

    async def read(self, key: str) -> Optional[Dict[str, Any]]: ...

    async def write(self, key: str, value: Dict[str, Any]) -> None: ...

    async def exists(self, key: str) -> bool: ...


class FileStorage:
    """
    JSON file per key inside a data directory.
    Committing the directory back to the repository is what makes values survive between runs.
    """

    def __init__(self, data_dir: str):
        self.data_dir = Path(data_dir)

    def _path(self, key: str) -> Path:
        return self.data_dir / f"{key}.json"

    def _read_sync(self, key: str) -> Optional[Dict[str, Any]]:
        try:
            with open(self._path(key), "r", encoding="utf-8") as file_handle:
                return json.load(file_handle)
        except FileNotFoundError:
            return None
        except (OSError, json.JSONDecodeError) as e:
            raise StorageException(f"Cannot read key '{key}': {e}") from e

    def _write_sync(self, key: str, value: Dict[str, Any]) -> None:
        # Write to a sibling temp file and rename so a crash never leaves half a record behind.
        tmp_path = None
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=self.data_dir, prefix=f".{key}.", suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as file_handle:
                json.dump(value, file_handle, indent=2)
            os.replace(tmp_path, self._path(key))
        except (OSError, TypeError, ValueError) as e:
            if tmp_path is not None and os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise StorageException(f"Cannot write key '{key}': {e}") from e

    async def read(self, key: str) -> Optional[Dict[str, Any]]:
        return await asyncio.to_thread(self._read_sync, key)

    async def write(self, key: str, value: Dict[str, Any]) -> None:
        await asyncio.to_thread(self._write_sync, key, value)
        logger.debug(f"Stored '{key}' in {self.data_dir}")

    async def exists(self, key: str) -> bool:
        return await asyncio.to_thread(self._path(key).is_file)


def create_storage(output_dir: str, storage_url: Optional[str] = None) -> KeyValueStorage:
    """
    Storage factory. File storage under `output_dir` unless a database URL is configured.
    """
    if storage_url:
        return SqlStorage(db_url=storage_url)
    return FileStorage(data_dir=output_dir)
