"""JSON file document store."""
import json
import logging
import os
import re
import tempfile
from contextlib import suppress
from pathlib import Path
from typing import Any, Optional, Union
from app.services.storage.base import DocumentStore
from app.utils.errors import StorageError

logger = logging.getLogger(__name__)

_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")


class FileDocumentStore(DocumentStore):
    """
    One pretty-printed JSON file per key inside a directory.

    Writes go to a temporary file in the same directory and are moved into
    place with os.replace, so readers never observe a half-written document.
    All calls are blocking; the sync engine runs them in worker threads.
    """

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        if not _KEY_PATTERN.match(key) or key.startswith("."):
            raise StorageError(f"Invalid document key: {key!r}")
        return self.directory / f"{key}.json"

    def get(self, key: str) -> Optional[Any]:
        path = self._path(key)
        try:
            with path.open("r", encoding="utf-8") as f:
                return json.load(f)
        except FileNotFoundError:
            return None
        except json.JSONDecodeError as e:
            raise StorageError(f"Corrupt document {path}: {e}") from e
        except OSError as e:
            raise StorageError(f"Error reading {path}: {e}") from e

    def put(self, key: str, document: Any) -> None:
        path = self._path(key)
        tmp_name = None
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self.directory,
                prefix=f".{key}.",
                suffix=".tmp",
                delete=False
            ) as tmp:
                tmp_name = tmp.name
                json.dump(document, tmp, indent=2)
                tmp.flush()
                os.fsync(tmp.fileno())
            os.replace(tmp_name, path)
        except (OSError, TypeError, ValueError) as e:
            if tmp_name:
                with suppress(OSError):
                    os.unlink(tmp_name)
            raise StorageError(f"Error writing {path}: {e}") from e

    def delete(self, key: str) -> bool:
        path = self._path(key)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageError(f"Error deleting {path}: {e}") from e
        logger.debug("[STORE] Deleted %s", path)
        return True

    def exists(self, key: str) -> bool:
        return self._path(key).exists()
