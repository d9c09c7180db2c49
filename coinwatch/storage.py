"""Key/value text storage standing in for the browser's localStorage."""
from pathlib import Path
from typing import Dict, Optional

from coinwatch.utils import setup_logger

logger = setup_logger(__name__)


class JsonFileStorage:
    """Stores each key as one JSON file under a directory.

    I/O errors are raised as ``OSError`` and undecodable files as
    ``UnicodeDecodeError``; callers decide how to degrade.
    """

    def __init__(self, directory: Path):
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        safe = key.replace(":", "__").replace("/", "_")
        return self.directory / f"{safe}.json"

    def get_item(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        with open(path, "r", encoding="utf-8") as f:
            return f.read()

    def set_item(self, key: str, value: str) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self._path(key)
        tmp = path.with_suffix(".tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            f.write(value)
        tmp.replace(path)
        logger.debug(f"Persisted {key} ({len(value)} bytes)")

    def remove_item(self, key: str) -> None:
        path = self._path(key)
        if path.exists():
            path.unlink()


class MemoryStorage:
    """In-process storage, used for tests and when no directory is configured."""

    def __init__(self, initial: Optional[Dict[str, str]] = None, fail_writes: bool = False):
        self.items: Dict[str, str] = dict(initial or {})
        self.fail_writes = fail_writes
        self.writes = 0

    def get_item(self, key: str) -> Optional[str]:
        return self.items.get(key)

    def set_item(self, key: str, value: str) -> None:
        if self.fail_writes:
            raise OSError("storage quota exceeded")
        self.writes += 1
        self.items[key] = value

    def remove_item(self, key: str) -> None:
        self.items.pop(key, None)
