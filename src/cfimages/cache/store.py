"""Key-value persistence backends for the image cache."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Protocol

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    """
    Protocol for the host-owned store the cache is persisted in.

    Values must be JSON-serializable. Implementations may raise on
    update(); callers decide whether a failed write is fatal.
    """

    def get(self, key: str, default: Any = None) -> Any:
        """Return the value stored under key, or default."""
        ...

    def update(self, key: str, value: Any) -> None:
        """Store value under key, replacing any previous value."""
        ...


class MemoryStore:
    """In-process store, used for tests and one-shot runs."""

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = dict(initial or {})

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def update(self, key: str, value: Any) -> None:
        self._data[key] = json.loads(json.dumps(value))


class JsonFileStore:
    """
    Store backed by a single JSON document on disk.

    Every key lives in the same top-level object, so several tools can share
    one state file as long as they use distinct keys. There is no locking:
    concurrent writers overwrite each other.

    Example:
        store = JsonFileStore(Path("~/.cfimages/state.json").expanduser())
        store.update("cfimages.imageCache", {})
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._data: dict[str, Any] = self._load()

    def _load(self) -> dict[str, Any]:
        if self.path.exists():
            try:
                with open(self.path, encoding="utf-8") as f:
                    data = json.load(f)
                if isinstance(data, dict):
                    return data
                logger.warning(f"Ignoring state file {self.path}: top level is not an object")
            except (OSError, ValueError) as e:
                logger.warning(f"Could not load state file {self.path}: {e}")
        return {}

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def update(self, key: str, value: Any) -> None:
        """Store value and rewrite the whole document.

        Raises:
            OSError: If the document cannot be written
        """
        self._data[key] = value
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(self._data, f, indent=2, ensure_ascii=False)
        tmp_path.replace(self.path)
