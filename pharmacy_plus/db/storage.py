# pharmacy_plus/db/storage.py
import json
import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class KeyValueStorage(ABC):
    """
    String key/value store with JSON helpers. Values are stored as JSON
    text, so a cache written by one session reloads in the next.
    """

    @abstractmethod
    def get_item(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    def set_item(self, key: str, value: str) -> None:
        ...

    @abstractmethod
    def remove_item(self, key: str) -> None:
        ...

    def get_json(self, key: str, default: Any = None) -> Any:
        raw = self.get_item(key)
        if raw is None:
            return default
        return json.loads(raw)

    def set_json(self, key: str, value: Any) -> None:
        self.set_item(key, json.dumps(value))


class MemoryStorage(KeyValueStorage):
    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._items: Dict[str, str] = dict(initial or {})

    def get_item(self, key):
        return self._items.get(key)

    def set_item(self, key, value):
        self._items[key] = value

    def remove_item(self, key):
        self._items.pop(key, None)


class JsonFileStorage(KeyValueStorage):
    """All keys live in one JSON document; every write rewrites it atomically."""

    def __init__(self, path):
        self.path = Path(path).expanduser()
        self._items: Optional[Dict[str, str]] = None

    def _load(self) -> Dict[str, str]:
        if self._items is None:
            try:
                with open(self.path, "r", encoding="utf-8") as f:
                    data = json.load(f)
            except FileNotFoundError:
                data = {}
            except (OSError, json.JSONDecodeError) as e:
                logger.warning(f"Storage file {self.path} unreadable, starting empty: {e}")
                data = {}
            if not isinstance(data, dict):
                logger.warning(f"Storage file {self.path} is not a JSON object, starting empty")
                data = {}
            # every value must be JSON text
            bad_keys = [key for key, value in data.items() if not isinstance(value, str)]
            for key in bad_keys:
                logger.warning(f"Dropping non-text value for {key!r} in {self.path}")
                del data[key]
            self._items = data
        return self._items

    def _flush(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(self._items, f)
        os.replace(tmp_path, self.path)

    def get_item(self, key):
        return self._load().get(key)

    def set_item(self, key, value):
        self._load()[key] = value
        self._flush()

    def remove_item(self, key):
        if self._load().pop(key, None) is not None:
            self._flush()


def open_storage(path=None) -> KeyValueStorage:
    if path is None:
        return MemoryStorage()
    return JsonFileStorage(path)
