"""Dismissal state of the seasonal promotion banner."""

__all__ = [
    "BANNER_DISMISSED_KEY",
    "BannerVisibilityService",
    "InMemoryStorage",
    "JsonFileStorage",
    "KeyValueStorage",
]

import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Dict, Optional, Union

from aibs_informatics_core.utils.logging import get_logger

logger = get_logger(__name__)

BANNER_DISMISSED_KEY = "narra_christmas_banner_dismissed_2024"
DISMISSED_VALUE = "true"


class KeyValueStorage(ABC):
    """Persistent string storage, the way a browser's local storage behaves."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        pass

    @abstractmethod
    def remove(self, key: str) -> None:
        pass


class InMemoryStorage(KeyValueStorage):
    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._values: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value

    def remove(self, key: str) -> None:
        self._values.pop(key, None)


class JsonFileStorage(KeyValueStorage):
    """Storage persisted as a JSON object in a file, surviving restarts.

    A missing file is an empty storage. A file that is not a JSON object is logged and
    treated as empty; it is replaced on the next write.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def _load(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        except ValueError as e:
            logger.warning(f"Ignoring unreadable storage file {self.path}: {e}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Ignoring storage file {self.path}: not a JSON object")
            return {}
        return {str(k): str(v) for k, v in data.items()}

    def _save(self, values: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(values, indent=2, sort_keys=True), encoding="utf-8")

    def get(self, key: str) -> Optional[str]:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        values = self._load()
        values[key] = value
        self._save(values)

    def remove(self, key: str) -> None:
        values = self._load()
        if values.pop(key, None) is not None:
            self._save(values)


class BannerVisibilityService:
    """Whether the promotion banner shows.

    The banner shows until it is dismissed. Dismissal is stored under a fixed key, so
    it lasts across sessions until the key is cleared with `reset()`.

    Args:
        storage (KeyValueStorage): Where the dismissal is stored.
        on_visibility_change (Optional[Callable[[bool], None]]): Called with the new
            visibility on `refresh()`, `dismiss()` and `reset()`.
        key (str): Storage key of the dismissal flag.
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        on_visibility_change: Optional[Callable[[bool], None]] = None,
        key: str = BANNER_DISMISSED_KEY,
    ):
        self.storage = storage
        self.on_visibility_change = on_visibility_change
        self.key = key

    def is_visible(self) -> bool:
        return not self.storage.get(self.key)

    def refresh(self) -> bool:
        """Read the stored state and notify the listener, as when the banner mounts."""
        visible = self.is_visible()
        self._notify(visible)
        return visible

    def dismiss(self) -> None:
        self.storage.set(self.key, DISMISSED_VALUE)
        self._notify(False)

    def reset(self) -> None:
        self.storage.remove(self.key)
        self._notify(True)

    def _notify(self, visible: bool) -> None:
        if self.on_visibility_change is not None:
            self.on_visibility_change(visible)
