"""Key/value stores holding JSON-serialized strings, localStorage style."""
import logging
import typing as t
from pathlib import Path

from .errors import StorageError

logger = logging.getLogger(__name__)


class Storage(t.Protocol):
    def get(self, key: str) -> t.Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class MemoryStorage:
    def __init__(self, initial: t.Optional[t.Dict[str, str]] = None):
        self._data: t.Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> t.Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)


def safe_name(value: str) -> str:
    return "".join(ch for ch in value if ch.isalnum() or ch in "-_")


class JsonFileStorage:
    """One file per key: ``<data_dir>/<namespace>__<key>.json``."""

    def __init__(self, data_dir: Path, namespace: str):
        self.data_dir = Path(data_dir)
        self.namespace = safe_name(namespace)
        if not self.namespace:
            raise ValueError("namespace must contain at least one of [A-Za-z0-9_-]")

    def _path(self, key: str) -> Path:
        return self.data_dir / f"{self.namespace}__{safe_name(key)}.json"

    def get(self, key: str) -> t.Optional[str]:
        p = self._path(key)
        if not p.exists():
            return None
        try:
            with p.open("r", encoding="utf-8") as f:
                return f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise StorageError(f"cannot read {p.name}: {e}") from e

    def set(self, key: str, value: str) -> None:
        p = self._path(key)
        tmp = p.with_suffix(".json.tmp")
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            with tmp.open("w", encoding="utf-8") as f:
                f.write(value)
            tmp.replace(p)
        except OSError as e:
            raise StorageError(f"cannot write {p.name}: {e}") from e

    def remove(self, key: str) -> None:
        p = self._path(key)
        try:
            p.unlink(missing_ok=True)
        except OSError as e:
            raise StorageError(f"cannot remove {p.name}: {e}") from e
