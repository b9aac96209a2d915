"""
Client-side persisted key/value storage (the browser's local storage).
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Protocol

from betterphone.shared.logging import get_logger

logger = get_logger(__name__)


class LocalStorage(Protocol):
    """String key/value store that survives reloads."""

    def get(self, key: str) -> str | None:
        ...

    def set(self, key: str, value: str) -> None:
        ...

    def remove(self, key: str) -> None:
        ...


class MemoryLocalStorage:
    """In-process storage; lost when the process exits."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._values: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value

    def remove(self, key: str) -> None:
        self._values.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._values)


class JsonFileLocalStorage(MemoryLocalStorage):
    """Storage backed by a single JSON document on disk.

    The in-memory copy is authoritative: a failed write is logged and the
    value is still served for the rest of the process.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        super().__init__(self._read())

    def _read(self) -> dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            document = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable client storage", extra={"path": str(self._path), "error": str(exc)})
            return {}
        if not isinstance(document, dict):
            return {}
        return {str(key): str(value) for key, value in document.items()}

    def _write(self) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(json.dumps(self._values, indent=2), encoding="utf-8")
        except OSError as exc:
            logger.error("Failed to persist client storage", extra={"path": str(self._path), "error": str(exc)})

    def set(self, key: str, value: str) -> None:
        super().set(key, value)
        self._write()

    def remove(self, key: str) -> None:
        super().remove(key)
        self._write()
