"""Local durable key-value storage — one UTF-8 file per key, synchronous writes."""

import re
from pathlib import Path

from audit_wizard.config import get_config

_SAFE_KEY_RE = re.compile(r"[^A-Za-z0-9_.-]")


def _sanitize_key(key: str) -> str:
    if not key:
        raise ValueError("Storage key must be a non-empty string.")
    # letters, digits, _ . - only
    return _SAFE_KEY_RE.sub("_", key)


class LocalStorage:
    """File-backed stand-in for the browser's localStorage.

    Entries live until remove() is called. Values are plain strings; callers
    own serialization.
    """

    def __init__(self, directory: str | Path | None = None) -> None:
        if directory is None:
            directory = get_config()["local_storage_dir"]
        self.directory = Path(directory).expanduser()
        self.directory.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        return self.directory / f"{_sanitize_key(key)}.json"

    def write(self, key: str, value: str) -> None:
        path = self._path(key)
        tmp = path.with_suffix(".tmp")
        tmp.write_text(value, encoding="utf-8")
        tmp.replace(path)

    def read(self, key: str) -> str | None:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def remove(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)
