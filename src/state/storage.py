from __future__ import annotations

import json
import os
import threading
from pathlib import Path
from typing import Dict, Iterable, Optional, Protocol

from cryptography.fernet import Fernet, InvalidToken


# Persisted credential record. Key names are shared with existing installs.
TOKEN_KEY = "@auth_token"
USER_KEY = "@user_data"
CREDENTIAL_KEYS = (TOKEN_KEY, USER_KEY)


class KeyValueStorage(Protocol):
    """Durable string->string storage shared by the session store and API client."""

    def get_item(self, key: str) -> Optional[str]: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...

    def multi_remove(self, keys: Iterable[str]) -> None: ...


class MemoryStorage:
    """Process-local storage; nothing survives a restart."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._data: Dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def get_item(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def set_item(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value

    def remove_item(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def multi_remove(self, keys: Iterable[str]) -> None:
        with self._lock:
            for key in keys:
                self._data.pop(key, None)


class JsonFileStorage:
    """
    Key-value storage backed by a single JSON object file.

    - Reads are lazy; a missing, unreadable or corrupt file reads as empty.
    - Every mutation rewrites the whole file via a temp file + rename so a
      crash never leaves a half-written record behind.
    - Write failures raise (unlike a cache, losing a credential write silently
      would leave the session half-persisted).
    - The in-memory view changes only after the file write succeeded, so a
      failed write leaves reads matching what is on disk.
    """

    def __init__(self, path: os.PathLike[str] | str) -> None:
        self._path = Path(path)
        self._data: Dict[str, str] = {}
        self._loaded = False
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    # -------- Encoding hooks (overridden by EncryptedFileStorage) --------
    def _decode(self, raw: bytes) -> bytes:
        return raw

    def _encode(self, plaintext: bytes) -> bytes:
        return plaintext

    # -------- Internal --------
    def _ensure_loaded(self) -> None:
        if self._loaded:
            return
        self._loaded = True
        try:
            if self._path.exists():
                raw = json.loads(self._decode(self._path.read_bytes()).decode("utf-8"))
                if isinstance(raw, dict):
                    self._data = {str(k): v for k, v in raw.items() if isinstance(v, str)}
        except Exception:
            # Corrupt store: start fresh
            self._data = {}

    def _save(self, data: Dict[str, str]) -> None:
        """Write `data` to disk, then adopt it as the in-memory view."""
        self._path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps(data, separators=(",", ":"), sort_keys=True).encode("utf-8")
        tmp = self._path.with_name(self._path.name + ".tmp")
        tmp.write_bytes(self._encode(payload))
        os.replace(tmp, self._path)
        self._data = data

    # -------- Public API --------
    def get_item(self, key: str) -> Optional[str]:
        with self._lock:
            self._ensure_loaded()
            return self._data.get(key)

    def set_item(self, key: str, value: str) -> None:
        with self._lock:
            self._ensure_loaded()
            updated = dict(self._data)
            updated[key] = value
            self._save(updated)

    def remove_item(self, key: str) -> None:
        self.multi_remove([key])

    def multi_remove(self, keys: Iterable[str]) -> None:
        with self._lock:
            self._ensure_loaded()
            drop = set(keys)
            updated = {k: v for k, v in self._data.items() if k not in drop}
            if len(updated) != len(self._data):
                self._save(updated)


def _to_fernet(key: str | bytes) -> Fernet:
    """Construct a Fernet instance from a urlsafe base64-encoded 32-byte key."""
    if isinstance(key, str):
        key_bytes = key.encode("utf-8")
    else:
        key_bytes = key
    return Fernet(key_bytes)


class EncryptedFileStorage(JsonFileStorage):
    """
    `JsonFileStorage` encrypted at rest with Fernet.

    A file that fails to decrypt (wrong key, tampering) reads as empty, which
    the session store treats as "no session".
    """

    def __init__(self, path: os.PathLike[str] | str, *, fernet_key: str | bytes) -> None:
        super().__init__(path)
        self._fernet = _to_fernet(fernet_key)

    def _decode(self, raw: bytes) -> bytes:
        try:
            return self._fernet.decrypt(raw)
        except InvalidToken as ex:
            raise ValueError("Failed to decrypt storage: invalid Fernet token") from ex

    def _encode(self, plaintext: bytes) -> bytes:
        return self._fernet.encrypt(plaintext)


__all__ = [
    "CREDENTIAL_KEYS",
    "EncryptedFileStorage",
    "JsonFileStorage",
    "KeyValueStorage",
    "MemoryStorage",
    "TOKEN_KEY",
    "USER_KEY",
]
