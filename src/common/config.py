from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from .api_client import DEFAULT_BASE_URL, DEFAULT_TIMEOUT


# Environment variable names
ENV_API_BASE_URL = "FOODSAVER_API_BASE_URL"
ENV_API_TIMEOUT = "FOODSAVER_API_TIMEOUT"
ENV_STORAGE_PATH = "FOODSAVER_STORAGE_PATH"
ENV_FERNET_KEY = "FOODSAVER_FERNET_KEY"
ENV_LOG_LEVEL = "FOODSAVER_LOG_LEVEL"

DEFAULT_STORAGE_PATH = os.path.join(".foodsaver", "session.json")


def _getenv(name: str, default: Optional[str] = None) -> Optional[str]:
    val = os.environ.get(name)
    return val if val not in (None, "") else default


def _parse_timeout(raw: Optional[str]) -> float:
    if raw is None:
        return DEFAULT_TIMEOUT
    try:
        value = float(raw)
    except ValueError:
        raise RuntimeError(f"Invalid {ENV_API_TIMEOUT}: {raw!r} is not a number") from None
    if value <= 0:
        raise RuntimeError(f"Invalid {ENV_API_TIMEOUT}: must be > 0")
    return value


@dataclass(frozen=True)
class ClientConfig:
    """
    Process-wide client configuration, read once at startup.

    Environment variables
    - `FOODSAVER_API_BASE_URL`: backend base URL including the version prefix
    - `FOODSAVER_API_TIMEOUT`:  request timeout in seconds (default 30)
    - `FOODSAVER_STORAGE_PATH`: credential store file
    - `FOODSAVER_FERNET_KEY`:   optional; encrypts the credential store at rest
    - `FOODSAVER_LOG_LEVEL`:    DEBUG/INFO/WARNING/ERROR (default INFO)
    """

    base_url: str = DEFAULT_BASE_URL
    timeout: float = DEFAULT_TIMEOUT
    storage_path: str = DEFAULT_STORAGE_PATH
    fernet_key: Optional[str] = None
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "ClientConfig":
        return cls(
            base_url=_getenv(ENV_API_BASE_URL, DEFAULT_BASE_URL) or DEFAULT_BASE_URL,
            timeout=_parse_timeout(_getenv(ENV_API_TIMEOUT)),
            storage_path=_getenv(ENV_STORAGE_PATH, DEFAULT_STORAGE_PATH) or DEFAULT_STORAGE_PATH,
            fernet_key=_getenv(ENV_FERNET_KEY),
            log_level=(_getenv(ENV_LOG_LEVEL, "INFO") or "INFO").upper(),
        )
