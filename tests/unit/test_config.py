from __future__ import annotations

import os

import pytest

from common.config import ClientConfig


_VARS = (
    "FOODSAVER_API_BASE_URL",
    "FOODSAVER_API_TIMEOUT",
    "FOODSAVER_STORAGE_PATH",
    "FOODSAVER_FERNET_KEY",
    "FOODSAVER_LOG_LEVEL",
)


@pytest.fixture
def clean_env(monkeypatch):
    for name in _VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_defaults(clean_env):
    cfg = ClientConfig.from_env()
    assert cfg.base_url == "http://localhost:5000/api/v1"
    assert cfg.timeout == 30.0
    assert cfg.storage_path == os.path.join(".foodsaver", "session.json")
    assert cfg.fernet_key is None
    assert cfg.log_level == "INFO"


def test_env_overrides(clean_env):
    clean_env.setenv("FOODSAVER_API_BASE_URL", "https://api.example.org/api/v1")
    clean_env.setenv("FOODSAVER_API_TIMEOUT", "12.5")
    clean_env.setenv("FOODSAVER_STORAGE_PATH", "/tmp/fs.json")
    clean_env.setenv("FOODSAVER_FERNET_KEY", "k")
    clean_env.setenv("FOODSAVER_LOG_LEVEL", "debug")

    cfg = ClientConfig.from_env()
    assert cfg.base_url == "https://api.example.org/api/v1"
    assert cfg.timeout == 12.5
    assert cfg.storage_path == "/tmp/fs.json"
    assert cfg.fernet_key == "k"
    assert cfg.log_level == "DEBUG"


def test_empty_values_fall_back_to_defaults(clean_env):
    clean_env.setenv("FOODSAVER_API_BASE_URL", "")
    clean_env.setenv("FOODSAVER_API_TIMEOUT", "")
    cfg = ClientConfig.from_env()
    assert cfg.base_url == "http://localhost:5000/api/v1"
    assert cfg.timeout == 30.0


@pytest.mark.parametrize("raw", ["abc", "0", "-3"])
def test_invalid_timeout_raises(clean_env, raw):
    clean_env.setenv("FOODSAVER_API_TIMEOUT", raw)
    with pytest.raises(RuntimeError):
        ClientConfig.from_env()
