from __future__ import annotations

import json
import logging
from typing import List

import httpx
import pytest
from cryptography.fernet import Fernet

from app import handler
from state.storage import TOKEN_KEY, USER_KEY, EncryptedFileStorage, JsonFileStorage, MemoryStorage


USER = {"id": "u1", "name": "Ana", "email": "a@b.com", "created_at": "2024-01-01T00:00:00Z"}


@pytest.fixture
def env(monkeypatch, tmp_path):
    # run_once reconfigures the root logger; put pytest's handlers back afterwards
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    monkeypatch.setenv("FOODSAVER_API_BASE_URL", "http://api.test/api/v1")
    monkeypatch.setenv("FOODSAVER_STORAGE_PATH", str(tmp_path / "session.json"))
    monkeypatch.delenv("FOODSAVER_FERNET_KEY", raising=False)
    monkeypatch.delenv("FOODSAVER_API_TIMEOUT", raising=False)
    yield monkeypatch
    root.handlers[:] = saved_handlers
    root.setLevel(saved_level)


def _counting_client(requests: List[httpx.Request]) -> httpx.Client:
    def handler_fn(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={"success": True, "data": []})

    return httpx.Client(transport=httpx.MockTransport(handler_fn), timeout=10.0)


def test_cold_start_empty_storage_routes_to_auth(env):
    requests: List[httpx.Request] = []
    out = handler.run_once(storage=MemoryStorage(), http_client=_counting_client(requests))

    assert out == {"ok": True, "route": "auth", "user_id": None}
    assert requests == []


def test_cold_start_with_session_routes_to_main_without_network(env):
    requests: List[httpx.Request] = []
    storage = MemoryStorage({TOKEN_KEY: "tok1", USER_KEY: json.dumps(USER)})
    out = handler.run_once(storage=storage, http_client=_counting_client(requests))

    assert out == {"ok": True, "route": "main", "user_id": "u1"}
    assert requests == []


def test_cold_start_reads_file_storage_from_env(env, tmp_path):
    disk = JsonFileStorage(tmp_path / "session.json")
    disk.set_item(TOKEN_KEY, "tok1")
    disk.set_item(USER_KEY, json.dumps(USER))

    out = handler.run_once(http_client=_counting_client([]))
    assert out["route"] == "main"


def test_cold_start_corrupt_file_routes_to_auth(env, tmp_path):
    (tmp_path / "session.json").write_text("garbage", encoding="utf-8")
    out = handler.run_once(http_client=_counting_client([]))
    assert out["route"] == "auth"


def test_build_storage_encrypts_when_key_configured(env, tmp_path):
    key = Fernet.generate_key().decode("ascii")
    env.setenv("FOODSAVER_FERNET_KEY", key)

    storage = handler.build_storage(handler.ClientConfig.from_env())
    assert isinstance(storage, EncryptedFileStorage)

    storage.set_item(TOKEN_KEY, "tok1")
    storage.set_item(USER_KEY, json.dumps(USER))
    out = handler.run_once(http_client=_counting_client([]))
    assert out["route"] == "main"
