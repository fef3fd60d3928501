from __future__ import annotations

import pytest
from cryptography.fernet import Fernet

from state import storage as storage_mod
from state.storage import (
    CREDENTIAL_KEYS,
    TOKEN_KEY,
    USER_KEY,
    EncryptedFileStorage,
    JsonFileStorage,
    MemoryStorage,
)


def test_credential_keys_are_stable():
    # Existing installs depend on these exact names
    assert TOKEN_KEY == "@auth_token"
    assert USER_KEY == "@user_data"
    assert CREDENTIAL_KEYS == ("@auth_token", "@user_data")


def test_memory_storage_set_get_remove():
    s = MemoryStorage()
    assert s.get_item(TOKEN_KEY) is None

    s.set_item(TOKEN_KEY, "tok")
    s.set_item(USER_KEY, "{}")
    assert s.get_item(TOKEN_KEY) == "tok"

    s.remove_item(TOKEN_KEY)
    assert s.get_item(TOKEN_KEY) is None
    assert s.get_item(USER_KEY) == "{}"

    s.multi_remove([USER_KEY, "missing"])
    assert s.get_item(USER_KEY) is None


def test_json_file_storage_persists_across_instances(tmp_path):
    path = tmp_path / "nested" / "session.json"
    first = JsonFileStorage(path)
    first.set_item(TOKEN_KEY, "tok1")
    first.set_item(USER_KEY, '{"id":"u1"}')

    second = JsonFileStorage(path)
    assert second.get_item(TOKEN_KEY) == "tok1"
    assert second.get_item(USER_KEY) == '{"id":"u1"}'
    # Temp file is renamed into place
    assert not (tmp_path / "nested" / "session.json.tmp").exists()


def test_json_file_storage_multi_remove_clears_both(tmp_path):
    path = tmp_path / "session.json"
    s = JsonFileStorage(path)
    s.set_item(TOKEN_KEY, "tok1")
    s.set_item(USER_KEY, "{}")
    s.set_item("@other", "keep")

    s.multi_remove(CREDENTIAL_KEYS)

    reloaded = JsonFileStorage(path)
    assert reloaded.get_item(TOKEN_KEY) is None
    assert reloaded.get_item(USER_KEY) is None
    assert reloaded.get_item("@other") == "keep"


def test_json_file_storage_corrupt_file_reads_empty(tmp_path):
    path = tmp_path / "session.json"
    path.write_text("{not json", encoding="utf-8")

    s = JsonFileStorage(path)
    assert s.get_item(TOKEN_KEY) is None

    # And recovers on next write
    s.set_item(TOKEN_KEY, "tok2")
    assert JsonFileStorage(path).get_item(TOKEN_KEY) == "tok2"


def test_json_file_storage_ignores_non_string_values(tmp_path):
    path = tmp_path / "session.json"
    path.write_text('{"@auth_token": 123, "@user_data": "{}"}', encoding="utf-8")

    s = JsonFileStorage(path)
    assert s.get_item(TOKEN_KEY) is None
    assert s.get_item(USER_KEY) == "{}"


def test_encrypted_storage_roundtrip_and_ciphertext_at_rest(tmp_path):
    key = Fernet.generate_key()
    path = tmp_path / "session.enc"

    s = EncryptedFileStorage(path, fernet_key=key)
    s.set_item(TOKEN_KEY, "super-secret-token")

    assert b"super-secret-token" not in path.read_bytes()
    assert EncryptedFileStorage(path, fernet_key=key.decode("ascii")).get_item(TOKEN_KEY) == "super-secret-token"


def test_encrypted_storage_wrong_key_reads_empty(tmp_path):
    path = tmp_path / "session.enc"
    EncryptedFileStorage(path, fernet_key=Fernet.generate_key()).set_item(TOKEN_KEY, "tok")

    other = EncryptedFileStorage(path, fernet_key=Fernet.generate_key())
    assert other.get_item(TOKEN_KEY) is None


def _failing_replace(src, dst):
    raise OSError("read-only filesystem")


def test_json_file_storage_failed_clear_keeps_view_in_sync_with_disk(tmp_path, monkeypatch):
    path = tmp_path / "session.json"
    s = JsonFileStorage(path)
    s.set_item(TOKEN_KEY, "tok1")
    s.set_item(USER_KEY, "{}")

    monkeypatch.setattr(storage_mod.os, "replace", _failing_replace)
    with pytest.raises(OSError):
        s.multi_remove(CREDENTIAL_KEYS)

    # Disk still holds the record, so this view must too
    assert s.get_item(TOKEN_KEY) == "tok1"
    assert s.get_item(USER_KEY) == "{}"
    monkeypatch.undo()
    assert JsonFileStorage(path).get_item(TOKEN_KEY) == "tok1"


def test_json_file_storage_failed_write_is_not_visible(tmp_path, monkeypatch):
    path = tmp_path / "session.json"
    s = JsonFileStorage(path)
    s.set_item(TOKEN_KEY, "tok1")

    monkeypatch.setattr(storage_mod.os, "replace", _failing_replace)
    with pytest.raises(OSError):
        s.set_item(TOKEN_KEY, "tok2")

    assert s.get_item(TOKEN_KEY) == "tok1"
