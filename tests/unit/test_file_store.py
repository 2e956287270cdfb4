from __future__ import annotations

import pytest

from state.errors import DecryptionFailedError, StateFileError
from state.file_store import FileStore, stage_file_path
from state.models import Entry, Scope, Service, State, TagEntry


def _state_with(name: str, value: str) -> State:
    state = State.empty()
    state.entries[Service.PARAM][name] = Entry.update(value)
    return state


def test_roundtrip_plain(tmp_path):
    store = FileStore(path=tmp_path / "stage.json")
    store.write_state(_state_with("/app/config", "test-value"))

    assert store.exists()
    assert not store.is_encrypted()
    drained = store.drain()
    assert drained.entries[Service.PARAM]["/app/config"].value == "test-value"


def test_roundtrip_encrypted(tmp_path):
    path = tmp_path / "stage.json"
    FileStore(path=path, passphrase="pw").write_state(_state_with("/app/config", "test-value"))

    store = FileStore(path=path, passphrase="pw")
    assert store.is_encrypted()
    assert b"test-value" not in path.read_bytes()
    assert store.drain().entries[Service.PARAM]["/app/config"].value == "test-value"

    with pytest.raises(DecryptionFailedError):
        FileStore(path=path, passphrase="other").drain()
    with pytest.raises(DecryptionFailedError):
        FileStore(path=path).drain()


def test_missing_file_drains_empty(tmp_path):
    store = FileStore(path=tmp_path / "nope" / "stage.json")
    assert not store.exists()
    assert not store.is_encrypted()
    assert store.drain().is_empty()
    assert store.drain(keep=False).is_empty()


def test_write_replaces_previous_content(tmp_path):
    store = FileStore(path=tmp_path / "stage.json")
    store.write_state(_state_with("/a", "A"))
    store.write_state(_state_with("/b", "B"))
    drained = store.drain()
    assert list(drained.entries[Service.PARAM]) == ["/b"]


def test_drain_without_keep_deletes_file(tmp_path):
    store = FileStore(path=tmp_path / "stage.json")
    store.write_state(_state_with("/a", "A"))
    assert not store.drain(keep=False).is_empty()
    assert not store.exists()


def test_drain_one_service_without_keep_leaves_the_other(tmp_path):
    store = FileStore(path=tmp_path / "stage.json")
    state = _state_with("/a", "A")
    state.tags[Service.SECRET]["s"] = TagEntry(add={"team": "core"})
    store.write_state(state)

    drained = store.drain(Service.PARAM, keep=False)
    assert list(drained.entries[Service.PARAM]) == ["/a"]
    rest = store.drain()
    assert rest.entries[Service.PARAM] == {}
    assert rest.tags[Service.SECRET]["s"].add == {"team": "core"}


def test_writing_empty_state_removes_file(tmp_path):
    store = FileStore(path=tmp_path / "stage.json")
    store.write_state(_state_with("/a", "A"))
    store.write_state(State.empty())
    assert not store.exists()


def test_corrupt_file_raises_state_file_error(tmp_path):
    path = tmp_path / "stage.json"
    path.write_text("{not json")
    with pytest.raises(StateFileError):
        FileStore(path=path).drain()


def test_scope_path_uses_home(tmp_path):
    scope = Scope("123456789012", "ap-northeast-1")
    store = FileStore(scope, home=tmp_path)
    assert store.path == tmp_path / "123456789012" / "ap-northeast-1" / "stage.json"
    assert stage_file_path(scope, tmp_path) == store.path


def test_scope_path_defaults_to_env_home(tmp_path, monkeypatch):
    monkeypatch.setenv("CLOUDSTAGE_HOME", str(tmp_path / "custom"))
    store = FileStore(Scope("1", "us-east-1"))
    assert store.path == tmp_path / "custom" / "1" / "us-east-1" / "stage.json"


def test_store_operations_work_on_file(tmp_path):
    store = FileStore(path=tmp_path / "stage.json", passphrase="pw")
    store.stage_entry(Service.SECRET, "db", Entry.create("v"))
    reopened = FileStore(path=tmp_path / "stage.json", passphrase="pw")
    assert reopened.get_entry(Service.SECRET, "db").value == "v"
    reopened.unstage_entry(Service.SECRET, "db")
    assert not reopened.exists()


def test_requires_scope_or_path():
    with pytest.raises(ValueError):
        FileStore()
