"""Tests for LocalStorage."""

import pytest

from sdk.local_storage import LocalStorage


@pytest.fixture
def storage(tmp_path):
    return LocalStorage(tmp_path / "cache")


def test_set_then_get(storage):
    storage.set("invoices", [{"id": "a", "total": "10.00"}])

    assert storage.get("invoices") == [{"id": "a", "total": "10.00"}]


def test_missing_key_returns_default(storage):
    assert storage.get("clients") is None
    assert storage.get("clients", []) == []


def test_values_survive_a_new_instance(tmp_path):
    LocalStorage(tmp_path).set("notifications", [1, 2])

    assert LocalStorage(tmp_path).get("notifications") == [1, 2]


def test_corrupt_file_returns_default(storage):
    (storage.directory / "invoices.json").write_text("{not json", encoding="utf-8")

    assert storage.get("invoices", []) == []


def test_remove(storage):
    storage.set("clients", [])
    storage.remove("clients")
    storage.remove("clients")

    assert storage.get("clients") is None


def test_no_temp_files_left_behind(storage):
    storage.set("clients", [{"id": "x"}])

    assert [p.name for p in storage.directory.iterdir()] == ["clients.json"]


@pytest.mark.parametrize("key", ["", "../escape", "a/b", ".hidden"])
def test_invalid_keys_rejected(storage, key):
    with pytest.raises(ValueError):
        storage.set(key, 1)
