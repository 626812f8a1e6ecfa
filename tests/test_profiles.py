"""Tests for sessiondeck.profiles.store."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from sessiondeck.profiles.store import ProfileNotFound, ProfileStore, ServerProfile


@pytest.fixture
def store(tmp_path: Path) -> ProfileStore:
    s = ProfileStore(tmp_path / "data" / "profiles.json")
    s.load()
    return s


class TestServerProfile:
    def test_defaults(self) -> None:
        profile = ServerProfile(name="box", host="box.local")
        assert profile.port == 22
        assert profile.tags == []
        assert profile.favorite is False
        assert profile.last_used_at is None
        assert len(profile.id) == 36

    def test_camel_case_roundtrip(self) -> None:
        profile = ServerProfile.model_validate(
            {"id": "p1", "name": "n", "host": "h", "lastUsedAt": "2024-05-01T10:00:00Z"}
        )
        assert profile.last_used_at is not None
        dumped = profile.model_dump(mode="json", by_alias=True)
        assert "lastUsedAt" in dumped
        assert "last_used_at" not in dumped

    def test_to_target(self) -> None:
        profile = ServerProfile(name="n", host="h", user="u", port=None, password="pw")
        target = profile.to_target()
        assert target.port == 22
        assert target.destination == "u@h"
        assert target.password == "pw"


class TestProfileStoreLoad:
    def test_missing_file_is_empty(self, store: ProfileStore) -> None:
        assert store.list() == []
        assert len(store) == 0

    def test_corrupt_file_is_empty(self, tmp_path: Path) -> None:
        path = tmp_path / "profiles.json"
        path.write_text("{not json")
        store = ProfileStore(path)
        assert store.load() == []

    def test_reads_existing_file(self, tmp_path: Path) -> None:
        path = tmp_path / "profiles.json"
        path.write_text(json.dumps([{"id": "a", "name": "A", "host": "a.local", "port": 2222}]))
        store = ProfileStore(path)
        store.load()
        assert store.get("a").port == 2222


class TestProfileStoreMutations:
    def test_upsert_appends_and_persists(self, store: ProfileStore) -> None:
        store.upsert(ServerProfile(id="p1", name="one", host="h1"))
        store.upsert(ServerProfile(id="p2", name="two", host="h2"))
        assert [p.id for p in store.list()] == ["p1", "p2"]

        on_disk = json.loads(store.path.read_text())
        assert [p["id"] for p in on_disk] == ["p1", "p2"]

    def test_upsert_replaces_in_place(self, store: ProfileStore) -> None:
        store.upsert(ServerProfile(id="p1", name="one", host="h1"))
        store.upsert(ServerProfile(id="p2", name="two", host="h2"))
        store.upsert(ServerProfile(id="p1", name="renamed", host="h1"))
        assert [p.name for p in store.list()] == ["renamed", "two"]

    def test_add_from_csv(self, store: ProfileStore) -> None:
        store.upsert(ServerProfile(id="old", name="old", host="o"))
        profile = store.add_from_csv(" web , web.example.com , deploy , hunter2 ")
        assert profile.name == "web"
        assert profile.host == "web.example.com"
        assert profile.user == "deploy"
        assert profile.password == "hunter2"
        assert profile.port == 22
        assert store.list()[0].id == profile.id

    def test_add_from_csv_optional_fields(self, store: ProfileStore) -> None:
        profile = store.add_from_csv("db,db.local,,")
        assert profile.user is None
        assert profile.password is None

    def test_add_from_csv_too_short(self, store: ProfileStore) -> None:
        with pytest.raises(ValueError, match="Expected format"):
            store.add_from_csv("only-a-name")
        assert len(store) == 0

    def test_touch_sets_last_used(self, store: ProfileStore) -> None:
        store.upsert(ServerProfile(id="p1", name="one", host="h1"))
        touched = store.touch("p1")
        assert touched.last_used_at is not None
        assert touched.last_used_at.tzinfo is not None

        reloaded = ProfileStore(store.path)
        reloaded.load()
        assert reloaded.get("p1").last_used_at == touched.last_used_at

    def test_delete(self, store: ProfileStore) -> None:
        store.upsert(ServerProfile(id="p1", name="one", host="h1"))
        store.delete("p1")
        assert store.list() == []

    def test_unknown_profile(self, store: ProfileStore) -> None:
        with pytest.raises(ProfileNotFound, match="missing"):
            store.get("missing")
        with pytest.raises(ProfileNotFound):
            store.touch("missing")
        with pytest.raises(ProfileNotFound):
            store.delete("missing")

    def test_list_returns_copies(self, store: ProfileStore) -> None:
        store.upsert(ServerProfile(id="p1", name="one", host="h1"))
        store.list()[0].name = "mutated"
        assert store.get("p1").name == "one"
