"""Unit tests for snapshot storage backends."""

import json
import tempfile
from pathlib import Path

import pytest
from cryptography.fernet import Fernet

from account_manager.models import RegistrySnapshot
from account_manager.snapshot_storage import EncryptedSnapshotStore, JsonFileSnapshotStore

SNAPSHOT = {
    "accounts": {
        "PlayerOne": {
            "username": "PlayerOne",
            "userId": "1001",
            "securityToken": "cookie",
            "password": "",
            "addedAt": "2024-01-01T00:00:00Z",
            "lastUsed": None,
            "browserTrackerId": "123456123456",
            "alias": "main",
            "description": None,
            "group": None,
        }
    },
    "lastUsedTarget": "920587237",
    "nextServers": {"PlayerOne": {"targetId": "920587237", "serverId": "job-1", "setAt": "2024-01-01T00:00:00Z"}},
}


@pytest.mark.unit
class TestJsonFileSnapshotStore:
    """Test the plain JSON file backend."""

    def test_missing_file_loads_none(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            store = JsonFileSnapshotStore(Path(tmpdir) / "accounts.json")
            assert store.load_snapshot() is None

    def test_save_and_load(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "data" / "accounts.json"
            store = JsonFileSnapshotStore(path)

            assert store.save_snapshot(SNAPSHOT) is True

            assert store.load_snapshot() == SNAPSHOT
            assert list(path.parent.iterdir()) == [path]

    def test_corrupt_file_raises(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "accounts.json"
            path.write_text("{not json", encoding="utf-8")
            with pytest.raises(ValueError):
                JsonFileSnapshotStore(path).load_snapshot()

    def test_unserializable_snapshot_reports_failure(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "accounts.json"
            store = JsonFileSnapshotStore(path)
            store.save_snapshot(SNAPSHOT)

            assert store.save_snapshot({"bad": object()}) is False
            assert json.loads(path.read_text(encoding="utf-8")) == SNAPSHOT


@pytest.mark.unit
class TestEncryptedSnapshotStore:
    """Test the encrypted DiskStore backend."""

    def test_save_and_load(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            store = EncryptedSnapshotStore(directory=tmpdir, encryption_key=Fernet.generate_key().decode())
            assert store.load_snapshot() is None

            assert store.save_snapshot(SNAPSHOT) is True

            assert store.load_snapshot() == SNAPSHOT

    def test_survives_restart_with_same_key(self):
        key = Fernet.generate_key().decode()
        with tempfile.TemporaryDirectory() as tmpdir:
            EncryptedSnapshotStore(directory=tmpdir, encryption_key=key).save_snapshot(SNAPSHOT)
            assert EncryptedSnapshotStore(directory=tmpdir, encryption_key=key).load_snapshot() == SNAPSHOT

    def test_token_not_stored_in_clear(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            store = EncryptedSnapshotStore(directory=tmpdir, encryption_key=Fernet.generate_key().decode())
            store.save_snapshot(SNAPSHOT)

            for file in Path(tmpdir).rglob("*"):
                if file.is_file():
                    assert b"920587237" not in file.read_bytes()


@pytest.mark.unit
class TestRegistrySnapshot:
    """Test snapshot parsing."""

    def test_round_trip_through_model(self):
        snapshot = RegistrySnapshot.from_data(SNAPSHOT)

        assert snapshot.accounts["PlayerOne"].account_key == "PlayerOne"
        assert snapshot.next_servers["PlayerOne"].server_id == "job-1"
        assert snapshot.to_data()["accounts"]["PlayerOne"]["securityToken"] == "cookie"
        assert "account_key" not in snapshot.to_data()["accounts"]["PlayerOne"]

    def test_legacy_last_used_place_id(self):
        data = dict(SNAPSHOT, lastUsedPlaceId=123)
        del data["lastUsedTarget"]
        assert RegistrySnapshot.from_data(data).last_used_target == "123"

    def test_invalid_entry_skipped(self):
        data = {"accounts": {"Good": {"securityToken": "x"}, "Bad": {"username": "no token"}}}
        snapshot = RegistrySnapshot.from_data(data)
        assert list(snapshot.accounts) == ["Good"]

    def test_override_for_missing_account_dropped(self):
        data = {"accounts": {}, "nextServers": {"Ghost": {"targetId": "1", "serverId": "j"}}}
        assert RegistrySnapshot.from_data(data).next_servers == {}

    def test_non_object_rejected(self):
        with pytest.raises(ValueError):
            RegistrySnapshot.from_data(["not", "a", "dict"])


@pytest.mark.unit
def test_encrypted_store_with_wrong_key_is_unreadable():
    with tempfile.TemporaryDirectory() as tmpdir:
        EncryptedSnapshotStore(directory=tmpdir, encryption_key=Fernet.generate_key().decode()).save_snapshot(SNAPSHOT)
        store = EncryptedSnapshotStore(directory=tmpdir, encryption_key=Fernet.generate_key().decode())
        with pytest.raises(ValueError):
            store.load_snapshot()


@pytest.mark.unit
class TestUnreadableOverrides:
    """Test that override entries are validated one by one."""

    def test_invalid_override_skipped(self):
        data = dict(SNAPSHOT, nextServers={"PlayerOne": {"targetId": "920587237"}})

        snapshot = RegistrySnapshot.from_data(data)

        assert list(snapshot.accounts) == ["PlayerOne"]
        assert snapshot.next_servers == {}
        assert snapshot.last_used_target == "920587237"

    def test_non_object_overrides_ignored(self):
        snapshot = RegistrySnapshot.from_data(dict(SNAPSHOT, nextServers=["job-1"]))
        assert list(snapshot.accounts) == ["PlayerOne"]
        assert snapshot.next_servers == {}
