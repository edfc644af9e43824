"""Unit tests for the account registry."""

from unittest.mock import Mock

import pytest

from account_manager.account_registry import AccountRegistry
from account_manager.models import AccountIdentity, UnresolvedIdentity


@pytest.mark.unit
class TestAddAccount:
    """Test storing new credentials."""

    def test_add_uses_remote_name(self, registry, store):
        key = registry.add("cookie-1", "hunter2")

        assert key == "PlayerOne"
        account = registry.get(key)
        assert account.user_id == "1001"
        assert account.session_token == "cookie-1"
        assert account.captured_password == "hunter2"
        assert store.data["accounts"]["PlayerOne"]["securityToken"] == "cookie-1"

    def test_duplicate_name_gets_suffix(self, registry):
        assert registry.add("cookie-1") == "PlayerOne"
        assert registry.add("cookie-2") == "PlayerOne_2"
        assert registry.add("cookie-3") == "PlayerOne_3"
        assert registry.get("PlayerOne").session_token == "cookie-1"
        assert len(registry) == 3

    def test_id_only_identity(self, store):
        lookup = Mock(return_value=AccountIdentity(user_id=55))
        registry = AccountRegistry(store, identity_lookup=lookup)
        assert registry.add("cookie") == "Account_55"

    def test_unresolved_identity_still_stores(self, store):
        registry = AccountRegistry(store, identity_lookup=Mock(return_value=UnresolvedIdentity()))
        key = registry.add("cookie")
        assert key.startswith("Unknown_")
        assert registry.get(key).username == "Unknown"

    def test_lookup_exception_still_stores(self, store):
        registry = AccountRegistry(store, identity_lookup=Mock(side_effect=RuntimeError("boom")))
        assert registry.add("cookie").startswith("Unknown_")

    def test_update_session_token(self, registry):
        key = registry.add("old")
        assert registry.update_session_token(key, "new") is True
        assert registry.get(key).session_token == "new"
        assert registry.update_session_token("missing", "new") is False


@pytest.mark.unit
class TestRegistryQueries:
    """Test listing, metadata and deletion."""

    def test_insertion_order(self, store):
        names = iter(["Charlie", "Alpha", "Bravo"])
        registry = AccountRegistry(store, identity_lookup=lambda token: AccountIdentity(name=next(names)))
        for token in ("a", "b", "c"):
            registry.add(token)
        assert [account.account_key for account in registry.list_accounts()] == ["Charlie", "Alpha", "Bravo"]

    def test_group_filter(self, registry):
        key = registry.add("cookie-1")
        other = registry.add("cookie-2")
        registry.set_group(other, "Alts")

        assert [a.account_key for a in registry.list_accounts(group="Alts")] == [other]
        assert [a.account_key for a in registry.list_accounts(group="Default")] == [key]

    def test_get_returns_copy(self, registry):
        key = registry.add("cookie")
        registry.get(key).alias = "changed"
        assert registry.get_alias(key) == ""

    def test_metadata_on_missing_account(self, registry):
        assert registry.set_alias("ghost", "x") is False
        assert registry.set_description("ghost", "x") is False
        assert registry.get_alias("ghost") == ""
        assert registry.get_description("ghost") == ""

    def test_metadata_roundtrip(self, registry):
        key = registry.add("cookie")
        registry.set_alias(key, "main")
        registry.set_description(key, "farm account")
        assert registry.get_alias(key) == "main"
        assert registry.get_description(key) == "farm account"

    def test_delete_drops_override(self, registry, store):
        key = registry.add("cookie")
        registry.set_override(key, "100", "job-1")

        assert registry.delete(key) is True

        assert key not in registry
        assert store.data["nextServers"] == {}
        assert registry.delete(key) is False

    def test_override_requires_account(self, registry):
        assert registry.set_override("ghost", "1", "job") is False
        assert registry.get_override("ghost") is None


@pytest.mark.unit
class TestOverrides:
    """Test one-shot server overrides."""

    def test_consume_matching_target(self, registry):
        key = registry.add("cookie")
        registry.set_override(key, "100", "job-1")

        override = registry.consume_override(key, "100")

        assert override.server_id == "job-1"
        assert registry.get_override(key) is None
        assert registry.consume_override(key, "100") is None

    def test_other_target_keeps_override(self, registry):
        key = registry.add("cookie")
        registry.set_override(key, "100", "job-1")

        assert registry.consume_override(key, "200") is None
        assert registry.get_override(key).server_id == "job-1"

    def test_set_replaces_previous(self, registry):
        key = registry.add("cookie")
        registry.set_override(key, "100", "job-1")
        registry.set_override(key, "100", "job-2")
        assert registry.consume_override(key, "100").server_id == "job-2"


@pytest.mark.unit
class TestPersistence:
    """Test snapshot loading and saving."""

    def test_tracker_id_assigned_once_and_reloaded(self, registry, store):
        key = registry.add("cookie")
        tracker = registry.ensure_tracker_id(key)

        assert len(tracker) == 12 and tracker.isdigit()
        assert registry.ensure_tracker_id(key) == tracker

        reloaded = AccountRegistry(store)
        assert reloaded.ensure_tracker_id(key) == tracker

    def test_record_launch(self, registry, store):
        key = registry.add("cookie")
        registry.record_launch(key, "920587237")

        assert registry.last_used_target == "920587237"
        assert registry.get(key).last_used_at is not None
        assert store.data["lastUsedTarget"] == "920587237"

    def test_corrupt_snapshot_starts_empty(self):
        store = Mock()
        store.load_snapshot = Mock(side_effect=ValueError("bad json"))
        registry = AccountRegistry(store)
        assert len(registry) == 0

    def test_failed_save_keeps_memory_state(self, make_store, identity_lookup):
        store = make_store(fail_saves=True)
        registry = AccountRegistry(store, identity_lookup=identity_lookup)

        key = registry.add("cookie")

        assert key in registry
        assert len(store.saves) == 1
        assert store.data is None

    def test_legacy_snapshot_loads(self, make_store):
        store = make_store(
            {
                "Old": {"username": "Old", "userId": 9, "securityToken": "tok", "browserTrackerId": 123456123456},
            }
        )
        registry = AccountRegistry(store)

        account = registry.get("Old")
        assert account.user_id == "9"
        assert account.browser_tracker_id == "123456123456"
        assert registry.last_used_target is None

    def test_bad_override_does_not_drop_accounts(self, make_store):
        store = make_store(
            {
                "accounts": {
                    "PlayerOne": {"username": "PlayerOne", "securityToken": "tok-1"},
                    "PlayerTwo": {"username": "PlayerTwo", "securityToken": "tok-2"},
                },
                "lastUsedTarget": "100",
                "nextServers": {
                    "PlayerOne": {"targetId": "1"},
                    "PlayerTwo": {"targetId": "100", "serverId": "job-2"},
                },
            }
        )

        registry = AccountRegistry(store)

        assert len(registry) == 2
        assert registry.get_override("PlayerOne") is None
        assert registry.get_override("PlayerTwo").server_id == "job-2"
        assert registry.last_used_target == "100"

    def test_full_round_trip(self, store):
        names = iter(["Alpha", "Bravo", "Charlie"])
        registry = AccountRegistry(store, identity_lookup=lambda token: AccountIdentity(name=next(names), user_id=7))
        registry.add("tok-a", "pw-a")
        registry.add("tok-b")
        registry.add("tok-c", "pw-c")

        registry.set_alias("Alpha", "main")
        registry.set_description("Alpha", "farm account")
        registry.set_group("Bravo", "Alts")
        registry.ensure_tracker_id("Alpha")
        registry.ensure_tracker_id("Charlie")
        registry.record_launch("Alpha", "920587237")
        registry.set_override("Alpha", "100", "job-1")
        registry.set_override("Charlie", "200", "privateServerLinkCode=555")

        reloaded = AccountRegistry(store)

        assert reloaded.snapshot() == registry.snapshot()
        assert reloaded.snapshot().to_data() == registry.snapshot().to_data()
        assert [a.account_key for a in reloaded.list_accounts()] == ["Alpha", "Bravo", "Charlie"]
        alpha = reloaded.get("Alpha")
        assert alpha.captured_password == "pw-a"
        assert alpha.last_used_at == registry.get("Alpha").last_used_at
        assert reloaded.get_override("Charlie").set_at == registry.get_override("Charlie").set_at
