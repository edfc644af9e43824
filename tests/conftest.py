"""Pytest configuration and shared fixtures."""

import copy
from unittest.mock import Mock

import pytest

from account_manager.account_registry import AccountRegistry
from account_manager.game_launcher import GameLauncher
from account_manager.models import AccountIdentity
from account_manager.roblox_client import RobloxAuthClient

FIXED_EPOCH = 1700000000


class MemorySnapshotStore:
    """In-memory snapshot store that records every save."""

    def __init__(self, data: dict | None = None, fail_saves: bool = False):
        self.data = copy.deepcopy(data)
        self.fail_saves = fail_saves
        self.saves: list[dict] = []

    def load_snapshot(self) -> dict | None:
        return copy.deepcopy(self.data)

    def save_snapshot(self, snapshot: dict) -> bool:
        self.saves.append(copy.deepcopy(snapshot))
        if self.fail_saves:
            return False
        self.data = copy.deepcopy(snapshot)
        return True


@pytest.fixture
def store() -> MemorySnapshotStore:
    return MemorySnapshotStore()


@pytest.fixture
def identity_lookup() -> Mock:
    """Identity lookup that reports a fixed account."""
    return Mock(return_value=AccountIdentity(name="PlayerOne", user_id=1001, display_name="Player One"))


@pytest.fixture
def registry(store: MemorySnapshotStore, identity_lookup: Mock) -> AccountRegistry:
    return AccountRegistry(store, identity_lookup=identity_lookup)


@pytest.fixture
def mock_auth_client() -> Mock:
    """Auth client that always hands out the same ticket."""
    client = Mock(spec=RobloxAuthClient)
    client.fetch_launch_ticket = Mock(return_value="TICKET")
    client.resolve_private_access_code = Mock(return_value="aaaa-bbbb-cccc-dddd-eeee")
    return client


@pytest.fixture
def process_launcher() -> Mock:
    launcher = Mock()
    launcher.invoke = Mock()
    return launcher


@pytest.fixture
def game_launcher(registry, mock_auth_client, process_launcher) -> GameLauncher:
    return GameLauncher(registry, mock_auth_client, process_launcher, clock=lambda: FIXED_EPOCH)


@pytest.fixture
def make_store():
    """Factory for snapshot stores preloaded with data."""
    return MemorySnapshotStore
