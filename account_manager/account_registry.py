"""
Account registry.

Owns every stored credential and the pending server overrides, and writes
the full snapshot back to storage after each mutation. All state sits behind
one lock, so two launches of the same account can never both consume an
override or assign two different tracker IDs.
"""

import threading
import uuid
from datetime import datetime

from .interfaces import IdentityLookupFn, SnapshotStore
from .logger import logger
from .models import Account, AccountIdentity, RegistrySnapshot, ServerOverride, utc_now


class AccountRegistry:
    """Thread-safe store of Roblox accounts with a one-slot override queue per account."""

    def __init__(self, store: SnapshotStore, identity_lookup: IdentityLookupFn | None = None):
        """
        Initialize the registry and load the stored snapshot.

        Args:
            store: Snapshot storage backend
            identity_lookup: Resolves a session token to a remote identity during ``add``
        """
        self._store = store
        self._identity_lookup = identity_lookup
        self._lock = threading.RLock()
        self._accounts: dict[str, Account] = {}
        self._next_servers: dict[str, ServerOverride] = {}
        self._last_used_target: str | None = None
        self._load()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _load(self) -> None:
        """Read the snapshot once; an unreadable snapshot leaves the registry empty."""
        try:
            data = self._store.load_snapshot()
            snapshot = RegistrySnapshot.from_data(data) if data is not None else RegistrySnapshot()
        except (OSError, ValueError) as e:
            logger.error(f"Registry snapshot is unreadable, starting with no accounts: {e}")
            snapshot = RegistrySnapshot()

        with self._lock:
            self._accounts = dict(snapshot.accounts)
            self._next_servers = dict(snapshot.next_servers)
            self._last_used_target = snapshot.last_used_target

        logger.info(f"Loaded {len(self._accounts)} saved accounts")
        if self._last_used_target:
            logger.info(f"Last used Place ID: {self._last_used_target}")

    def snapshot(self) -> RegistrySnapshot:
        """Detached copy of the current registry state."""
        with self._lock:
            return RegistrySnapshot(
                accounts={key: account.model_copy() for key, account in self._accounts.items()},
                last_used_target=self._last_used_target,
                next_servers={key: override.model_copy() for key, override in self._next_servers.items()},
            )

    def _persist(self) -> None:
        """Write the full snapshot. Must be called with the lock held."""
        try:
            saved = self._store.save_snapshot(self.snapshot().to_data())
        except Exception as e:
            logger.error(f"Error saving accounts: {e}", exc_info=True)
            return
        if saved is False:
            logger.error("Accounts could not be saved; keeping in-memory state")
        else:
            logger.debug("Accounts saved successfully")

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    def _unique_key(self, base: str) -> str:
        if base not in self._accounts:
            return base
        suffix = 2
        while f"{base}_{suffix}" in self._accounts:
            suffix += 1
        return f"{base}_{suffix}"

    def add(self, session_token: str, captured_password: str = "") -> str:
        """
        Store a new credential.

        The remote identity decides the key; if it cannot be resolved the
        credential is still stored under a placeholder key. A key that is
        already taken gets a numeric suffix instead of replacing the record.

        Returns:
            The account key the credential was stored under
        """
        identity = None
        if self._identity_lookup is not None:
            try:
                identity = self._identity_lookup(session_token)
            except Exception as e:
                logger.error(f"Error getting account info: {e}")

        if isinstance(identity, AccountIdentity) and (identity.name or identity.user_id):
            username = identity.name or "Unknown"
            user_id = identity.user_id
            base_key = identity.name or f"Account_{identity.user_id}"
        else:
            username = "Unknown"
            user_id = None
            base_key = f"Unknown_{uuid.uuid4().hex[:8]}"

        with self._lock:
            account_key = self._unique_key(base_key)
            if account_key != base_key:
                logger.warning(f"Account key '{base_key}' already exists, storing as '{account_key}'")
            self._accounts[account_key] = Account(
                account_key=account_key,
                username=username,
                user_id=user_id,
                session_token=session_token,
                captured_password=captured_password or "",
            )
            self._persist()

        logger.info(f"Added account: {username} (User ID: {user_id or 'unknown'}) as '{account_key}'")
        return account_key

    def update_session_token(self, account_key: str, session_token: str, captured_password: str = "") -> bool:
        """Replace the session token of an existing account after a fresh login."""
        with self._lock:
            account = self._accounts.get(account_key)
            if account is None:
                return False
            account.session_token = session_token
            if captured_password:
                account.captured_password = captured_password
            self._persist()
        logger.info(f"Refreshed session for account '{account_key}'")
        return True

    def delete(self, account_key: str) -> bool:
        with self._lock:
            if account_key not in self._accounts:
                return False
            del self._accounts[account_key]
            self._next_servers.pop(account_key, None)
            self._persist()
        logger.info(f"Deleted account '{account_key}'")
        return True

    def get(self, account_key: str) -> Account | None:
        """Return a copy of the account, or None if it does not exist."""
        with self._lock:
            account = self._accounts.get(account_key)
            return account.model_copy() if account is not None else None

    def list_accounts(self, group: str | None = None) -> list[Account]:
        """Accounts in insertion order, optionally restricted to one group."""
        with self._lock:
            accounts = [account.model_copy() for account in self._accounts.values()]
        if group is not None:
            accounts = [account for account in accounts if (account.group or "Default") == group]
        return accounts

    def __len__(self) -> int:
        with self._lock:
            return len(self._accounts)

    def __contains__(self, account_key: object) -> bool:
        with self._lock:
            return account_key in self._accounts

    @property
    def last_used_target(self) -> str | None:
        with self._lock:
            return self._last_used_target

    # ------------------------------------------------------------------
    # Operator metadata
    # ------------------------------------------------------------------

    def _set_field(self, account_key: str, field: str, value: str) -> bool:
        with self._lock:
            account = self._accounts.get(account_key)
            if account is None:
                return False
            setattr(account, field, value)
            self._persist()
            return True

    def set_alias(self, account_key: str, alias: str) -> bool:
        return self._set_field(account_key, "alias", alias)

    def set_description(self, account_key: str, description: str) -> bool:
        return self._set_field(account_key, "description", description)

    def set_group(self, account_key: str, group: str) -> bool:
        return self._set_field(account_key, "group", group)

    def get_alias(self, account_key: str) -> str:
        with self._lock:
            account = self._accounts.get(account_key)
            return (account.alias or "") if account else ""

    def get_description(self, account_key: str) -> str:
        with self._lock:
            account = self._accounts.get(account_key)
            return (account.description or "") if account else ""

    # ------------------------------------------------------------------
    # Server overrides
    # ------------------------------------------------------------------

    def set_override(self, account_key: str, target_id: str, server_id: str) -> bool:
        """Make ``account_key`` join ``server_id`` on its next launch of ``target_id``."""
        with self._lock:
            if account_key not in self._accounts:
                return False
            self._next_servers[account_key] = ServerOverride(target_id=target_id, server_id=server_id)
            self._persist()
        logger.info(f"Next server for '{account_key}' set to {server_id} (place {target_id})")
        return True

    def get_override(self, account_key: str) -> ServerOverride | None:
        with self._lock:
            override = self._next_servers.get(account_key)
            return override.model_copy() if override is not None else None

    def consume_override(self, account_key: str, target_id: str) -> ServerOverride | None:
        """
        Remove and return the pending override if it was set for ``target_id``.

        An override for a different target is left in place.
        """
        with self._lock:
            override = self._next_servers.get(account_key)
            if override is None or override.target_id != str(target_id):
                return None
            del self._next_servers[account_key]
            self._persist()
        logger.info(f"Using pending server {override.server_id} for '{account_key}'")
        return override

    # ------------------------------------------------------------------
    # Launch bookkeeping
    # ------------------------------------------------------------------

    def ensure_tracker_id(self, account_key: str) -> str | None:
        """Return the account's browser tracker ID, assigning and saving one on first use."""
        with self._lock:
            account = self._accounts.get(account_key)
            if account is None:
                return None
            if not account.browser_tracker_id:
                account.generate_browser_tracker_id()
                self._persist()
            return account.browser_tracker_id

    def record_launch(self, account_key: str, target_id: str, when: datetime | None = None) -> None:
        with self._lock:
            account = self._accounts.get(account_key)
            if account is not None:
                account.last_used_at = when or utc_now()
            self._last_used_target = str(target_id)
            self._persist()
