"""Dependency injection container."""

from .account_registry import AccountRegistry
from .browser_capture import AccountBrowser, BrowserCredentialCapture, PastedCookieCapture
from .config import Settings
from .game_launcher import GameLauncher, SystemProcessLauncher
from .interfaces import AccountBrowserOpener, CredentialCapture, ProcessLauncher, SnapshotStore
from .logger import logger, setup_logger
from .roblox_client import RobloxAuthClient
from .snapshot_storage import EncryptedSnapshotStore, JsonFileSnapshotStore


class Container:
    """Lazily built singletons wired from one Settings value."""

    def __init__(self, settings: Settings | None = None):
        self._settings = settings
        self._snapshot_store: SnapshotStore | None = None
        self._auth_client: RobloxAuthClient | None = None
        self._registry: AccountRegistry | None = None
        self._process_launcher: ProcessLauncher | None = None
        self._game_launcher: GameLauncher | None = None
        self._credential_capture: CredentialCapture | None = None
        self._account_browser: AccountBrowserOpener | None = None

    @property
    def settings(self) -> Settings:
        """Get Settings instance (read from the environment on first use)."""
        if self._settings is None:
            self._settings = Settings.from_env()
            setup_logger(level=self._settings.log_level, log_file=self._settings.log_file)
        return self._settings

    @property
    def snapshot_store(self) -> SnapshotStore:
        """Get the configured snapshot storage backend (singleton)."""
        if self._snapshot_store is None:
            settings = self.settings
            if settings.storage_backend == "encrypted":
                logger.info(f"Using encrypted registry storage in {settings.storage_directory}")
                self._snapshot_store = EncryptedSnapshotStore(
                    directory=settings.storage_directory, encryption_key=settings.encryption_key
                )
            else:
                logger.info(f"Using registry file {settings.accounts_file}")
                self._snapshot_store = JsonFileSnapshotStore(settings.accounts_file)
        return self._snapshot_store

    @property
    def auth_client(self) -> RobloxAuthClient:
        """Get RobloxAuthClient instance (singleton)."""
        if self._auth_client is None:
            self._auth_client = RobloxAuthClient(
                timeout=self.settings.request_timeout, user_agent=self.settings.user_agent
            )
        return self._auth_client

    @property
    def registry(self) -> AccountRegistry:
        """Get AccountRegistry instance (singleton)."""
        if self._registry is None:
            self._registry = AccountRegistry(self.snapshot_store, identity_lookup=self.auth_client.lookup_identity)
        return self._registry

    @property
    def process_launcher(self) -> ProcessLauncher:
        if self._process_launcher is None:
            self._process_launcher = SystemProcessLauncher()
        return self._process_launcher

    @property
    def game_launcher(self) -> GameLauncher:
        """Get GameLauncher instance (singleton)."""
        if self._game_launcher is None:
            self._game_launcher = GameLauncher(self.registry, self.auth_client, self.process_launcher)
        return self._game_launcher

    @property
    def credential_capture(self) -> CredentialCapture:
        """Get the configured interactive login (singleton)."""
        if self._credential_capture is None:
            settings = self.settings
            if settings.capture_mode == "paste":
                self._credential_capture = PastedCookieCapture(timeout=settings.capture_timeout)
            else:
                self._credential_capture = BrowserCredentialCapture(
                    timeout=settings.capture_timeout, user_agent=settings.user_agent
                )
        return self._credential_capture

    @property
    def account_browser(self) -> AccountBrowserOpener:
        if self._account_browser is None:
            self._account_browser = AccountBrowser(user_agent=self.settings.user_agent)
        return self._account_browser


# Global container instance
container = Container()
