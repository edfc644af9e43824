"""Interfaces and protocols for dependency injection."""

from typing import Any, Protocol

from .models import CapturedCredential, IdentityLookup


class SnapshotStore(Protocol):
    """Durable storage for the serialized registry snapshot."""

    def load_snapshot(self) -> dict[str, Any] | None:
        """Return the stored snapshot, or None when nothing has been saved yet."""
        ...

    def save_snapshot(self, snapshot: dict[str, Any]) -> bool:
        """Replace the stored snapshot. Returns False when the write failed."""
        ...


class ProcessLauncher(Protocol):
    """Hands a launch directive to the operating system's URL handler."""

    def invoke(self, directive: str) -> None:
        ...


class CredentialCapture(Protocol):
    """Interactive login that yields a session credential."""

    def capture_credential(self) -> CapturedCredential:
        """Block until the operator logs in. Raises TimeoutError when it takes too long."""
        ...


class AccountBrowserOpener(Protocol):
    """Opens an interactive browser session logged in with a stored credential."""

    def open(self, session_token: str) -> Any:
        ...


class IdentityLookupFn(Protocol):
    def __call__(self, session_token: str) -> IdentityLookup:
        ...


class AccessCodeExtractor(Protocol):
    """Pulls a private server access code out of a game page."""

    def __call__(self, html: str) -> str | None:
        ...
