"""
Pydantic models for the Roblox account manager.

This module defines the credential records, the pending server overrides,
the persisted registry snapshot and the results handed back to callers.
"""

import random
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from .logger import logger


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# ============================================================================
# Registry Data Models
# ============================================================================


class Account(BaseModel):
    """A stored Roblox session credential and its operator metadata."""

    model_config = ConfigDict(populate_by_name=True)

    account_key: str = Field("", exclude=True, description="Registry key, unique and immutable")
    username: str = Field("Unknown", description="Remote-reported username")
    user_id: str | None = Field(None, alias="userId", description="Roblox user ID")
    session_token: str = Field(..., alias="securityToken", repr=False, description=".ROBLOSECURITY value")
    captured_password: str = Field("", alias="password", repr=False)
    added_at: datetime = Field(default_factory=utc_now, alias="addedAt")
    last_used_at: datetime | None = Field(None, alias="lastUsed")
    browser_tracker_id: str | None = Field(None, alias="browserTrackerId")
    alias: str | None = None
    description: str | None = None
    group: str | None = None

    @field_validator("user_id", "browser_tracker_id", mode="before")
    @classmethod
    def _coerce_identifier(cls, value: Any) -> str | None:
        if value is None or value == "":
            return None
        return str(value)

    @field_validator("captured_password", "username", mode="before")
    @classmethod
    def _none_as_default(cls, value: Any, info) -> Any:
        if value is None:
            return "Unknown" if info.field_name == "username" else ""
        return value

    def generate_browser_tracker_id(self) -> str:
        """Assign a fresh 12-digit browser tracker ID and return it."""
        self.browser_tracker_id = f"{random.randint(100000, 174999)}{random.randint(100000, 899999)}"
        return self.browser_tracker_id

    def to_snapshot(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class ServerOverride(BaseModel):
    """Server an account should join on its next launch of ``target_id``."""

    model_config = ConfigDict(populate_by_name=True)

    target_id: str = Field(..., alias="targetId", description="Place ID the override applies to")
    server_id: str = Field(..., alias="serverId", description="Job ID or private server link")
    set_at: datetime = Field(default_factory=utc_now, alias="setAt")

    @field_validator("target_id", "server_id", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> str:
        return str(value)


_SECTION_KEYS = ("accounts", "nextServers", "next_servers")


class RegistrySnapshot(BaseModel):
    """The persisted unit: every account, every pending override and the last target."""

    model_config = ConfigDict(populate_by_name=True)

    accounts: dict[str, Account] = Field(default_factory=dict)
    last_used_target: str | None = Field(
        None,
        validation_alias=AliasChoices("lastUsedTarget", "lastUsedPlaceId", "last_used_target"),
        serialization_alias="lastUsedTarget",
    )
    next_servers: dict[str, ServerOverride] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("nextServers", "next_servers"),
        serialization_alias="nextServers",
    )

    @field_validator("last_used_target", mode="before")
    @classmethod
    def _coerce_target(cls, value: Any) -> str | None:
        if value is None or value == "":
            return None
        return str(value)

    @classmethod
    def from_data(cls, data: dict[str, Any]) -> "RegistrySnapshot":
        """
        Parse a stored snapshot.

        Older files hold the accounts mapping at the top level with no
        ``accounts`` wrapper; those load with no overrides and no last target.
        Account and override entries that fail validation are skipped, as are
        overrides for accounts that did not load.

        Raises:
            ValueError: If ``data`` is not a JSON object
        """
        if not isinstance(data, dict):
            raise ValueError(f"Snapshot must be a JSON object, got {type(data).__name__}")

        if "accounts" in data:
            raw_accounts = data.get("accounts") or {}
            header = {key: value for key, value in data.items() if key not in _SECTION_KEYS}
            raw_overrides = data.get("nextServers", data.get("next_servers")) or {}
        else:
            raw_accounts = data
            header = {}
            raw_overrides = {}

        if not isinstance(raw_accounts, dict):
            raise ValueError("Snapshot 'accounts' must be a JSON object")

        accounts: dict[str, Account] = {}
        for key, account_data in raw_accounts.items():
            try:
                account = Account.model_validate(account_data)
            except ValidationError as e:
                logger.warning(f"Skipping unreadable account entry '{key}': {e.error_count()} error(s)")
                continue
            account.account_key = key
            accounts[key] = account

        if not isinstance(raw_overrides, dict):
            logger.warning("Ignoring unreadable nextServers section")
            raw_overrides = {}

        next_servers: dict[str, ServerOverride] = {}
        for key, override_data in raw_overrides.items():
            if key not in accounts:
                continue
            try:
                next_servers[key] = ServerOverride.model_validate(override_data)
            except ValidationError as e:
                logger.warning(f"Skipping unreadable server override for '{key}': {e.error_count()} error(s)")

        snapshot = cls.model_validate(header)
        snapshot.accounts = accounts
        snapshot.next_servers = next_servers
        return snapshot

    def to_data(self) -> dict[str, Any]:
        return {
            "accounts": {key: account.to_snapshot() for key, account in self.accounts.items()},
            "lastUsedTarget": self.last_used_target,
            "nextServers": {
                key: override.model_dump(mode="json", by_alias=True)
                for key, override in self.next_servers.items()
            },
        }


# ============================================================================
# Remote Identity Models
# ============================================================================


class AccountIdentity(BaseModel):
    """Identity reported by the remote service for a session token."""

    name: str | None = None
    user_id: str | None = None
    display_name: str | None = None

    @field_validator("user_id", mode="before")
    @classmethod
    def _coerce_user_id(cls, value: Any) -> str | None:
        return None if value is None else str(value)


class UnresolvedIdentity(BaseModel):
    """Neither identity endpoint produced a usable answer."""

    reason: str = "unresolved"


IdentityLookup = AccountIdentity | UnresolvedIdentity


# ============================================================================
# Result Models
# ============================================================================


class LaunchFailure(str, Enum):
    ACCOUNT_NOT_FOUND = "account_not_found"
    INVALID_TARGET = "invalid_target"
    AUTH_EXPIRED = "auth_expired"
    UNEXPECTED = "unexpected"


class LaunchResult(BaseModel):
    """Outcome of a single launch request."""

    success: bool = Field(..., description="True once a launch ticket was issued and dispatched")
    message: str = Field(..., description="Operator-facing explanation")
    reason: LaunchFailure | None = Field(None, description="Failure kind, None on success")

    @classmethod
    def failed(cls, reason: LaunchFailure, message: str) -> "LaunchResult":
        return cls(success=False, message=message, reason=reason)


class CapturedCredential(BaseModel):
    """Session material produced by an interactive login."""

    session_token: str = Field(..., repr=False)
    password: str = Field("", repr=False)


class AccountSummary(BaseModel):
    """Account listing entry as served by the control surface."""

    Username: str
    Alias: str = ""
    Description: str = ""
    Group: str = "Default"

    @classmethod
    def from_account(cls, account: Account) -> "AccountSummary":
        return cls(
            Username=account.account_key or account.username,
            Alias=account.alias or "",
            Description=account.description or "",
            Group=account.group or "Default",
        )
