"""
Application settings.

Settings are read from the environment once at startup and passed by
reference to the components that need them.
"""

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/111.0.0.0 Safari/537.36"
)


class Settings(BaseModel):
    """Immutable runtime configuration."""

    model_config = ConfigDict(frozen=True)

    accounts_file: Path = Field(Path("data") / "accounts.json", description="JSON snapshot path")
    storage_backend: Literal["json", "encrypted"] = Field("json", description="Snapshot backend")
    storage_directory: Path = Field(
        Path.home() / ".roblox-account-manager" / "registry",
        description="DiskStore directory for the encrypted backend",
    )
    encryption_key: str | None = Field(None, repr=False, description="Fernet key for the encrypted backend")
    api_host: str = "127.0.0.1"
    api_port: int = Field(7963, ge=1, le=65535)
    api_password: str | None = Field(None, repr=False, description="Shared secret for the control surface")
    request_timeout: float = Field(10.0, gt=0, description="Ceiling for each remote call, in seconds")
    capture_timeout: float = Field(300.0, gt=0, description="Ceiling for interactive credential capture")
    capture_mode: Literal["browser", "paste"] = Field(
        "browser", description="Selenium-driven Chrome login, or paste the cookie on the terminal"
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    log_file: Path | None = None
    user_agent: str = DEFAULT_USER_AGENT

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        """Build settings from environment variables, keeping defaults for unset ones."""
        env = os.environ if environ is None else environ
        mapping = {
            "ACCOUNTS_FILE": "accounts_file",
            "STORAGE_BACKEND": "storage_backend",
            "STORAGE_DIR": "storage_directory",
            "STORAGE_ENCRYPTION_KEY": "encryption_key",
            "API_HOST": "api_host",
            "API_PORT": "api_port",
            "API_PASSWORD": "api_password",
            "REQUEST_TIMEOUT": "request_timeout",
            "CAPTURE_TIMEOUT": "capture_timeout",
            "CAPTURE_MODE": "capture_mode",
            "LOG_LEVEL": "log_level",
            "LOG_FILE": "log_file",
            "USER_AGENT": "user_agent",
        }
        values = {field: env[var] for var, field in mapping.items() if env.get(var)}
        for field in ("storage_backend", "capture_mode"):
            if field in values:
                values[field] = values[field].lower()
        if "log_level" in values:
            values["log_level"] = values["log_level"].upper()
        return cls(**values)
