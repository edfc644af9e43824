"""
Registry snapshot storage.

Two backends hold the single serialized registry snapshot: a plain JSON file
compatible with existing ``accounts.json`` files, and a Fernet-encrypted
DiskStore for keeping session tokens off disk in clear text.
"""

import asyncio
import concurrent.futures
import json
import os
import tempfile
import threading
from pathlib import Path
from typing import Any

from cryptography.fernet import Fernet
from key_value.aio.stores.disk import DiskStore
from key_value.aio.wrappers.encryption import FernetEncryptionWrapper

from .logger import logger


class JsonFileSnapshotStore:
    """Snapshot kept as one pretty-printed JSON file."""

    def __init__(self, path: Path | str):
        self._path = Path(path)
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def load_snapshot(self) -> dict[str, Any] | None:
        """
        Read the snapshot file.

        Returns:
            The decoded JSON document, or None if the file does not exist

        Raises:
            OSError: If the file exists but cannot be read
            ValueError: If the file is not valid JSON
        """
        with self._lock:
            if not self._path.exists():
                logger.info(f"No accounts file found at {self._path}")
                return None
            with open(self._path, "r", encoding="utf-8") as f:
                return json.load(f)

    def save_snapshot(self, snapshot: dict[str, Any]) -> bool:
        """Write the snapshot through a temporary file so readers never see a partial file."""
        with self._lock:
            try:
                self._path.parent.mkdir(parents=True, exist_ok=True)
                fd, tmp_name = tempfile.mkstemp(
                    prefix=f".{self._path.name}.", suffix=".tmp", dir=self._path.parent
                )
                try:
                    with os.fdopen(fd, "w", encoding="utf-8") as f:
                        json.dump(snapshot, f, indent=2)
                    os.replace(tmp_name, self._path)
                except BaseException:
                    Path(tmp_name).unlink(missing_ok=True)
                    raise
                return True
            except (OSError, TypeError, ValueError) as e:
                logger.error(f"Error saving accounts to {self._path}: {e}")
                return False


class EncryptedSnapshotStore:
    """DiskStore-based snapshot storage with encryption and thread safety."""

    SNAPSHOT_KEY = "registry_snapshot"

    def __init__(self, directory: Path | str, encryption_key: str | None = None):
        """
        Initialize encrypted storage.

        Args:
            directory: Directory for DiskStore
            encryption_key: Fernet encryption key (base64 encoded string).
                          If None, a new key is generated for this process only.
        """
        self._directory = Path(directory)
        self._lock = threading.Lock()

        if encryption_key:
            fernet = Fernet(encryption_key.encode())
        else:
            fernet = Fernet(Fernet.generate_key())
            logger.warning(
                "Generated new encryption key. Set STORAGE_ENCRYPTION_KEY or the "
                "registry will be unreadable after a restart."
            )

        self._directory.mkdir(parents=True, exist_ok=True, mode=0o700)
        disk_store = DiskStore(directory=str(self._directory))
        self._store = FernetEncryptionWrapper(key_value=disk_store, fernet=fernet)

    def _run_async(self, coro):
        """Thread-safe wrapper for async operations."""
        with self._lock:
            try:
                asyncio.get_running_loop()
            except RuntimeError:
                return asyncio.run(coro)
            # Called from inside an event loop: run on a private loop in a worker thread
            with concurrent.futures.ThreadPoolExecutor(max_workers=1) as executor:
                return executor.submit(asyncio.run, coro).result()

    async def load(self) -> dict[str, Any] | None:
        value = await self._store.get(self.SNAPSHOT_KEY)
        if value is None:
            return None
        if isinstance(value, bytes):
            return json.loads(value.decode("utf-8"))
        return value

    async def save(self, snapshot: dict[str, Any]) -> None:
        await self._store.put(self.SNAPSHOT_KEY, snapshot)

    def load_snapshot(self) -> dict[str, Any] | None:
        """
        Thread-safe sync wrapper for load.

        Raises:
            ValueError: If the stored snapshot cannot be decrypted or decoded
        """
        try:
            return self._run_async(self.load())
        except Exception as e:
            raise ValueError(f"Cannot read encrypted registry snapshot: {e}") from e

    def save_snapshot(self, snapshot: dict[str, Any]) -> bool:
        """Thread-safe sync wrapper for save."""
        try:
            self._run_async(self.save(snapshot))
            return True
        except Exception as e:
            logger.error(f"Error saving encrypted registry snapshot: {e}")
            return False
