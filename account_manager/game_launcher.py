"""
Game launch orchestration.

Services one launch request end to end: validates it, applies a pending
server override, obtains a launch ticket, resolves private server links,
formats the ``roblox-player`` directive and hands it to the OS.
"""

import time
import webbrowser
from collections.abc import Callable

from .account_registry import AccountRegistry
from .interfaces import ProcessLauncher
from .launch_directive import (
    extract_link_code,
    follow_user_request_url,
    format_launch_directive,
    game_request_url,
    private_game_request_url,
    redact_directive,
)
from .logger import logger
from .models import LaunchFailure, LaunchResult
from .roblox_client import NoAccessCodeError, NoTicketError, RobloxAuthClient

AUTH_EXPIRED_MESSAGE = (
    "ERROR: Failed to get authentication ticket. Your account session may have expired. "
    "Please log in again."
)
INVALID_TARGET_MESSAGE = "Invalid Place ID. Please enter a valid numeric ID."
LAUNCH_STARTED_MESSAGE = "Game launch initiated. Roblox should start momentarily."


class SystemProcessLauncher:
    """Opens launch directives with the OS default URL handler."""

    def invoke(self, directive: str) -> None:
        try:
            opened = webbrowser.open(directive)
        except Exception as e:
            logger.error(f"Error launching Roblox: {e}")
            return
        if opened:
            logger.info("Roblox launch command executed")
        else:
            logger.warning("No handler accepted the roblox-player directive; is Roblox installed?")


def parse_target_id(target_id: str | int | None) -> str | None:
    """Normalise a place/user ID, or return None if it is not a positive integer."""
    text = str(target_id).strip() if target_id is not None else ""
    if not (text.isascii() and text.isdigit()) or int(text) <= 0:
        return None
    return text


class GameLauncher:
    """Launches Roblox with a stored account."""

    def __init__(
        self,
        registry: AccountRegistry,
        auth_client: RobloxAuthClient,
        process_launcher: ProcessLauncher,
        clock: Callable[[], float] = time.time,
    ):
        self._registry = registry
        self._auth_client = auth_client
        self._process_launcher = process_launcher
        self._clock = clock

    def launch(
        self,
        account_key: str,
        target_id: str | int,
        server_id: str = "",
        follow_user: bool = False,
        join_private: bool = False,
    ) -> LaunchResult:
        """
        Launch a game with the specified account.

        Args:
            account_key: Registry key of the account
            target_id: Place ID, or the user ID to follow when ``follow_user`` is set
            server_id: Job ID or ``privateServerLinkCode=...`` link; overrides are
                       only consulted when this is empty
            follow_user: Join whichever server ``target_id`` (a user) is in
            join_private: Treat ``server_id`` as a private server access code

        Returns:
            LaunchResult; this method never raises
        """
        try:
            return self._launch(account_key, target_id, server_id or "", follow_user, join_private)
        except Exception as e:
            logger.error(f"Error launching game: {e}", exc_info=True)
            return LaunchResult.failed(LaunchFailure.UNEXPECTED, f"Error: {e}")

    def follow_user(self, account_key: str, user_id: str | int) -> LaunchResult:
        return self.launch(account_key, user_id, follow_user=True)

    def _launch(
        self, account_key: str, target_id: str | int, server_id: str, follow_user: bool, join_private: bool
    ) -> LaunchResult:
        account = self._registry.get(account_key)
        if account is None:
            logger.error(f'Account "{account_key}" not found')
            return LaunchResult.failed(LaunchFailure.ACCOUNT_NOT_FOUND, f'Account "{account_key}" not found')

        place_id = parse_target_id(target_id)
        if place_id is None:
            return LaunchResult.failed(LaunchFailure.INVALID_TARGET, INVALID_TARGET_MESSAGE)

        if not server_id:
            override = self._registry.consume_override(account_key, place_id)
            if override is not None:
                server_id = override.server_id

        logger.info(f"Launching game for {account_key} (PlaceID: {place_id}, JobID: {server_id or 'Default'})")

        tracker_id = self._registry.ensure_tracker_id(account_key)
        if tracker_id is None:
            return LaunchResult.failed(LaunchFailure.ACCOUNT_NOT_FOUND, f'Account "{account_key}" not found')

        try:
            ticket = self._auth_client.fetch_launch_ticket(account.session_token)
        except NoTicketError as e:
            logger.error(f"Failed to get authentication ticket for {account_key}: {e}")
            return LaunchResult.failed(LaunchFailure.AUTH_EXPIRED, AUTH_EXPIRED_MESSAGE)
        logger.info("Successfully obtained authentication ticket")

        access_code = server_id
        link_code = extract_link_code(server_id)
        if link_code:
            try:
                access_code = self._auth_client.resolve_private_access_code(
                    account.session_token, place_id, link_code
                )
                join_private = True
            except NoAccessCodeError as e:
                logger.warning(f"Could not resolve private server link, joining with it as-is: {e}")
                access_code = server_id

        if join_private:
            base_url = private_game_request_url(place_id, access_code, link_code or "")
        elif follow_user:
            base_url = follow_user_request_url(place_id)
        else:
            base_url = game_request_url(place_id, tracker_id, server_id)

        directive = format_launch_directive(base_url, ticket, tracker_id, int(self._clock()))

        self._registry.record_launch(account_key, place_id)

        logger.debug(f"Launching with URL: {redact_directive(directive)}")
        try:
            self._process_launcher.invoke(directive)
        except Exception as e:
            logger.error(f"Error launching Roblox: {e}")

        return LaunchResult(success=True, message=LAUNCH_STARTED_MESSAGE)
