"""
Roblox web API client.

Turns a stored ``.ROBLOSECURITY`` session token into a one-time launch
ticket, resolves private server link codes into access codes, and looks up
the identity behind a token. The client keeps no state between calls; every
call performs the sub-steps it depends on and every remote call is bounded
by a timeout.
"""

import re
from collections.abc import Iterable
from typing import Any

import requests

from .config import DEFAULT_USER_AGENT
from .interfaces import AccessCodeExtractor
from .logger import logger
from .models import AccountIdentity, IdentityLookup, UnresolvedIdentity

# Endpoints
AUTH_TICKET_URL = "https://auth.roblox.com/v1/authentication-ticket/"
USERS_AUTHENTICATED_URL = "https://users.roblox.com/v1/users/authenticated"
MOBILE_USERINFO_URL = "https://www.roblox.com/mobileapi/userinfo"
GAME_PAGE_URL_TEMPLATE = "https://www.roblox.com/games/{place_id}"
LAUNCH_REFERER = "https://www.roblox.com/games/4924922222/Brookhaven-RP"

CSRF_HEADER = "x-csrf-token"
TICKET_HEADER = "rbx-authentication-ticket"

DEFAULT_TIMEOUT = 10.0

_ACCESS_CODE_RE = re.compile(r"Roblox\.GameLauncher\.joinPrivateGame\(\d+\,\s*'(\w+\-\w+\-\w+\-\w+\-\w+)'")


class AuthProtocolError(RuntimeError):
    """A step of the Roblox authentication handshake failed."""


class NoTokenError(AuthProtocolError):
    """The CSRF handshake token could not be obtained."""


class NoTicketError(AuthProtocolError):
    """The launch ticket could not be obtained."""


class NoAccessCodeError(AuthProtocolError):
    """A private server link code could not be resolved."""


def extract_access_code(html: str) -> str | None:
    """Find the private server access code in a game page."""
    match = _ACCESS_CODE_RE.search(html or "")
    return match.group(1) if match else None


def find_header(headers: Any, name: str) -> str | None:
    """Case-insensitive header lookup; Roblox responses vary the casing."""
    if not headers:
        return None
    wanted = name.lower()
    items: Iterable = headers.items() if hasattr(headers, "items") else headers
    for key, value in items:
        if key.lower() == wanted and value:
            return value
    return None


class RobloxAuthClient:
    """Client for the Roblox authentication handshake."""

    def __init__(
        self,
        http: Any = requests,
        timeout: float = DEFAULT_TIMEOUT,
        user_agent: str = DEFAULT_USER_AGENT,
        access_code_extractor: AccessCodeExtractor = extract_access_code,
    ):
        """
        Initialize the client.

        Args:
            http: Object exposing ``get``/``post`` with the ``requests`` signature.
                  The module itself is used so no cookie jar is shared between accounts.
            timeout: Ceiling in seconds for each remote call
            user_agent: User-Agent header sent with every request
            access_code_extractor: Strategy that pulls an access code out of a game page
        """
        self._http = http
        self._timeout = timeout
        self._user_agent = user_agent
        self._extract_access_code = access_code_extractor

    def _base_headers(self, session_token: str) -> dict[str, str]:
        return {
            "Cookie": f".ROBLOSECURITY={session_token}",
            "User-Agent": self._user_agent,
        }

    def fetch_handshake_token(self, session_token: str) -> str:
        """
        Obtain the CSRF token required by the ticket endpoint.

        Roblox rejects the first, token-less request (normally with 403) and
        hands out the token in the ``x-csrf-token`` response header; that
        rejection is the expected outcome here.

        Raises:
            NoTokenError: If the request fails or carries no token header
        """
        headers = self._base_headers(session_token)
        headers["Referer"] = LAUNCH_REFERER
        try:
            response = self._http.post(AUTH_TICKET_URL, headers=headers, timeout=self._timeout)
        except requests.RequestException as e:
            raise NoTokenError(f"CSRF handshake request failed: {e}") from e

        token = find_header(response.headers, CSRF_HEADER)
        if not token:
            raise NoTokenError(f"No CSRF token in handshake response (status {response.status_code})")
        if response.status_code != 403:
            logger.debug(f"CSRF token delivered with unexpected status {response.status_code}")
        return token

    def fetch_launch_ticket(self, session_token: str) -> str:
        """
        Obtain a one-time authentication ticket for launching the client.

        Raises:
            NoTicketError: If the handshake or the ticket request fails
        """
        try:
            csrf_token = self.fetch_handshake_token(session_token)
        except NoTokenError as e:
            raise NoTicketError(f"Cannot request a launch ticket: {e}") from e

        headers = self._base_headers(session_token)
        headers.update(
            {
                "Referer": LAUNCH_REFERER,
                "X-CSRF-TOKEN": csrf_token,
                "Content-Type": "application/json",
                "Accept": "application/json",
            }
        )
        try:
            response = self._http.post(AUTH_TICKET_URL, headers=headers, json={}, timeout=self._timeout)
        except requests.RequestException as e:
            raise NoTicketError(f"Launch ticket request failed: {e}") from e

        logger.debug(f"Launch ticket response status: {response.status_code}")
        ticket = find_header(response.headers, TICKET_HEADER)
        if not ticket:
            raise NoTicketError(f"No authentication ticket in response (status {response.status_code})")
        return ticket

    def resolve_private_access_code(self, session_token: str, target_id: str, link_code: str) -> str:
        """
        Resolve a private server link code into the access code used to join.

        The access code is only published inside the game page's HTML, so the
        page is fetched with the link code and scraped.

        Raises:
            NoAccessCodeError: If the page cannot be fetched or holds no access code
        """
        try:
            csrf_token = self.fetch_handshake_token(session_token)
        except NoTokenError as e:
            raise NoAccessCodeError(f"Cannot resolve private server: {e}") from e

        headers = self._base_headers(session_token)
        headers.update({"X-CSRF-TOKEN": csrf_token, "Referer": LAUNCH_REFERER})
        try:
            response = self._http.get(
                GAME_PAGE_URL_TEMPLATE.format(place_id=target_id),
                params={"privateServerLinkCode": link_code},
                headers=headers,
                timeout=self._timeout,
            )
        except requests.RequestException as e:
            raise NoAccessCodeError(f"Private server page request failed: {e}") from e

        access_code = self._extract_access_code(response.text)
        if not access_code:
            raise NoAccessCodeError(f"No access code found on the page for place {target_id}")
        return access_code

    def _get_json(self, url: str, session_token: str) -> dict | None:
        try:
            response = self._http.get(url, headers=self._base_headers(session_token), timeout=self._timeout)
        except requests.RequestException as e:
            logger.warning(f"Identity request to {url} failed: {e}")
            return None
        if not response.ok:
            logger.debug(f"Identity request to {url} returned status {response.status_code}")
            return None
        try:
            data = response.json()
        except ValueError:
            logger.warning(f"Identity response from {url} was not JSON")
            return None
        return data if isinstance(data, dict) else None

    def lookup_identity(self, session_token: str) -> IdentityLookup:
        """
        Look up the account behind a session token.

        Tries the users API first and the legacy mobile endpoint second.
        """
        data = self._get_json(USERS_AUTHENTICATED_URL, session_token)
        if data and (data.get("name") or data.get("id") is not None):
            logger.info(f"Retrieved account info for {data.get('name')}")
            return AccountIdentity(
                name=data.get("name"), user_id=data.get("id"), display_name=data.get("displayName")
            )

        data = self._get_json(MOBILE_USERINFO_URL, session_token)
        if data and (data.get("UserName") or data.get("UserID") is not None):
            logger.info(f"Retrieved account info from fallback endpoint: {data.get('UserName')}")
            return AccountIdentity(
                name=data.get("UserName"), user_id=data.get("UserID"), display_name=data.get("UserName")
            )

        logger.error("Failed to get account info from both identity endpoints")
        return UnresolvedIdentity(reason="identity endpoints returned no usable data")
