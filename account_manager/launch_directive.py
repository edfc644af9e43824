"""
Launch directive formatting.

The ``roblox-player:`` string handed to the OS is parsed by the Roblox
bootstrapper segment by segment, so the order of the ``key:value`` segments
and the encoding of the place launcher URL must not change.
"""

import re
from urllib.parse import quote

LAUNCH_SCHEME = "roblox-player:1"
PLACE_LAUNCHER_URL = "https://assetgame.roblox.com/game/PlaceLauncher.ashx"
LINK_CODE_MARKER = "privateServerLinkCode="

# Characters encodeURIComponent leaves alone, beyond ASCII letters and digits
_URI_COMPONENT_SAFE = "-_.!~*'()"
_LINK_CODE_RE = re.compile(re.escape(LINK_CODE_MARKER) + r"(.+)")


def encode_uri_component(value: str) -> str:
    return quote(value, safe=_URI_COMPONENT_SAFE)


def format_launch_directive(
    base_request_url: str, ticket: str, tracker_id: str, launch_time: int
) -> str:
    """
    Build the directive string for the ``roblox-player`` URL handler.

    Args:
        base_request_url: Place launcher request URL (encoded here)
        ticket: One-time authentication ticket
        tracker_id: Browser tracker ID of the launching account
        launch_time: Launch time in epoch seconds

    Returns:
        The directive, segments in the fixed order the handler expects
    """
    segments = [
        LAUNCH_SCHEME,
        "launchmode:play",
        f"gameinfo:{ticket}",
        f"launchtime:{launch_time}",
        f"placelauncherurl:{encode_uri_component(base_request_url)}",
        f"browsertrackerid:{tracker_id}",
        "robloxLocale:en_us",
        "gameLocale:en_us",
        "channel:",
        "LaunchExp:InApp",
    ]
    return "+".join(segments)


def private_game_request_url(place_id: str, access_code: str, link_code: str) -> str:
    return (
        f"{PLACE_LAUNCHER_URL}?request=RequestPrivateGame"
        f"&placeId={place_id}&accessCode={access_code}&linkCode={link_code}"
    )


def follow_user_request_url(user_id: str) -> str:
    return f"{PLACE_LAUNCHER_URL}?request=RequestFollowUser&userId={user_id}"


def game_request_url(place_id: str, tracker_id: str, job_id: str = "") -> str:
    """Standard join; a job ID pins the request to one server instance."""
    request = "RequestGameJob" if job_id else "RequestGame"
    url = f"{PLACE_LAUNCHER_URL}?request={request}&browserTrackerId={tracker_id}&placeId={place_id}"
    if job_id:
        url += f"&gameId={job_id}"
    return url + "&isPlayTogetherGame=false"


def extract_link_code(server_id: str) -> str | None:
    """Return the private server link code embedded in ``server_id``, if any."""
    if not server_id:
        return None
    match = _LINK_CODE_RE.search(server_id)
    return match.group(1) if match else None


def redact_directive(directive: str) -> str:
    """Directive with the ticket blanked, for logging."""
    return re.sub(r"gameinfo:[^+]*", "gameinfo:<redacted>", directive)
