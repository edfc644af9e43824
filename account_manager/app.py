"""
Roblox Account Manager control API.

Plain-text/JSON endpoints compatible with existing account-manager clients.
Every route is a thin pass-through to the account registry or the game
launcher; when a password is configured every path except ``/health`` needs
it as the ``Password`` query parameter.
"""

from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, Query, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.middleware.base import BaseHTTPMiddleware

from .account_registry import AccountRegistry
from .container import Container, container
from .game_launcher import GameLauncher
from .logger import logger
from .models import AccountSummary, LaunchFailure, LaunchResult


class PasswordMiddleware(BaseHTTPMiddleware):
    """Middleware to validate the ``Password`` query parameter."""

    def __init__(self, app, password: str):
        super().__init__(app)
        self._password = password

    async def dispatch(self, request: Request, call_next):
        # Exempt health check from password requirement
        if request.url.path == "/health":
            return await call_next(request)

        provided = request.query_params.get("Password") or request.query_params.get("password")
        if not provided or provided != self._password:
            client_host = request.client.host if request.client else "unknown"
            logger.warning(f"Unauthorized API access attempt from {client_host} to {request.url.path}")
            return PlainTextResponse("Unauthorized: Invalid or missing password", status_code=401)

        return await call_next(request)


def get_registry(request: Request) -> AccountRegistry:
    return request.app.state.container.registry


def get_game_launcher(request: Request) -> GameLauncher:
    return request.app.state.container.game_launcher


def _missing(*names: str) -> PlainTextResponse:
    if len(names) == 1:
        message = f"{names[0]} is required"
    else:
        message = f"{', '.join(names[:-1])} and {names[-1]} are required"
    return PlainTextResponse(message, status_code=400)


def _launch_response(result: LaunchResult, success_text: str) -> PlainTextResponse:
    if result.success:
        return PlainTextResponse(success_text)
    status = 404 if result.reason == LaunchFailure.ACCOUNT_NOT_FOUND else 400
    return PlainTextResponse(result.message, status_code=status)


router = APIRouter()


# ============================================================================
# Health
# ============================================================================

@router.get("/health")
def health(request: Request, registry: AccountRegistry = Depends(get_registry)) -> JSONResponse:
    """Liveness check, never password protected."""
    return JSONResponse(
        {
            "status": "ok",
            "accounts": len(registry),
            "password_protected": bool(getattr(request.app.state, "password_protected", False)),
        }
    )


# ============================================================================
# Account Endpoints
# ============================================================================

@router.get("/GetAccounts", response_class=PlainTextResponse)
def get_accounts(registry: AccountRegistry = Depends(get_registry)) -> PlainTextResponse:
    """Comma-separated account names."""
    return PlainTextResponse(",".join(account.account_key for account in registry.list_accounts()))


@router.get("/GetAccountsJson")
def get_accounts_json(
    group: Optional[str] = Query(default=None, alias="Group", description="Only accounts in this group"),
    registry: AccountRegistry = Depends(get_registry),
) -> list[AccountSummary]:
    """Accounts with their alias, description and group."""
    return [AccountSummary.from_account(account) for account in registry.list_accounts(group=group)]


@router.api_route("/AddAccount", methods=["GET", "POST"], response_class=PlainTextResponse)
def add_account(
    cookie: Optional[str] = Query(default=None, alias="Cookie", description=".ROBLOSECURITY value"),
    password: Optional[str] = Query(default=None, alias="AccountPassword"),
    registry: AccountRegistry = Depends(get_registry),
) -> PlainTextResponse:
    """Store a session cookie obtained elsewhere."""
    if not cookie:
        return _missing("Cookie")
    account_key = registry.add(cookie, password or "")
    return PlainTextResponse(account_key)


@router.get("/GetAlias", response_class=PlainTextResponse)
def get_alias(
    account: Optional[str] = Query(default=None, alias="Account"),
    registry: AccountRegistry = Depends(get_registry),
) -> PlainTextResponse:
    if not account:
        return _missing("Account name")
    return PlainTextResponse(registry.get_alias(account))


@router.get("/GetDescription", response_class=PlainTextResponse)
def get_description(
    account: Optional[str] = Query(default=None, alias="Account"),
    registry: AccountRegistry = Depends(get_registry),
) -> PlainTextResponse:
    if not account:
        return _missing("Account name")
    return PlainTextResponse(registry.get_description(account))


@router.get("/SetAlias", response_class=PlainTextResponse)
def set_alias(
    account: Optional[str] = Query(default=None, alias="Account"),
    alias: Optional[str] = Query(default=None, alias="Alias"),
    registry: AccountRegistry = Depends(get_registry),
) -> PlainTextResponse:
    if not account:
        return _missing("Account name")
    if not registry.set_alias(account, alias or ""):
        return PlainTextResponse(f"Account {account} not found", status_code=404)
    return PlainTextResponse(f"Alias set for account {account}")


@router.get("/SetDescription", response_class=PlainTextResponse)
def set_description(
    account: Optional[str] = Query(default=None, alias="Account"),
    description: Optional[str] = Query(default=None, alias="Description"),
    registry: AccountRegistry = Depends(get_registry),
) -> PlainTextResponse:
    if not account:
        return _missing("Account name")
    if not registry.set_description(account, description or ""):
        return PlainTextResponse(f"Account {account} not found", status_code=404)
    return PlainTextResponse(f"Description set for account {account}")


# ============================================================================
# Launch Endpoints
# ============================================================================

@router.get("/LaunchAccount", response_class=PlainTextResponse)
def launch_account(
    account: Optional[str] = Query(default=None, alias="Account"),
    place_id: Optional[str] = Query(default=None, alias="PlaceId"),
    job_id: Optional[str] = Query(default=None, alias="JobId"),
    launcher: GameLauncher = Depends(get_game_launcher),
) -> PlainTextResponse:
    """Launch the game with an account; a pending SetServer entry applies when JobId is absent."""
    if not account or not place_id:
        return _missing("Account", "PlaceId")
    result = launcher.launch(account, place_id, job_id or "")
    return _launch_response(result, "Game launch initiated")


@router.get("/FollowUser", response_class=PlainTextResponse)
def follow_user(
    account: Optional[str] = Query(default=None, alias="Account"),
    user_id: Optional[str] = Query(default=None, alias="UserId"),
    username: Optional[str] = Query(default=None, alias="Username", description="Older clients send the user ID here"),
    launcher: GameLauncher = Depends(get_game_launcher),
) -> PlainTextResponse:
    """Join whichever server the given user is playing in."""
    user_id = user_id or username
    if not account or not user_id:
        return _missing("Account", "UserId")
    result = launcher.follow_user(account, user_id)
    return _launch_response(result, f"Following user {user_id}")


@router.get("/SetServer", response_class=PlainTextResponse)
def set_server(
    account: Optional[str] = Query(default=None, alias="Account"),
    place_id: Optional[str] = Query(default=None, alias="PlaceId"),
    job_id: Optional[str] = Query(default=None, alias="JobId"),
    registry: AccountRegistry = Depends(get_registry),
) -> PlainTextResponse:
    """Store the server this account joins the next time it launches PlaceId."""
    if not account or not place_id or not job_id:
        return _missing("Account", "PlaceId", "JobId")
    if not registry.set_override(account, place_id, job_id):
        return PlainTextResponse(f"Account {account} not found", status_code=404)
    return PlainTextResponse(f"Server set: Account {account} will join server {job_id} for place {place_id}")


# ============================================================================
# Application Factory
# ============================================================================

def create_app(password: str | None = None, deps: Container | None = None) -> FastAPI:
    """
    Build the control API.

    Args:
        password: Shared secret required on every path except /health. None disables the check.
        deps: Container providing the registry and launcher (default: the global container)
    """
    app = FastAPI(
        title="Roblox Account Manager API",
        description="Account listing, launch and server selection for stored Roblox accounts",
    )
    app.state.container = deps or container
    app.state.password_protected = bool(password)
    if password:
        app.add_middleware(PasswordMiddleware, password=password)
        logger.info("API password protection enabled")
    else:
        logger.warning("API_PASSWORD not set - password protection disabled")

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception):
        logger.error(f"Error in {request.url.path}: {exc}", exc_info=True)
        return PlainTextResponse("Internal server error", status_code=500)

    app.include_router(router)
    return app
