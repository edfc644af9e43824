from fastmcp import FastMCP
from starlette.responses import JSONResponse

from account_manager.container import container
from account_manager.logger import logger
from account_manager.models import AccountSummary

mcp = FastMCP("Roblox Account Manager")
logger.info("Roblox Account Manager MCP server initialized")


@mcp.custom_route("/health", methods=["GET"])
async def health_check(request):
    """Health check endpoint for monitoring and load balancers."""
    return JSONResponse({"status": "healthy", "service": "roblox-account-manager"})


@mcp.tool()
def list_accounts(group: str | None = None) -> dict:
    """
    Lists the saved Roblox accounts.

    USE THIS TOOL WHENEVER A USER ASKS FOR:
    - "Which accounts do I have?"
    - "Show my Roblox accounts"
    - The name of an account to launch

    Args:
        group: Optional group name; only accounts in that group are returned.

    Returns:
        A dictionary with the accounts (name, alias, description, group) and the last used place ID.
    """
    try:
        registry = container.registry
        accounts = [AccountSummary.from_account(account).model_dump() for account in registry.list_accounts(group)]
        return {"accounts": accounts, "total": len(accounts), "last_used_place_id": registry.last_used_target}
    except Exception as e:
        logger.error(f"Error listing accounts: {e}", exc_info=True)
        return {"status": "error", "message": f"Failed to list accounts: {str(e)}"}


@mcp.tool()
def launch_account(account: str, place_id: str, job_id: str = "") -> dict:
    """
    Launches Roblox with a saved account.

    USE THIS TOOL WHENEVER A USER ASKS TO:
    - Play, join or launch a game with one of their accounts
    - Join a specific server (job ID) or a private server link

    Args:
        account: Account name as returned by list_accounts.
        place_id: Numeric Roblox place ID.
        job_id: Optional job ID, or a private server link containing "privateServerLinkCode=".
                When empty, a server chosen earlier with set_next_server is used.

    Returns:
        A dictionary with "success" and an operator-facing "message".
    """
    result = container.game_launcher.launch(account, place_id, job_id)
    return result.model_dump(mode="json")


@mcp.tool()
def follow_user(account: str, user_id: str) -> dict:
    """
    Launches Roblox with a saved account into the server a given user is playing in.

    Args:
        account: Account name as returned by list_accounts.
        user_id: Numeric Roblox user ID to follow.

    Returns:
        A dictionary with "success" and an operator-facing "message".
    """
    result = container.game_launcher.follow_user(account, user_id)
    return result.model_dump(mode="json")


@mcp.tool()
def set_next_server(account: str, place_id: str, job_id: str) -> dict:
    """
    Chooses the server an account joins the next time it launches a place.

    The choice is used once, by the next launch of that place without an explicit job ID.

    Args:
        account: Account name as returned by list_accounts.
        place_id: Place the choice applies to.
        job_id: Job ID or private server link to join.
    """
    try:
        if not container.registry.set_override(account, place_id, job_id):
            return {"status": "error", "message": f"Account {account} not found"}
        return {
            "status": "success",
            "message": f"Account {account} will join server {job_id} for place {place_id}",
        }
    except Exception as e:
        logger.error(f"Error setting next server: {e}", exc_info=True)
        return {"status": "error", "message": f"Failed to set server: {str(e)}"}


@mcp.tool()
def delete_account(account: str) -> dict:
    """
    Deletes a saved account and any server chosen for its next launch.

    Only call this when the user explicitly asks to remove an account.
    """
    try:
        if not container.registry.delete(account):
            return {"status": "error", "message": f"Account {account} not found"}
        return {"status": "success", "message": f"Account {account} deleted"}
    except Exception as e:
        logger.error(f"Error deleting account: {e}", exc_info=True)
        return {"status": "error", "message": f"Failed to delete account: {str(e)}"}


@mcp.tool()
def set_alias(account: str, alias: str) -> dict:
    """Sets the display alias of a saved account."""
    if not container.registry.set_alias(account, alias):
        return {"status": "error", "message": f"Account {account} not found"}
    return {"status": "success", "message": f"Alias set for account {account}"}


@mcp.tool()
def set_description(account: str, description: str) -> dict:
    """Sets the free-text description of a saved account."""
    if not container.registry.set_description(account, description):
        return {"status": "error", "message": f"Account {account} not found"}
    return {"status": "success", "message": f"Description set for account {account}"}
