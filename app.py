"""
ASGI application entrypoint for the Roblox account manager control API.

This module provides the HTTP server setup with:
- Health check endpoint (/health), always reachable
- Password query-parameter gate on every other path when API_PASSWORD is set

Run with: uvicorn app:app --host 127.0.0.1 --port 7963
"""

from account_manager.app import create_app
from account_manager.container import container

app = create_app(password=container.settings.api_password)
