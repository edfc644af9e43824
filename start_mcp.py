#!/usr/bin/env python3
"""
Start the Roblox account manager MCP server.

Usage:
    python start_mcp.py                      # stdio transport
    python start_mcp.py --http [--port PORT] [--host HOST]

Environment variables:
    MCP_HTTP_PORT: Port for the HTTP transport (default: 8080)
"""

import argparse
import os

from account_manager.logger import logger
from mcp_server.server import mcp


def main():
    parser = argparse.ArgumentParser(description="Start the Roblox account manager MCP server")
    parser.add_argument("--http", action="store_true", help="Serve over HTTP (SSE) instead of stdio")
    parser.add_argument(
        "--port",
        type=int,
        default=int(os.environ.get("MCP_HTTP_PORT", 8080)),
        help="Port for the MCP HTTP server (default: 8080)",
    )
    parser.add_argument("--host", type=str, default="127.0.0.1", help="Host to bind to (default: 127.0.0.1)")
    args = parser.parse_args()

    if not args.http:
        logger.info("Starting Roblox Account Manager MCP server...")
        mcp.run()
        return

    logger.info(f"Starting Roblox Account Manager MCP server in HTTP mode on {args.host}:{args.port}...")
    logger.info(f"Connect clients to: http://{args.host}:{args.port}/sse")
    mcp.run(transport="sse", host=args.host, port=args.port)


if __name__ == "__main__":
    main()
