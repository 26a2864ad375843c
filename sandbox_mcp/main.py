"""Command line entry point for Sandbox MCP Server."""

import argparse
from typing import List, Optional

import uvicorn

from . import __version__
from .config import load_config
from .server import build_server, create_app, SERVER_NAME
from .stdio import serve_stdio


def main(argv: Optional[List[str]] = None) -> None:
    """Run the server over stdio (default) or HTTP."""
    parser = argparse.ArgumentParser(
        prog=SERVER_NAME,
        description="MCP server exposing .sandbox/scripts and .sandbox/tools"
    )
    parser.add_argument("command", nargs="?", choices=["serve", "version"], default="serve",
                        help="serve (default) or print the version")
    parser.add_argument("--config", help="Path to JSON configuration file")
    parser.add_argument("--transport", choices=["stdio", "http"], default="stdio",
                        help="Transport to serve on (default: stdio)")
    parser.add_argument("--host", help="Host to bind to in http mode")
    parser.add_argument("--port", type=int, help="Port to bind to in http mode")
    parser.add_argument("--reload", action="store_true", help="Enable auto-reload in http mode")
    parser.add_argument("--scripts-dir", help="Override the scripts directory")
    parser.add_argument("--tools-dir", help="Override the tools directory")

    args = parser.parse_args(argv)

    if args.command == "version":
        print(f"{SERVER_NAME} {__version__}")
        return

    config = load_config(args.config)
    if args.scripts_dir:
        config.sandbox.scripts_dir = args.scripts_dir
    if args.tools_dir:
        config.sandbox.tools_dir = args.tools_dir

    if args.transport == "http":
        app = create_app(config=config)
        uvicorn.run(
            app,
            host=args.host or config.server.host,
            port=args.port or config.server.port,
            reload=args.reload
        )
        return

    serve_stdio(build_server(config=config))


if __name__ == "__main__":
    main()
