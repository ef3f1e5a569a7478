"""CLI entry point for toolrpc-server.

This module provides the command-line interface for starting the toolrpc-server.
It can be invoked as `toolrpc-server` (via the script entry point) or
`python -m toolrpc_server`.
"""

import argparse
import logging
import sys

import uvicorn

from toolrpc_server import __version__, create_app
from toolrpc_server.config import ToolRpcServerSettings


def main() -> None:
    """Main entry point for the toolrpc-server CLI.

    Parses command-line arguments and starts the uvicorn server with the
    FastAPI application.
    """
    parser = argparse.ArgumentParser(
        prog="toolrpc-server",
        description="JSON-RPC 2.0 tool protocol server for AI client agents",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"toolrpc-server {__version__}",
    )

    parser.add_argument(
        "--host",
        type=str,
        default=None,
        help="Host to bind the server to (default: 127.0.0.1, can be set via TOOLRPC_HOST)",
    )

    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port to bind the server to (default: 8000, can be set via TOOLRPC_PORT)",
    )

    parser.add_argument(
        "--action-module",
        dest="action_modules",
        action="append",
        default=None,
        metavar="MODULE:ATTR",
        help="Action source to publish, e.g. 'myapp.actions:WebActions' (repeatable)",
    )

    parser.add_argument(
        "--cache-backend",
        type=str,
        default=None,
        choices=["none", "memory", "sqlite"],
        help="Description cache backend (default: sqlite, can be set via TOOLRPC_CACHE_BACKEND)",
    )

    parser.add_argument(
        "--provider-model",
        type=str,
        default=None,
        help="Model name used as the description cache key (can be set via TOOLRPC_PROVIDER_MODEL)",
    )

    parser.add_argument(
        "--ollama-host",
        type=str,
        default=None,
        help="Ollama server URL (default: http://localhost:11434, can be set via TOOLRPC_OLLAMA_HOST)",
    )

    parser.add_argument(
        "--data-dir",
        type=str,
        default=None,
        help="Base directory for the cache database (default: ., can be set via TOOLRPC_DATA_DIR)",
    )

    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (default: INFO, can be set via TOOLRPC_LOG_LEVEL)",
    )

    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload for development (uvicorn --reload)",
    )

    args = parser.parse_args()

    # Build settings, CLI args override environment variables
    settings_kwargs = {}
    if args.host is not None:
        settings_kwargs["host"] = args.host
    if args.port is not None:
        settings_kwargs["port"] = args.port
    if args.action_modules is not None:
        settings_kwargs["action_modules"] = args.action_modules
    if args.cache_backend is not None:
        settings_kwargs["cache_backend"] = args.cache_backend
    if args.provider_model is not None:
        settings_kwargs["provider_model"] = args.provider_model
    if args.ollama_host is not None:
        settings_kwargs["ollama_host"] = args.ollama_host
    if args.data_dir is not None:
        settings_kwargs["data_dir"] = args.data_dir
    if args.log_level is not None:
        settings_kwargs["log_level"] = args.log_level

    settings = ToolRpcServerSettings(**settings_kwargs)

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Create the FastAPI app
    app = create_app(settings=settings)

    # Start uvicorn
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        reload=args.reload,
    )


if __name__ == "__main__":
    sys.exit(main())
