#!/usr/bin/env python3
"""
Tile MCP Server - Entry Point

This module provides the async MCP server for serving map tiles.
Supports both stdio (for Claude Desktop) and HTTP (for API access) transports.
"""

import logging
import os
import sys
import time
from logging.handlers import RotatingFileHandler
from pathlib import Path

from dotenv import load_dotenv

from .constants import (
    ALL_BACKENDS,
    DEFAULT_HOST,
    DEFAULT_LOG_DIR,
    DEFAULT_LOG_LEVEL,
    DEFAULT_PORT,
    LOG_BACKUP_COUNT,
    LOG_DATE_FORMAT,
    LOG_FILE_NAME,
    LOG_FORMAT,
    LOG_MAX_BYTES,
    EnvVar,
)

# Load environment variables from .env file
env_path = Path(__file__).parent.parent.parent / ".env"
if env_path.exists():
    load_dotenv(env_path)

logger = logging.getLogger(__name__)


class _TimestampFormatter(logging.Formatter):
    """Formats asctime as ISO 8601 with milliseconds and UTC offset."""

    def formatTime(self, record, datefmt=None):
        ct = self.converter(record.created)
        stamp = time.strftime(datefmt or LOG_DATE_FORMAT, ct)
        return f"{stamp}.{int(record.msecs):03d}{time.strftime('%z', ct)}"


def _init_logging(level: str | None = None, log_dir: str | None = None) -> bool:
    """
    Configure root logging: stderr always, plus a rotating file in log_dir.

    stdout is left untouched because the stdio transport owns it.

    Returns:
        True if file logging is active, False if only stderr is used
    """
    level_name = (level or os.environ.get(EnvVar.LOG_LEVEL, DEFAULT_LOG_LEVEL)).upper()
    log_level = logging.getLevelName(level_name)
    if not isinstance(log_level, int):
        log_level = logging.INFO

    formatter = _TimestampFormatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    root = logging.getLogger()
    root.setLevel(log_level)
    for handler in list(root.handlers):
        root.removeHandler(handler)

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setFormatter(formatter)
    root.addHandler(stderr_handler)

    directory = Path(log_dir or os.environ.get(EnvVar.LOG_DIR, DEFAULT_LOG_DIR))
    try:
        directory.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            directory / LOG_FILE_NAME,
            maxBytes=LOG_MAX_BYTES,
            backupCount=LOG_BACKUP_COUNT,
            encoding="utf-8",
        )
    except OSError as e:
        logger.warning(f"Using stderr-only logging, could not open log directory {directory}: {e}")
        return False

    file_handler.setFormatter(formatter)
    root.addHandler(file_handler)
    return True


def main() -> None:
    """Main entry point for the MCP server."""
    import argparse

    parser = argparse.ArgumentParser(description="Tile MCP Server")
    parser.add_argument(
        "mode",
        nargs="?",
        choices=["stdio", "http"],
        default=None,
        help="Transport mode (stdio for Claude Desktop, http for API)",
    )
    parser.add_argument(
        "--host", default=DEFAULT_HOST, help=f"Host for HTTP mode (default: {DEFAULT_HOST})"
    )
    parser.add_argument(
        "--port", type=int, default=DEFAULT_PORT, help=f"Port for HTTP mode (default: {DEFAULT_PORT})"
    )
    parser.add_argument(
        "--tiles-dir",
        default=None,
        help=f"Tiles directory or MBTiles archive (default: ${EnvVar.TILES_ROOT_PATH} or Tiles)",
    )
    parser.add_argument("--backend", choices=ALL_BACKENDS, default=None, help="Storage backend")
    parser.add_argument(
        "--log-level",
        default=None,
        help="Log level: error, warning, info, debug (default: info)",
    )

    args = parser.parse_args()

    _init_logging(args.log_level)

    # Import after logging is configured so startup messages are captured
    from .async_server import build_server
    from .config import load_config

    config = load_config(tiles_root_path=args.tiles_dir, backend=args.backend)
    mcp, service = build_server(config)

    logger.info(f"Serving tiles from: {config.tiles_root_path}")
    try:
        if args.mode == "stdio":
            print("Tile MCP Server starting in STDIO mode", file=sys.stderr)
            mcp.run(stdio=True)
        elif args.mode == "http":
            print(
                f"Tile MCP Server starting in HTTP mode on {args.host}:{args.port}",
                file=sys.stderr,
            )
            mcp.run(host=args.host, port=args.port, stdio=False)
        else:
            if os.environ.get(EnvVar.MCP_STDIO) or (not sys.stdin.isatty()):
                print("Tile MCP Server starting in STDIO mode (auto-detected)", file=sys.stderr)
                mcp.run(stdio=True)
            else:
                print(
                    f"Tile MCP Server starting in HTTP mode on {args.host}:{args.port}",
                    file=sys.stderr,
                )
                mcp.run(host=args.host, port=args.port, stdio=False)
    finally:
        # mcp.run() owns and tears down the event loop, cancelling any
        # in-flight reads, so only the synchronous release is left here
        service.close()


if __name__ == "__main__":
    main()
