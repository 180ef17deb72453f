#!/usr/bin/env python3
"""
Campus Blog -- accounts, profiles and blogs for the college blogging platform.

Usage:
  python main.py
  python main.py --port 8080
  python main.py --host 127.0.0.1 --reload

Required environment variables (or .env):
  SECRET_KEY    JWT signing key, at least 32 characters.
  DATABASE_URL  SQLAlchemy URL, e.g. sqlite:///campusblog.db

Configuration is validated before the server binds a port; a missing or
invalid setting is logged and the process exits with status 1.
"""

import argparse
import logging
import sys

import uvicorn
from pydantic import ValidationError

from core.config import get_settings

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("campusblog")


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="campusblog",
        description="Run the campus blog API server.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py
  python main.py --port 8080
  SECRET_KEY=... DATABASE_URL=sqlite:///dev.db python main.py --reload
        """,
    )
    parser.add_argument(
        "--host",
        default=None,
        help="Bind address (default: HOST setting, 0.0.0.0)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Listen port (default: PORT setting, 3000)",
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Restart on code changes (development only)",
    )
    args = parser.parse_args()

    try:
        settings = get_settings()
    except ValidationError as exc:
        for err in exc.errors():
            logger.error("Configuration error: %s", err.get("msg"))
        sys.exit(1)

    host = args.host or settings.host
    port = args.port or settings.port
    logger.info("Starting campus blog API on %s:%d", host, port)
    uvicorn.run("asgi:app", host=host, port=port, reload=args.reload)


if __name__ == "__main__":
    main()
