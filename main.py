"""Main entry point for the Tablut AI server."""

import argparse
import logging
import os

import uvicorn

from tablut.config import Settings


def configure_logging(settings: Settings):
    """Configure root logging at the level from SETTINGS."""
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Tablut AI Server")
    parser.add_argument(
        "--host",
        type=str,
        default="0.0.0.0",
        help="Host to bind to (default: 0.0.0.0)",
    )
    parser.add_argument(
        "--port",
        "-p",
        type=int,
        default=8000,
        help="Port to bind to (default: 8000)",
    )
    parser.add_argument(
        "--depth",
        "-d",
        type=int,
        default=None,
        help="Default engine search depth for new games (default: 2)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        help="Logging level (default: INFO)",
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload for development",
    )

    args = parser.parse_args()

    # The app reads its settings from the environment at import time
    if args.depth is not None:
        os.environ["TABLUT_SEARCH_DEPTH"] = str(args.depth)
    if args.log_level:
        os.environ["TABLUT_LOG_LEVEL"] = args.log_level

    configure_logging(Settings.from_env())

    uvicorn.run("api:app", host=args.host, port=args.port, reload=args.reload)
