"""
Run script for starting the voice relay server with low-latency settings.

Settings are validated before the server starts; a missing credential exits with
status 1.

Usage:
    python run.py [--port PORT] [--host HOST] [--log-level LEVEL]
"""

import argparse
import os
import sys

import uvicorn

from voice_relay.config.logging_config import configure_logging
from voice_relay.config.settings import ConfigurationError, load_settings

# Configure logging
logger = configure_logging()


def parse_args():
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Start the voice relay server"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port to run the server on (default: PORT env var or 8080)",
    )
    parser.add_argument(
        "--host",
        default=None,
        help="Host to bind the server to (default: HOST env var or 0.0.0.0)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (default: LOG_LEVEL env var or INFO)",
    )
    return parser.parse_args()


def main():
    """Main entry point for starting the server."""
    args = parse_args()

    try:
        settings = load_settings()
    except ConfigurationError as e:
        logger.error(f"Invalid configuration: {e}")
        sys.exit(1)

    host = args.host or settings.host
    port = args.port or settings.port
    log_level = args.log_level or settings.log_level

    logger.info(f"Starting server on http://{host}:{port}")
    logger.info(f"Log level: {log_level}")

    uvicorn.run(
        "voice_relay.main:app",
        host=host,
        port=port,
        log_level=log_level.lower(),
        # Use HTTP/1.1 for lower overhead than HTTP/2
        http="h11",
        # Disable access logs, we have our own logging
        access_log=False,
        reload=os.getenv("ENV", "production").lower() == "development",
    )


if __name__ == "__main__":
    main()
