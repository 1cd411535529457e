#!/usr/bin/env python
"""Main entry point for the Notekeep MCP server."""
import argparse
import logging
import os
import sys
from pathlib import Path

from notekeep.config import config
from notekeep.exceptions import ConfigurationError
from notekeep.models.db_models import init_db
from notekeep.observability import configure_logging
from notekeep.server.mcp_server import NotekeepMcpServer


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Notekeep MCP Server")
    parser.add_argument(
        "--database-path",
        help="SQLite database file path",
        type=str,
        default=os.environ.get("NOTEKEEP_DATABASE_PATH"),
    )
    parser.add_argument(
        "--log-dir",
        help="Directory for rotated log files",
        type=str,
        default=os.environ.get("NOTEKEEP_LOG_DIR"),
    )
    parser.add_argument(
        "--auth-delay",
        help="Simulated login/register latency in seconds",
        type=float,
        default=None,
    )
    parser.add_argument(
        "--log-level",
        help="Logging level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=os.environ.get("NOTEKEEP_LOG_LEVEL", "INFO"),
    )
    return parser.parse_args(argv)


def update_config(args):
    """Update the global config with command line arguments."""
    if args.database_path:
        config.database_path = Path(args.database_path)
    if args.log_dir:
        config.log_dir = Path(args.log_dir)
    if args.auth_delay is not None:
        if args.auth_delay < 0:
            raise ConfigurationError(
                "--auth-delay must be >= 0", config_key="auth_delay_seconds"
            )
        config.auth_delay_seconds = args.auth_delay


def main(argv=None):
    """Run the Notekeep MCP server."""
    args = parse_args(argv)
    try:
        update_config(args)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(2)

    # Configure logging (console + persistent file logging with rotation)
    log_level = getattr(logging, args.log_level.upper(), logging.INFO)
    try:
        configure_logging(log_dir=config.log_dir, level=log_level, console=True)
    except OSError as e:
        # Fall back to basic console logging if file logging fails
        logging.basicConfig(level=log_level)
        logging.getLogger(__name__).warning(f"Failed to configure file logging: {e}")

    logger = logging.getLogger(__name__)

    try:
        logger.info(f"Using SQLite database: {config.get_db_url()}")
        engine = init_db()
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        sys.exit(1)

    try:
        logger.info("Starting Notekeep MCP server")
        server = NotekeepMcpServer(engine=engine)
        server.run()
    except Exception as e:
        logger.error(f"Error running server: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
