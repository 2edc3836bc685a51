#!/usr/bin/env python
"""Main entry point for the Simple Notes MCP server."""
import argparse
import logging
import os
import sys
from pathlib import Path

from simple_notes.config import config
from simple_notes.observability import configure_logging
from simple_notes.server.mcp_server import NotesMcpServer
from simple_notes.services.notes_service import NotesService


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Simple Notes MCP Server")
    parser.add_argument(
        "--data-dir",
        help="Application data directory (cache, backups, logs)",
        type=str,
        default=os.environ.get("SIMPLE_NOTES_DATA_DIR"),
    )
    parser.add_argument(
        "--notes-dir",
        help="Directory the notes are mirrored to",
        type=str,
        default=os.environ.get("SIMPLE_NOTES_NOTES_DIR"),
    )
    parser.add_argument(
        "--log-level",
        help="Logging level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=os.environ.get("SIMPLE_NOTES_LOG_LEVEL", "INFO"),
    )
    return parser.parse_args(argv)


def update_config(args):
    """Update the global config with command line arguments."""
    if args.data_dir:
        config.data_dir = Path(args.data_dir)
    if args.notes_dir:
        config.notes_dir = Path(args.notes_dir)


def main(argv=None):
    """Run the Simple Notes MCP server."""
    args = parse_args(argv)
    update_config(args)

    log_level = getattr(logging, args.log_level.upper(), logging.INFO)
    try:
        log_file = configure_logging(
            config.get_absolute_path(config.log_dir), level=log_level
        )
    except OSError as e:
        logging.basicConfig(level=log_level)
        logging.getLogger(__name__).warning(f"Failed to configure file logging: {e}")
        log_file = None

    logger = logging.getLogger(__name__)
    if log_file:
        logger.info(f"Persistent logging enabled: {log_file}")

    try:
        service = NotesService()
        source = service.load()
        logger.info(f"Notes directory: {service.mirror.root} (loaded from {source})")
    except Exception as e:
        logger.error(f"Failed to start notes session: {e}")
        sys.exit(1)

    try:
        logger.info("Starting Simple Notes MCP server")
        server = NotesMcpServer(service=service)
        server.run()
    except Exception as e:
        logger.error(f"Error running server: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
