#!/usr/bin/env python3
"""
Mandate Batch OCR Service - Main Entry Point.

Runs one polling worker per mandate. Each worker picks up scanned PDF
batches from the mandate's input directory, splits them into documents
at QR separator pages, extracts the text, identifies the vendor,
validates bank details and stores one result per document.

Usage:
    Command Line:
        python main.py --init-db
        python main.py
        python main.py --mandate acme --mandate globex --once

    Python:
        from main import run_service
        exit_code = run_service(once=True)

Author: Document Automation Team
Version: 1.0.0
"""

import argparse
import logging
import signal
import sys
import threading
from pathlib import Path
from typing import List, Optional

# Add project root to path for imports
PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

# Import project modules
from config import ConfigurationManager, get_config
from mandate_ocr.utils.logger import ROOT_LOGGER_NAME, setup_logger_from_config, get_logger
from mandate_ocr.utils.exceptions import MandateOcrError


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Returns:
        Parsed argument namespace.
    """
    parser = argparse.ArgumentParser(
        description="Mandate Batch OCR Service",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    Create the database schema:
        python main.py --init-db

    Run all active mandates until interrupted:
        python main.py

    Run one polling cycle for selected mandates:
        python main.py --mandate acme --mandate globex --once
        """
    )

    parser.add_argument(
        "--config", "-c",
        type=str,
        default=None,
        help="Path to custom configuration file"
    )

    parser.add_argument(
        "--mandate", "-m",
        action="append",
        default=None,
        help="Mandate id to run (repeatable, default: all active mandates)"
    )

    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single polling cycle per mandate, then exit"
    )

    parser.add_argument(
        "--init-db",
        action="store_true",
        help="Create the database schema, then exit"
    )

    # Logging options
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging"
    )

    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Only log warnings and errors"
    )

    return parser.parse_args(argv)


def initialize_system(args: argparse.Namespace) -> ConfigurationManager:
    """
    Initialize configuration and logging.

    Args:
        args: Parsed command-line arguments.

    Returns:
        Initialized configuration manager.
    """
    if args.config:
        ConfigurationManager.reset()
    config = ConfigurationManager(args.config)

    logger = setup_logger_from_config()

    if args.debug:
        logging.getLogger(ROOT_LOGGER_NAME).setLevel(logging.DEBUG)
    elif args.quiet:
        logging.getLogger(ROOT_LOGGER_NAME).setLevel(logging.WARNING)

    logger.info("=" * 60)
    logger.info("MANDATE BATCH OCR SERVICE")
    logger.info("=" * 60)
    logger.info(f"Version: {config.get('project.version', '1.0.0')}")
    logger.info(f"Configuration: {config.config_path}")

    return config


def install_signal_handlers(stop_requested: threading.Event) -> None:
    """Translate SIGINT/SIGTERM into a cooperative stop request."""
    def handler(signum, frame):
        get_logger(__name__).info(f"Received signal {signum}, shutting down")
        stop_requested.set()

    signal.signal(signal.SIGINT, handler)
    if hasattr(signal, "SIGTERM"):
        signal.signal(signal.SIGTERM, handler)


def run_service(
    mandate_ids: Optional[List[str]] = None,
    once: bool = False,
    stop_requested: Optional[threading.Event] = None
) -> int:
    """
    Run the mandate workers.

    Args:
        mandate_ids: Mandates to run; None runs every active mandate.
        once: Run a single polling cycle per mandate.
        stop_requested: Event that ends a continuous run.

    Returns:
        Exit code (0 for a clean shutdown, 130 when interrupted).
    """
    logger = get_logger(__name__)

    from mandate_ocr.repository import Database
    from mandate_ocr.pipeline import Supervisor

    stop_requested = stop_requested or threading.Event()
    database = Database()
    supervisor = Supervisor(database, mandate_ids=mandate_ids)

    try:
        started = supervisor.start(once=once)
        if not started:
            return 0

        # Short waits keep the main thread responsive to signals
        while supervisor.is_running() and not stop_requested.is_set():
            supervisor.wait(timeout=1.0)
    finally:
        unresponsive = supervisor.stop()
        database.dispose()

    if unresponsive:
        logger.error(f"Unresponsive workers at shutdown: {', '.join(unresponsive)}")

    return 130 if stop_requested.is_set() else 0


def main() -> int:
    """
    Main function - entry point for command-line execution.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    try:
        args = parse_arguments()
        initialize_system(args)
        logger = get_logger(__name__)

        if args.init_db:
            from mandate_ocr.repository import Database
            database = Database()
            database.create_schema()
            database.dispose()
            logger.info(f"Database schema ready: {get_config('database.url')}")
            return 0

        stop_requested = threading.Event()
        install_signal_handlers(stop_requested)

        exit_code = run_service(
            mandate_ids=args.mandate,
            once=args.once,
            stop_requested=stop_requested
        )

        logger.info("=" * 60)
        logger.info("Service stopped")
        logger.info("=" * 60)

        return exit_code

    except MandateOcrError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    except KeyboardInterrupt:
        print("\nOperation cancelled by user")
        return 130

    except Exception as e:
        print(f"Unexpected error: {e}", file=sys.stderr)
        if "--debug" in sys.argv:
            import traceback
            traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
