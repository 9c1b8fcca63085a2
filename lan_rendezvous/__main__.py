"""
Main entry point for the LAN rendezvous chat application.
"""

import sys
import asyncio
import logging
import platform
import signal
import argparse
from pathlib import Path
from PyQt5.QtWidgets import QApplication
from qasync import QEventLoop

from .config import RendezvousConfig
from .ui import MainWindow


# Configure logging
def setup_logging(log_level_name='INFO'):
    """Set up logging for the application.

    Args:
        log_level_name: The name of the logging level to use (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    # Convert string level to logging level
    log_level = getattr(logging, log_level_name.upper(), logging.INFO)

    # Create logs directory if it doesn't exist
    log_dir = Path.home() / ".lan_rendezvous" / "logs"
    log_dir.mkdir(exist_ok=True, parents=True)
    log_file = log_dir / "system.log"

    # Configure root logger with both file and console output
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[
            logging.FileHandler(log_file),
            logging.StreamHandler()
        ]
    )

    logger = logging.getLogger(__name__)
    logger.info(f"Logging initialized (log level: {log_level_name.upper()})")

    return logger


def main():
    """Main entry point for the application."""
    # Parse command line arguments
    parser = argparse.ArgumentParser(description="LAN Rendezvous Chat")
    parser.add_argument(
        "--log-level",
        choices=["debug", "info", "warning", "error", "critical"],
        default="info",
        help="Set the logging level (default: info)"
    )
    parser.add_argument(
        "--resume-on-disconnect",
        action="store_true",
        help="Search for a new peer when the connected peer leaves"
    )
    args = parser.parse_args()

    # Set up logging with the specified level
    logger = setup_logging(log_level_name=args.log_level)
    config = RendezvousConfig(resume_search_on_disconnect=args.resume_on_disconnect)

    try:
        # Create the application
        app = QApplication(sys.argv)
        app.setApplicationName("LAN Rendezvous Chat")

        # Create the event loop
        loop = QEventLoop(app)
        asyncio.set_event_loop(loop)

        # Handle signals differently based on platform
        if platform.system() != "Windows":
            for sig in (signal.SIGINT, signal.SIGTERM):
                loop.add_signal_handler(sig, lambda: asyncio.create_task(shutdown(loop, main_window)))
        else:
            def win_handler(signum, frame):
                asyncio.create_task(shutdown(loop, main_window))

            signal.signal(signal.SIGINT, win_handler)

        # Create and show the main window
        main_window = MainWindow(config)
        main_window.show()

        logger.info("Application started")

        # Run the event loop
        with loop:
            loop.run_forever()

    except Exception as e:
        logger.error(f"Unhandled exception: {e}", exc_info=True)
        return 1

    logger.info("Application exiting")
    return 0


async def shutdown(loop, main_window):
    """Shutdown the application gracefully.

    Args:
        loop: The event loop
        main_window: The window whose network components are stopped first
    """
    logger = logging.getLogger(__name__)
    logger.info("Shutting down gracefully...")

    # Stop discovery, the listener and open sessions first
    await main_window.machine.stop()

    # Cancel all running tasks
    tasks = [t for t in asyncio.all_tasks() if t is not asyncio.current_task()]
    for task in tasks:
        task.cancel()
    if tasks:
        await asyncio.gather(*tasks, return_exceptions=True)

    # Stop the event loop
    loop.stop()


if __name__ == "__main__":
    sys.exit(main())
