# src/priority_forge/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds the engine, optionally seeds it from a JSON task
file, then runs the console REPL in the main thread.
"""

from __future__ import annotations

import logging

from ..cli.bootstrap import create_engine, load_tasks_file
from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


def main() -> None:
    settings = get_settings()

    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)

    log_dir = getattr(settings, "data_dir", ".local/priority_forge")
    setup_logging(log_dir=log_dir, console_level=console_level)

    logger.info("Starting %s...", getattr(settings, "app_name", "priority-forge"))

    # IMPORTANT: reuse same settings object
    engine = create_engine(settings=settings)

    tasks_file = getattr(settings, "tasks_file", None)
    if tasks_file is not None:
        try:
            engine.load(load_tasks_file(tasks_file))
        except (OSError, ValueError):
            logger.exception("Failed to load tasks from %s; starting with an empty queue.", tasks_file)

    try:
        run_console_loop(engine, app_name=settings.app_name)
    finally:
        logger.info("Bye.")


if __name__ == "__main__":
    main()
