"""
Logging Setup
=============

Console + date-stamped file logging for the liquidator process.
"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(log_level: str = "INFO", log_file: Optional[str] = None) -> Optional[Path]:
    """
    Configure the root logger.

    Args:
        log_level: Level name ("DEBUG", "INFO", ...)
        log_file: Base log file path, e.g. "logs/liquidator.log". The date is
            appended to the stem (logs/liquidator_2026-01-18.log). None logs
            to the console only.

    Returns:
        Path of the dated log file, or None
    """
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, log_level.upper()))

    formatter = logging.Formatter(LOG_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    dated_log_file = None
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        date_str = datetime.now().strftime("%Y-%m-%d")
        dated_log_file = log_path.parent / f"{log_path.stem}_{date_str}{log_path.suffix}"

        file_handler = logging.FileHandler(dated_log_file)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    # Reduce noise from HTTP libraries
    logging.getLogger("aiohttp").setLevel(logging.WARNING)

    if dated_log_file:
        root_logger.info(f"Logging to: {dated_log_file}")
    return dated_log_file
