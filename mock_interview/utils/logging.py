"""
Logging utilities for the interview system.
"""
import os
import logging


def setup_logging(log_file_path: str, level: str = "INFO") -> str:
    """
    Set up logging to file with minimal console output.

    Args:
        log_file_path: Full path to the log file
        level: Level name for the file handler (DEBUG, INFO, ...)

    Returns:
        Path to the log file
    """
    # Extract directory from log file path and create it
    workdir = os.path.dirname(log_file_path)
    if workdir:  # Only create directory if path has a directory component
        os.makedirs(workdir, exist_ok=True)

    file_level = getattr(logging, str(level).upper(), logging.INFO)

    # Clear any existing handlers
    logging.getLogger().handlers.clear()

    # File handler for detailed logs
    file_handler = logging.FileHandler(log_file_path, mode='a')
    file_handler.setLevel(file_level)
    file_formatter = logging.Formatter('%(asctime)s %(levelname)s %(name)s - %(message)s')
    file_handler.setFormatter(file_formatter)

    # Console handler for minimal output only
    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.CRITICAL)  # Only show critical messages on console
    console_handler.setFormatter(logging.Formatter('%(message)s'))

    # Configure root logger
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.addHandler(file_handler)
    root_logger.addHandler(console_handler)

    return log_file_path
