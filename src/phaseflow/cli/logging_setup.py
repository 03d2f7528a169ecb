"""Logging configuration for the phaseflow command line."""

from __future__ import annotations

import logging
import os

NOISY_LOGGERS = ("httpx", "openai", "httpcore", "urllib3")


def setup_logging(
    verbose: bool = False,
    log_file: str | None = None,
    logger_name: str = "phaseflow",
) -> logging.Logger:
    """
    Configure dual-handler logging (console + file).

    Args:
        verbose: Enable DEBUG level on console (default WARNING, so rich
            output stays readable)
        log_file: Path to log file (None for no file logging)
        logger_name: Package logger to configure

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(logger_name)
    logger.setLevel(logging.DEBUG)
    # Repeated CLI invocations in one process (tests) must not stack handlers
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.DEBUG if verbose else logging.WARNING)
    console_handler.setFormatter(
        logging.Formatter("%(levelname)-8s | %(name)s | %(message)s")
    )
    logger.addHandler(console_handler)

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.FileHandler(log_file, mode="a")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        logger.addHandler(file_handler)

    for noisy in NOISY_LOGGERS:
        logging.getLogger(noisy).setLevel(logging.WARNING)

    return logger
