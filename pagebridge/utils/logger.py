"""
pagebridge/utils/logger.py

Centralized logging configuration for the project.
Provides a factory function for module loggers that all share one format.
"""

import logging

from pagebridge.config import Config


# Private functions _______________________________________________________________________________

def _create_handler() -> logging.StreamHandler:
    """
    Create and configure a StreamHandler for stderr logging.
    Returns:
        logging.StreamHandler: Configured handler
    """
    handler = logging.StreamHandler()
    formatter = logging.Formatter(
        fmt=Config.LOG_FORMAT,
        datefmt=Config.LOG_DATE_FORMAT
    )
    handler.setFormatter(fmt=formatter)
    return handler


def _configure_logger(logger: logging.Logger) -> logging.Logger:
    """
    Attach the shared handler to a logger and apply the configured level.
    Args:
        logger (logging.Logger): The logger to configure
    Returns:
        logging.Logger: The configured logger
    """
    logger.setLevel(Config.LOG_LEVEL)

    # prevent duplicate handlers
    if not logger.handlers:
        logger.addHandler(_create_handler())

    # prevent propagation to avoid duplicate logs
    logger.propagate = False
    return logger


# Exports _________________________________________________________________________________________

def get_logger(name: str) -> logging.Logger:
    """
    Get a configured logger by name.
    Args:
        name (str): Logger name.
    Returns:
        logging.Logger: Configured logger instance
    """
    logger = logging.getLogger(name=name)
    return _configure_logger(logger)


def set_log_level(level: int) -> None:
    """
    Change the level of every pagebridge logger created so far.
    Args:
        level (int): A logging level such as logging.DEBUG.
    """
    Config.LOG_LEVEL = level
    for name in list(logging.Logger.manager.loggerDict):
        if name == "pagebridge" or name.startswith("pagebridge."):
            logging.getLogger(name).setLevel(level)
