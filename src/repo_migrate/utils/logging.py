"""Logging setup for repo-migrate."""

import sys
from pathlib import Path
from typing import Optional

from loguru import logger

CONSOLE_FORMAT = (
    '<green>{time:YYYY-MM-DD HH:mm:ss}</green> | '
    '<level>{level: <8}</level> | '
    '<cyan>{extra[component]}</cyan> | '
    '<level>{message}</level>'
)

FILE_FORMAT = '{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {extra[component]} | {message}'


def setup_logging(
    level: str = 'INFO',
    log_file: Optional[str] = None,
    log_format: Optional[str] = None,
) -> None:
    """Configure loguru sinks for a command line run.

    Records logged without a bound component are shown as 'repo-migrate'.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional log file path, rotated at 10 MB
        log_format: Optional console format overriding the default one
    """
    logger.remove()
    logger.configure(extra={'component': 'repo-migrate'})

    logger.add(
        sys.stderr,
        format=log_format or CONSOLE_FORMAT,
        level=level,
        colorize=True,
        backtrace=level == 'DEBUG',
        diagnose=level == 'DEBUG',
    )

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_file,
            format=FILE_FORMAT,
            level=level,
            rotation='10 MB',
            retention='30 days',
            compression='gz',
        )

    logger.debug(f'Logging initialized with level: {level}')
    if log_file:
        logger.debug(f'Log file: {log_file}')


def get_logger(component: str):
    """Return a logger bound to a component name.

    Args:
        component: Component name shown in log records

    Returns:
        Bound logger
    """
    return logger.bind(component=component)
