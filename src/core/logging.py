"""Loguru logging configuration"""

import sys

from loguru import logger

logger.remove()


def setup_logging(
    debug: bool = False,
    log_format: str = "pretty",
    log_file: str | None = None,
) -> None:
    """Configure loguru for the ledger service."""
    logger.remove()

    if log_format == "pretty" or debug:
        logger.add(
            sys.stderr,
            format=(
                "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
                "<level>{level: <8}</level> | "
                "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
                "<level>{message}</level>"
            ),
            level="DEBUG" if debug else "INFO",
            colorize=True,
        )
    else:
        logger.add(
            sys.stderr,
            format="{message}",
            level="INFO",
            serialize=True,
        )

    if log_file:
        logger.add(
            log_file,
            rotation="00:00",
            retention="30 days",
            compression="gz",
            level="INFO",
        )


log = logger
