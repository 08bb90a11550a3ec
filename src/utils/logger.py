import logging
import os
import sys

from loguru import logger

# Third-party loggers routed into loguru (httpx logs every request at INFO)
_STDLIB_LOGGERS = {
    "httpx": logging.WARNING,
    "uvicorn": logging.INFO,
    "uvicorn.error": logging.INFO,
    "uvicorn.access": logging.WARNING,
}


class _InterceptHandler(logging.Handler):
    """Forward stdlib logging records to loguru, keeping caller depth."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 2
        while frame is not None and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def setup_logger(*, json_logs: bool = False, level: str = "INFO", log_file: bool = True) -> None:
    """Configure loguru for the service.

    Console level controlled by LOG_LEVEL env (default: INFO).
    The file sink keeps DEBUG so degraded chains and logo misses can be traced
    after the fact.
    """
    console_level = os.getenv("LOG_LEVEL", level).upper()
    logger.remove()

    if json_logs:
        logger.add(sys.stdout, serialize=True, level=console_level)
    else:
        logger.add(
            sys.stdout,
            format=(
                "<green>{time:HH:mm:ss}</green> | "
                "<level>{level: <8}</level> | "
                "<cyan>{name}</cyan>:<cyan>{function}</cyan> - "
                "<level>{message}</level>"
            ),
            level=console_level,
            colorize=True,
        )

    if log_file:
        logger.add(
            "logs/chainfolio_{time:YYYY-MM-DD}.log",
            rotation="20 MB",
            retention="7 days",
            compression="gz",
            level="DEBUG",
            serialize=json_logs,
        )

    handler = _InterceptHandler()
    for name, min_level in _STDLIB_LOGGERS.items():
        std_logger = logging.getLogger(name)
        std_logger.handlers = [handler]
        std_logger.setLevel(min_level)
        std_logger.propagate = False
