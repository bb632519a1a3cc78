"""Process-wide logging setup."""

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class PackageHandler(logging.StreamHandler):
    """Stream handler installed on the package logger by configure_logging()."""


def configure_logging(level: str = "INFO") -> None:
    """Install one stream handler on the package logger. Safe to call twice."""
    package_logger = logging.getLogger("risklist_sync")
    package_logger.setLevel(level.upper())
    if not any(isinstance(h, PackageHandler) for h in package_logger.handlers):
        handler = PackageHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        package_logger.addHandler(handler)
