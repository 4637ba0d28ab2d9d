"""Logging configuration for the edgectl package."""
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Iterable, Optional

REDACTED = "[REDACTED]"
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# Libraries that are far too chatty at INFO/DEBUG
NOISY_LOGGERS = ("paramiko", "urllib3", "kubernetes", "docker")


def setup_logging(debug_mode: bool = False, log_file: Optional[str] = None,
                  max_size_mb: int = 10, backup_count: int = 3) -> None:
    """Configure root logging based on debug mode.

    Args:
        debug_mode: Log at DEBUG instead of INFO
        log_file: Optional path of a rotating log file
        max_size_mb: Rotation size for the log file
        backup_count: Number of rotated files to keep
    """
    log_level = logging.DEBUG if debug_mode else logging.INFO
    handlers = [logging.StreamHandler(sys.stderr)]

    if log_file:
        path = Path(log_file).expanduser().absolute()
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(RotatingFileHandler(
            filename=path,
            maxBytes=max_size_mb * 1024 * 1024,
            backupCount=backup_count,
        ))

    logging.basicConfig(level=log_level, format=LOG_FORMAT, handlers=handlers, force=True)

    if not debug_mode:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)


def redact(text: str, secrets: Iterable[str]) -> str:
    """Replace every occurrence of each secret in ``text``.

    Empty secrets are skipped so they don't blank out the whole string.
    """
    for secret in secrets:
        if secret:
            text = text.replace(secret, REDACTED)
    return text
