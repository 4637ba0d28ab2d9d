"""Command implementations for the edgectl CLI."""
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, List, Optional

import typer

from edgectl.config import Settings
from edgectl.errors import EdgectlError
from edgectl.logging import setup_logging

logger = logging.getLogger("edgectl.cli")


def debug_enabled(ctx: typer.Context) -> bool:
    return bool((ctx.obj or {}).get("debug", False))


def load_settings(ctx: typer.Context, config_path: Optional[Path]) -> Settings:
    """Load settings and re-configure logging if they name a log file."""
    settings = Settings.load(config_path)
    if settings.logging.file:
        setup_logging(
            debug_enabled(ctx) or settings.logging.level.upper() == "DEBUG",
            log_file=settings.logging.file,
            max_size_mb=settings.logging.max_size_mb,
            backup_count=settings.logging.backup_count,
        )
    return settings


def parse_labels(values: Optional[List[str]]) -> Dict[str, str]:
    labels: Dict[str, str] = {}
    for value in values or []:
        key, sep, label = value.partition("=")
        if not sep or not key:
            raise typer.BadParameter(f"Label '{value}' is not in key=value form", param_hint="--label")
        labels[key.strip()] = label.strip()
    return labels


@contextmanager
def exit_on_error(ctx: typer.Context) -> Iterator[None]:
    """Turn a fatal error into one log line and exit code 1."""
    try:
        yield
    except (EdgectlError, ValueError, OSError) as e:
        if debug_enabled(ctx):
            logger.exception(f"❌ {e}")
        else:
            logger.error(f"❌ {e}")
        raise typer.Exit(code=1)
