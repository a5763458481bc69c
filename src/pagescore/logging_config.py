"""Logging setup for the pagescore command and embedding hosts."""

import logging
import sys
from pathlib import Path
from typing import List, Optional

DEFAULT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# Chatty libraries under requests and asyncio
QUIET_LOGGERS = ('urllib3', 'requests', 'asyncio', 'bs4')


def _build_handlers(log_file: Optional[str]) -> List[logging.Handler]:
    # stderr so that --json output on stdout stays parseable
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(path, encoding='utf-8'))
    return handlers


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    format_string: Optional[str] = None
) -> int:
    """Configure the root logger for an analysis run.

    Unknown level names fall back to INFO rather than failing the run.

    Args:
        level: Level name such as DEBUG or WARNING
        log_file: Optional path that also receives log records
        format_string: Optional record format, DEFAULT_FORMAT otherwise

    Returns:
        The numeric level that was applied
    """
    numeric_level = getattr(logging, str(level).upper(), None)
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    logging.basicConfig(
        level=numeric_level,
        format=format_string or DEFAULT_FORMAT,
        handlers=_build_handlers(log_file),
        force=True
    )

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))

    return numeric_level
