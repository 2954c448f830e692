"""Application-wide logging helpers."""

import logging
from typing import Optional

DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
NOISY_LOGGERS = (
    "httpx",
    "httpcore",
    "uvicorn.access",
)


def _resolve_level(level_name: Optional[str]) -> int:
    """Translate an env-provided level string into a logging level."""
    if not level_name:
        return logging.INFO
    level = getattr(logging, level_name.upper(), None)
    if isinstance(level, int):
        return level
    return logging.INFO


def configure_logging(level_name: Optional[str] = None) -> None:
    """Configure root logging, replacing any handler installed before."""
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    logging.basicConfig(level=_resolve_level(level_name), format=DEFAULT_FORMAT)

    # httpx logs every request line, query string (and credentials) included.
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def sensitive(text: str, *parts: str) -> str:
    """Mask every occurrence of each non-empty `part` in `text`."""
    for part in parts:
        if part:
            text = text.replace(part, "*" * len(part))
    return text
