"""
Logging setup for the API process and scripts.

Modules log through `logging.getLogger(__name__)` and attach structured
context with `extra={...}`; this only configures the root handler.
"""

from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)
    # Third-party HTTP clients are chatty at INFO.
    for noisy in ("httpx", "httpcore", "hpack"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
