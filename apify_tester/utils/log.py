from __future__ import annotations

import logging
import os


_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Route `apify_tester.*` loggers to stderr at the requested level."""
    name = (level or os.getenv("APIFY_TESTER_LOG_LEVEL") or "info").strip().upper()
    logging.basicConfig(level=getattr(logging, name, logging.INFO), format=_FORMAT)
