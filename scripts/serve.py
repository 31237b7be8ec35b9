#!/usr/bin/env python3
from __future__ import annotations

import os
import sys
from pathlib import Path


REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT))

from apify_tester.utils.log import configure_logging  # noqa: E402


def main() -> int:
    host = os.getenv("APIFY_TESTER_HOST", "0.0.0.0")
    port = int(os.getenv("APIFY_TESTER_PORT", "5000"))
    reload = os.getenv("APIFY_TESTER_RELOAD", "0").strip().lower() in {"1", "true", "yes", "y", "on"}
    log_level = os.getenv("APIFY_TESTER_LOG_LEVEL", "info")

    configure_logging(log_level)

    import uvicorn

    uvicorn.run(
        "apify_tester.api.app:app",
        host=host,
        port=port,
        reload=reload,
        log_level=log_level,
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
